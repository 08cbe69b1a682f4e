import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from control_panel.api.routes.apps import router as apps_router
from control_panel.api.routes.auth import router as auth_router
from control_panel.api.routes.docker import router as docker_router
from control_panel.api.routes.domains import router as domains_router
from control_panel.api.routes.events import router as events_router
from control_panel.api.routes.mail import router as mail_router
from control_panel.api.routes.system import router as system_router
from control_panel.config import DEFAULT_JWT_SECRET
from control_panel.container import services
from control_panel.core.errors import PanelError
from control_panel.infrastructure.postgres.database import init_db

logger = logging.getLogger(__name__)


def warn_default_secret(settings) -> bool:
    if settings.jwt_secret != DEFAULT_JWT_SECRET:
        return False
    logger.warning("[startup] PANEL_JWT_SECRET is not set; tokens are signed with the default secret")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    settings = services.settings
    warn_default_secret(settings)
    services.users.ensure_admin(
        settings.bootstrap_admin_email,
        settings.bootstrap_admin_password,
        settings.bootstrap_admin_name,
    )
    added = services.catalog.seed_defaults()
    if added:
        logger.info(f"[startup] seeded {added} catalog entries")
    yield


app = FastAPI(title="Server Control Panel API", lifespan=lifespan)


# -------------------------
# Error responses
# -------------------------

@app.exception_handler(PanelError)
async def panel_error_handler(request: Request, exc: PanelError):
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(status_code=400, content={"error": "; ".join(messages)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"[api] unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/api/health")
def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(apps_router)
app.include_router(domains_router)
app.include_router(mail_router)
app.include_router(docker_router)
app.include_router(system_router)
app.include_router(events_router)
