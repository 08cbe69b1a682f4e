# control_panel/api/dependencies.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from control_panel.container import PanelServices, services
from control_panel.core.access import Action, authorize
from control_panel.registry.models import UserAccount

bearer_scheme = HTTPBearer(auto_error=False)


def get_services() -> PanelServices:
    return services


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    svc: PanelServices = Depends(get_services),
) -> UserAccount:
    """Bearer header first, then the session cookie."""
    token = credentials.credentials if credentials else request.cookies.get(svc.settings.cookie_name)
    return svc.users.resolve_token(token)


def require_admin(user: UserAccount = Depends(get_current_user)) -> UserAccount:
    authorize(user, Action.MANAGE)
    return user
