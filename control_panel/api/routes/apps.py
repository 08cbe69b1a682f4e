from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from control_panel.api.dependencies import get_current_user, get_services, require_admin
from control_panel.api.schemas.apps import (
    CatalogEntryCreateRequest, CatalogEntryResponse, CatalogEntryUpdateRequest,
    InstallRequest, InstanceLogSchema, InstanceLogsResponse, InstanceResponse, ReconfigureRequest,
    _to_domain,
)
from control_panel.api.schemas.common import MessageResponse
from control_panel.orchestrator.instance_orchestrator import InstallParams
from control_panel.registry.models import CatalogEntry

router = APIRouter(prefix="/api/apps", tags=["apps"])


# ============================================
# INSTALLED INSTANCES
# ============================================

@router.get("/installed", response_model=List[InstanceResponse])
def list_installed(user=Depends(get_current_user), svc=Depends(get_services)):
    return [InstanceResponse.model_validate(i) for i in svc.orchestrator.list_instances(user)]


@router.get("/installed/{instance_id}", response_model=InstanceResponse)
def get_installed(instance_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    instance, container_info = svc.orchestrator.get_instance(user, instance_id)
    response = InstanceResponse.model_validate(instance)
    response.container_info = container_info
    return response


@router.post("/installed/{instance_id}/start", response_model=MessageResponse)
def start_installed(instance_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    svc.orchestrator.start(user, instance_id)
    return MessageResponse(message="Application started")


@router.post("/installed/{instance_id}/stop", response_model=MessageResponse)
def stop_installed(instance_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    svc.orchestrator.stop(user, instance_id)
    return MessageResponse(message="Application stopped")


@router.post("/installed/{instance_id}/restart", response_model=MessageResponse)
def restart_installed(instance_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    svc.orchestrator.restart(user, instance_id)
    return MessageResponse(message="Application restarted")


@router.put("/installed/{instance_id}", response_model=InstanceResponse)
def reconfigure_installed(
    instance_id: UUID,
    request: ReconfigureRequest,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    instance = svc.orchestrator.reconfigure(
        user,
        instance_id,
        environment=_to_domain(request.environment),
        memory=request.memory,
        cpu=request.cpu,
    )
    return InstanceResponse.model_validate(instance)


@router.delete("/installed/{instance_id}", response_model=MessageResponse)
def uninstall(instance_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    svc.orchestrator.uninstall(user, instance_id)
    return MessageResponse(message="Application uninstalled")


@router.get("/installed/{instance_id}/logs", response_model=InstanceLogsResponse)
def installed_logs(
    instance_id: UUID,
    tail: int = Query(default=100, ge=1, le=5000),
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    logs = svc.orchestrator.get_logs(user, instance_id, tail=tail)
    return InstanceLogsResponse(
        app_logs=[InstanceLogSchema.model_validate(entry) for entry in logs["app_logs"]],
        container_logs=logs["container_logs"],
    )


# ============================================
# CATALOG
# ============================================

@router.get("", response_model=List[CatalogEntryResponse])
def list_apps(
    category: Optional[str] = None,
    search: Optional[str] = None,
    popular: bool = False,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    entries = svc.catalog.list_entries(category=category, search=search, popular_only=popular)
    return [CatalogEntryResponse.model_validate(e) for e in entries]


@router.get("/categories", response_model=List[str])
def list_categories(user=Depends(get_current_user), svc=Depends(get_services)):
    return svc.catalog.categories()


@router.post("/seed", response_model=MessageResponse)
def seed_apps(user=Depends(require_admin), svc=Depends(get_services)):
    added = svc.catalog.seed_defaults(user)
    return MessageResponse(message=f"{added} app(s) added")


@router.post("", response_model=CatalogEntryResponse, status_code=status.HTTP_201_CREATED)
def create_app(request: CatalogEntryCreateRequest, user=Depends(get_current_user), svc=Depends(get_services)):
    entry = CatalogEntry(
        slug=request.slug,
        name=request.name,
        image=request.image,
        tag=request.tag,
        description=request.description,
        category=request.category,
        ports=_to_domain(request.ports),
        volumes=_to_domain(request.volumes),
        environment=_to_domain(request.environment),
        min_memory=request.min_memory,
        min_cpu=request.min_cpu,
        icon=request.icon,
        website=request.website,
        documentation=request.documentation,
        is_popular=request.is_popular,
    )
    return CatalogEntryResponse.model_validate(svc.catalog.create_entry(user, entry))


@router.get("/{entry_id}", response_model=CatalogEntryResponse)
def get_app(entry_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    return CatalogEntryResponse.model_validate(svc.catalog.get_entry(entry_id))


@router.put("/{entry_id}", response_model=CatalogEntryResponse)
def update_app(
    entry_id: UUID,
    request: CatalogEntryUpdateRequest,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    entry = svc.catalog.update_entry(user, entry_id, request.to_changes())
    return CatalogEntryResponse.model_validate(entry)


@router.delete("/{entry_id}", response_model=MessageResponse)
def delete_app(entry_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    svc.catalog.delete_entry(user, entry_id)
    return MessageResponse(message="App deleted")


@router.post("/{entry_id}/install", response_model=InstanceResponse, status_code=status.HTTP_201_CREATED)
def install_app(
    entry_id: UUID,
    request: InstallRequest,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    params = InstallParams(
        container_name=request.container_name,
        domain_id=request.domain_id,
        subdomain=request.subdomain,
        ports=_to_domain(request.ports),
        volumes=_to_domain(request.volumes),
        environment=_to_domain(request.environment),
        memory=request.memory,
        cpu=request.cpu,
    )
    return InstanceResponse.model_validate(svc.orchestrator.install(user, entry_id, params))
