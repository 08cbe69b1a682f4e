from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, status

from control_panel.api.dependencies import get_services, require_admin
from control_panel.api.schemas.common import MessageResponse
from control_panel.api.schemas.docker import (
    ContainerCreateRequest, ExecRequest, ImagePullRequest, NetworkCreateRequest, VolumeCreateRequest,
)

router = APIRouter(prefix="/api/docker", tags=["docker"])


@router.get("/status")
def docker_status(user=Depends(require_admin), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.docker.status(user)


# ============================================
# CONTAINERS
# ============================================

@router.get("/containers")
def list_containers(
    all: bool = True,
    user=Depends(require_admin),
    svc=Depends(get_services),
) -> List[Dict[str, Any]]:
    return svc.docker.list_containers(user, all=all)


@router.post("/containers", status_code=status.HTTP_201_CREATED)
def create_container(request: ContainerCreateRequest, user=Depends(require_admin), svc=Depends(get_services)):
    container_id = svc.docker.create_container(user, request.to_spec(), start=request.start)
    return {"id": container_id, "message": "Container created"}


@router.get("/containers/{container_id}")
def get_container(container_id: str, user=Depends(require_admin), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.docker.get_container(user, container_id)


@router.post("/containers/{container_id}/start", response_model=MessageResponse)
def start_container(container_id: str, user=Depends(require_admin), svc=Depends(get_services)):
    svc.docker.start_container(user, container_id)
    return MessageResponse(message="Container started")


@router.post("/containers/{container_id}/stop", response_model=MessageResponse)
def stop_container(container_id: str, user=Depends(require_admin), svc=Depends(get_services)):
    svc.docker.stop_container(user, container_id)
    return MessageResponse(message="Container stopped")


@router.post("/containers/{container_id}/restart", response_model=MessageResponse)
def restart_container(container_id: str, user=Depends(require_admin), svc=Depends(get_services)):
    svc.docker.restart_container(user, container_id)
    return MessageResponse(message="Container restarted")


@router.delete("/containers/{container_id}", response_model=MessageResponse)
def remove_container(
    container_id: str,
    force: bool = False,
    user=Depends(require_admin),
    svc=Depends(get_services),
):
    svc.docker.remove_container(user, container_id, force=force)
    return MessageResponse(message="Container removed")


@router.get("/containers/{container_id}/logs")
def container_logs(
    container_id: str,
    tail: int = Query(default=100, ge=1, le=5000),
    user=Depends(require_admin),
    svc=Depends(get_services),
):
    return {"logs": svc.docker.container_logs(user, container_id, tail=tail)}


@router.post("/containers/{container_id}/exec")
def exec_in_container(
    container_id: str,
    request: ExecRequest,
    user=Depends(require_admin),
    svc=Depends(get_services),
) -> Dict[str, Any]:
    return svc.docker.exec(user, container_id, request.command)


# ============================================
# IMAGES
# ============================================

@router.get("/images")
def list_images(user=Depends(require_admin), svc=Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.docker.list_images(user)


@router.post("/images/pull", response_model=MessageResponse)
def pull_image(request: ImagePullRequest, user=Depends(require_admin), svc=Depends(get_services)):
    svc.docker.pull_image(user, request.image)
    return MessageResponse(message=f"Image {request.image} pulled")


@router.delete("/images/{image:path}", response_model=MessageResponse)
def remove_image(image: str, force: bool = False, user=Depends(require_admin), svc=Depends(get_services)):
    svc.docker.remove_image(user, image, force=force)
    return MessageResponse(message="Image removed")


# ============================================
# NETWORKS / VOLUMES
# ============================================

@router.get("/networks")
def list_networks(user=Depends(require_admin), svc=Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.docker.list_networks(user)


@router.post("/networks", status_code=status.HTTP_201_CREATED)
def create_network(request: NetworkCreateRequest, user=Depends(require_admin), svc=Depends(get_services)):
    return {"id": svc.docker.create_network(user, request.name, driver=request.driver)}


@router.get("/volumes")
def list_volumes(user=Depends(require_admin), svc=Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.docker.list_volumes(user)


@router.post("/volumes", status_code=status.HTTP_201_CREATED)
def create_volume(request: VolumeCreateRequest, user=Depends(require_admin), svc=Depends(get_services)):
    return {"name": svc.docker.create_volume(user, request.name, driver=request.driver)}
