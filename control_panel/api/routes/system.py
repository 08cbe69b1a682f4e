from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query

from control_panel.api.dependencies import get_current_user, get_services, require_admin
from control_panel.api.schemas.common import CommandOutputResponse, MessageResponse
from control_panel.api.schemas.system import FirewallRuleRequest

router = APIRouter(prefix="/api/system", tags=["system"])


# ============================================
# METRICS (any signed-in user)
# ============================================

@router.get("/info")
def system_info(user=Depends(get_current_user), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.system.info()


@router.get("/stats")
def system_stats(user=Depends(get_current_user), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.system.stats()


@router.get("/cpu")
def system_cpu(user=Depends(get_current_user), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.system.cpu()


@router.get("/memory")
def system_memory(user=Depends(get_current_user), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.system.memory()


@router.get("/disk")
def system_disk(user=Depends(get_current_user), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.system.disk()


@router.get("/services")
def services_status(user=Depends(get_current_user), svc=Depends(get_services)) -> Dict[str, str]:
    return svc.gateway.services_status()


@router.get("/check-update")
def check_update(user=Depends(get_current_user), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.system.check_update()


# ============================================
# HOST OPERATIONS (admin)
# ============================================

@router.post("/update", response_model=MessageResponse)
def perform_update(user=Depends(require_admin), svc=Depends(get_services)):
    return MessageResponse(**svc.system.perform_update())


@router.post("/reboot", response_model=MessageResponse)
def reboot(user=Depends(require_admin), svc=Depends(get_services)):
    return MessageResponse(**svc.gateway.reboot())


@router.post("/restart", response_model=MessageResponse)
def restart_panel(user=Depends(require_admin), svc=Depends(get_services)):
    return MessageResponse(**svc.gateway.restart_panel())


@router.post("/services/{service}/{action}", response_model=CommandOutputResponse)
def control_service(service: str, action: str, user=Depends(require_admin), svc=Depends(get_services)):
    return CommandOutputResponse(**svc.gateway.control_service(service, action))


@router.get("/logs")
def read_logs(
    type: str = "journal",
    lines: int = Query(default=100),
    user=Depends(require_admin),
    svc=Depends(get_services),
) -> Dict[str, Any]:
    return svc.gateway.read_logs(type, lines)


@router.get("/logs/{log_type}")
def read_log_type(
    log_type: str,
    lines: int = Query(default=100),
    user=Depends(require_admin),
    svc=Depends(get_services),
) -> Dict[str, Any]:
    return svc.gateway.read_logs(log_type, lines)


@router.get("/firewall")
def firewall_status(user=Depends(require_admin), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.gateway.firewall_status()


@router.post("/firewall", response_model=CommandOutputResponse)
def add_firewall_rule(request: FirewallRuleRequest, user=Depends(require_admin), svc=Depends(get_services)):
    return CommandOutputResponse(**svc.gateway.add_firewall_rule(request.port, request.protocol, request.action))


@router.delete("/firewall/{number}", response_model=CommandOutputResponse)
def delete_firewall_rule(number: int, user=Depends(require_admin), svc=Depends(get_services)):
    return CommandOutputResponse(**svc.gateway.delete_firewall_rule(number))


@router.post("/nginx/reload", response_model=CommandOutputResponse)
def reload_nginx(user=Depends(require_admin), svc=Depends(get_services)):
    return CommandOutputResponse(**svc.gateway.reload_nginx())


@router.post("/ssl/renew", response_model=CommandOutputResponse)
def renew_certificates(user=Depends(require_admin), svc=Depends(get_services)):
    return CommandOutputResponse(**svc.gateway.renew_all_certificates())


@router.get("/backups")
def list_backups(user=Depends(require_admin), svc=Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.gateway.list_backups()


@router.post("/backup")
def create_backup(user=Depends(require_admin), svc=Depends(get_services)) -> Dict[str, Any]:
    return svc.gateway.create_backup()


@router.post("/apt/update", response_model=CommandOutputResponse)
def apt_update(user=Depends(require_admin), svc=Depends(get_services)):
    return CommandOutputResponse(**svc.gateway.apt_update())


@router.post("/apt/upgrade", response_model=CommandOutputResponse)
def apt_upgrade(user=Depends(require_admin), svc=Depends(get_services)):
    return CommandOutputResponse(**svc.gateway.apt_upgrade())
