# control_panel/host/system_service.py
"""Host information, resource statistics and panel self-update."""

import logging
import os
import platform
import socket
import time
from typing import Any, Dict, Optional

import psutil
import requests

from control_panel.config import PanelSettings
from control_panel.core.errors import PanelError
from control_panel.core.events import EventEmitter, NullEventEmitter
from control_panel.core.events_model import PanelEvent
from control_panel.host.commands import AllowedCommand
from control_panel.host.gateway import HostOperationsGateway

logger = logging.getLogger(__name__)


def compare_versions(left: str, right: str) -> int:
    """Compare dotted versions numerically on major.minor.patch: 1, 0 or -1."""
    def parts(version: str):
        numbers = []
        for piece in version.lstrip("v").split(".")[:3]:
            digits = "".join(ch for ch in piece if ch.isdigit())
            numbers.append(int(digits) if digits else 0)
        return numbers + [0] * (3 - len(numbers))

    a, b = parts(left), parts(right)
    if a > b:
        return 1
    if a < b:
        return -1
    return 0


def _primary_ip() -> str:
    for addresses in psutil.net_if_addrs().values():
        for address in addresses:
            if address.family == socket.AF_INET and not address.address.startswith("127."):
                return address.address
    return "127.0.0.1"


class SystemService:
    """Read-only host metrics via psutil plus the update workflow."""

    def __init__(
        self,
        gateway: HostOperationsGateway,
        settings: PanelSettings,
        emitter: Optional[EventEmitter] = None,
        http: Optional[requests.Session] = None,
    ):
        self._gateway = gateway
        self._settings = settings
        self._emitter = emitter or NullEventEmitter()
        self._http = http or requests.Session()

    # ============================================
    # METRICS
    # ============================================

    def info(self) -> Dict[str, Any]:
        uname = platform.uname()
        memory = psutil.virtual_memory()
        return {
            "hostname": socket.gethostname(),
            "ip": _primary_ip(),
            "platform": uname.system.lower(),
            "os": f"{uname.system} {uname.release}",
            "arch": uname.machine,
            "uptime": int(time.time() - psutil.boot_time()),
            "loadavg": list(os.getloadavg()) if hasattr(os, "getloadavg") else [],
            "memory": {"total": memory.total, "free": memory.available},
            "cpus": psutil.cpu_count(logical=True),
            "version": self._settings.panel_version,
        }

    def cpu(self) -> Dict[str, Any]:
        return {
            "usage": psutil.cpu_percent(interval=0.2),
            "per_cpu": psutil.cpu_percent(interval=None, percpu=True),
            "cores": psutil.cpu_count(logical=True),
        }

    def memory(self) -> Dict[str, Any]:
        memory = psutil.virtual_memory()
        swap = psutil.swap_memory()
        return {
            "total": memory.total,
            "used": memory.used,
            "free": memory.available,
            "percent": memory.percent,
            "swap": {"total": swap.total, "used": swap.used, "percent": swap.percent},
        }

    def disk(self, path: str = "/") -> Dict[str, Any]:
        usage = psutil.disk_usage(path)
        return {
            "path": path,
            "total": usage.total,
            "used": usage.used,
            "free": usage.free,
            "percent": usage.percent,
        }

    def stats(self) -> Dict[str, Any]:
        return {"cpu": self.cpu(), "memory": self.memory(), "disk": self.disk()}

    # ============================================
    # UPDATES
    # ============================================

    def check_update(self) -> Dict[str, Any]:
        """Compare the running version with the latest GitHub release; network failures mean "no update"."""
        current = self._settings.panel_version
        data = {
            "current_version": current,
            "latest_version": current,
            "update_available": False,
            "release_notes": "",
        }

        url = f"https://api.github.com/repos/{self._settings.release_repo}/releases/latest"
        try:
            response = self._http.get(
                url,
                headers={"Accept": "application/vnd.github+json", "User-Agent": "control-panel"},
                timeout=self._settings.release_check_timeout,
            )
            response.raise_for_status()
            release = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"[system] release check failed: {e}")
            return data

        tag = release.get("tag_name")
        if tag:
            latest = tag.lstrip("v")
            data["latest_version"] = latest
            data["update_available"] = compare_versions(latest, current) > 0
            data["release_notes"] = release.get("body") or ""
            data["download_url"] = release.get("zipball_url")
        return data

    def perform_update(self) -> Dict[str, Any]:
        """git pull, reinstall, restart the panel unit; progress goes out as system:update:* events."""
        install_dir = self._settings.install_dir
        self._emitter.emit([PanelEvent.system_update_start(self._settings.panel_version)])

        steps = [
            ("pull", AllowedCommand.git_pull(install_dir)),
            ("install", AllowedCommand.pip_install(install_dir)),
            ("restart", AllowedCommand.service_control(self._settings.panel_service_name, "restart")),
        ]
        try:
            for step, command in steps:
                result = self._gateway.run_update_step(command)
                self._emitter.emit([PanelEvent.system_update_progress(step, result.stdout)])
        except PanelError as e:
            reason = f"{e.message}: {e.details}" if e.details else e.message
            self._emitter.emit([PanelEvent.system_update_error(reason)])
            logger.error(f"[system] update failed: {reason}")
            raise

        self._emitter.emit([PanelEvent.system_update_complete(self._settings.panel_version)])
        logger.info("[system] update complete, service restarting")
        return {"message": "Update complete, service restarting"}
