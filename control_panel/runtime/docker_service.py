# control_panel/runtime/docker_service.py
"""Raw docker administration (containers, images, networks, volumes). Admin only."""

import logging
from typing import Any, Dict, List, Optional

from control_panel.core.access import Action, authorize
from control_panel.core.errors import PanelError, ValidationError
from control_panel.core.events import EventEmitter, NullEventEmitter
from control_panel.core.events_model import PanelEvent
from control_panel.runtime.docker_runtime import ContainerRuntime, ContainerSpec, cpu_percent

logger = logging.getLogger(__name__)


class DockerAdminService:
    """Thin authorization layer over ContainerRuntime for the docker pages."""

    def __init__(self, runtime: ContainerRuntime, emitter: Optional[EventEmitter] = None):
        self._runtime = runtime
        self._emitter = emitter or NullEventEmitter()

    # -------------------------
    # Daemon
    # -------------------------

    def status(self, subject) -> Dict[str, Any]:
        authorize(subject, Action.MANAGE)
        info = self._runtime.info()
        version = self._runtime.version()
        return {
            "running": True,
            "version": version.get("Version"),
            "api_version": version.get("ApiVersion"),
            "containers": info.get("Containers", 0),
            "containers_running": info.get("ContainersRunning", 0),
            "containers_stopped": info.get("ContainersStopped", 0),
            "images": info.get("Images", 0),
            "memory_total": info.get("MemTotal", 0),
            "cpus": info.get("NCPU", 0),
        }

    # -------------------------
    # Containers
    # -------------------------

    def list_containers(self, subject, all: bool = True) -> List[Dict[str, Any]]:
        authorize(subject, Action.MANAGE)
        return self._runtime.list_containers(all=all)

    def get_container(self, subject, container_id: str) -> Dict[str, Any]:
        """Inspect data plus live stats (cpu percent, memory) for running containers."""
        authorize(subject, Action.MANAGE)
        details = self._runtime.inspect(container_id)

        if (details.get("State") or {}).get("Running"):
            stats = self._runtime.stats(container_id)
            memory = stats.get("memory_stats") or {}
            details["Stats"] = {
                "cpu_percent": cpu_percent(stats),
                "memory_usage": memory.get("usage", 0),
                "memory_limit": memory.get("limit", 0),
                "networks": stats.get("networks", {}),
            }
        return details

    def start_container(self, subject, container_id: str) -> None:
        authorize(subject, Action.MANAGE)
        self._runtime.start(container_id)

    def stop_container(self, subject, container_id: str) -> None:
        authorize(subject, Action.MANAGE)
        self._runtime.stop(container_id)

    def restart_container(self, subject, container_id: str) -> None:
        authorize(subject, Action.MANAGE)
        self._runtime.restart(container_id)

    def remove_container(self, subject, container_id: str, force: bool = False) -> None:
        """Stop first unless forced; a running container cannot be removed otherwise."""
        authorize(subject, Action.MANAGE)
        if not force:
            state = (self._runtime.inspect(container_id).get("State") or {})
            if state.get("Running"):
                self._runtime.stop(container_id)
        self._runtime.remove(container_id, force=force)
        logger.info(f"[docker] removed container {container_id[:12]} by {subject.email}")

    def container_logs(self, subject, container_id: str, tail: int = 100) -> str:
        authorize(subject, Action.MANAGE)
        return self._runtime.logs(container_id, tail=tail, timestamps=True)

    def exec(self, subject, container_id: str, command: List[str]) -> Dict[str, Any]:
        authorize(subject, Action.MANAGE)
        if not command:
            raise ValidationError("Command is required")
        logger.info(f"[docker] exec in {container_id[:12]} by {subject.email}: {command}")
        return self._runtime.exec(container_id, command)

    def create_container(self, subject, spec: ContainerSpec, start: bool = True) -> str:
        authorize(subject, Action.MANAGE)
        container_id = self._runtime.create_container(spec)
        if start:
            self._runtime.start(container_id)
        return container_id

    # -------------------------
    # Images
    # -------------------------

    def list_images(self, subject) -> List[Dict[str, Any]]:
        authorize(subject, Action.MANAGE)
        return self._runtime.list_images()

    def pull_image(self, subject, image_ref: str) -> None:
        """Pull with docker:pull:* events; the error event is sent before the failure propagates."""
        authorize(subject, Action.MANAGE)
        if not image_ref:
            raise ValidationError("Image is required")

        self._emitter.emit([PanelEvent.docker_pull_start(image_ref)])
        try:
            self._runtime.pull(
                image_ref,
                on_progress=lambda line: self._emitter.emit([PanelEvent.docker_pull_progress(image_ref, line)]),
            )
        except PanelError as e:
            self._emitter.emit([PanelEvent.docker_pull_error(image_ref, e.details or e.message)])
            raise
        self._emitter.emit([PanelEvent.docker_pull_complete(image_ref)])

    def remove_image(self, subject, image: str, force: bool = False) -> None:
        authorize(subject, Action.MANAGE)
        self._runtime.remove_image(image, force=force)

    # -------------------------
    # Networks / volumes
    # -------------------------

    def list_networks(self, subject) -> List[Dict[str, Any]]:
        authorize(subject, Action.MANAGE)
        return self._runtime.list_networks()

    def create_network(self, subject, name: str, driver: str = "bridge") -> str:
        authorize(subject, Action.MANAGE)
        return self._runtime.create_network(name, driver=driver)

    def list_volumes(self, subject) -> List[Dict[str, Any]]:
        authorize(subject, Action.MANAGE)
        return self._runtime.list_volumes()

    def create_volume(self, subject, name: str, driver: str = "local") -> str:
        authorize(subject, Action.MANAGE)
        return self._runtime.create_volume(name, driver=driver)
