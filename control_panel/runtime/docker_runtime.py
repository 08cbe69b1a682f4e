# control_panel/runtime/docker_runtime.py
"""
Container runtime adapter.

ContainerRuntime is the seam the orchestrator and the docker admin service
talk to; DockerRuntime implements it on top of the docker SDK.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import docker
import requests
from docker.errors import DockerException, NotFound

from control_panel.core.errors import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict[str, Any]], None]


# ============================================
# CONTAINER SPEC
# ============================================

@dataclass
class ContainerSpec:
    """Everything needed to create one container."""
    name: str
    image: str  # "repo:tag"
    ports: Dict[str, Optional[int]] = field(default_factory=dict)  # {"80/tcp": 8080}
    binds: List[str] = field(default_factory=list)  # ["/data/x:/var/lib/x"]
    env: List[str] = field(default_factory=list)  # ["KEY=value"]
    mem_limit: Optional[int] = None  # bytes
    nano_cpus: Optional[int] = None  # 1e9 == one vCPU
    restart_policy: str = "unless-stopped"
    labels: Dict[str, str] = field(default_factory=dict)


def split_image_ref(image_ref: str):
    """'grafana/grafana:latest' -> ('grafana/grafana', 'latest'). Registry ports are kept in the repo part."""
    last = image_ref.rsplit("/", 1)[-1]
    if ":" in last:
        repo, tag = image_ref.rsplit(":", 1)
        return repo, tag
    return image_ref, "latest"


def cpu_percent(stats: Dict[str, Any]) -> float:
    """CPU usage percentage from a one-shot docker stats sample."""
    cpu_stats = stats.get("cpu_stats") or {}
    precpu_stats = stats.get("precpu_stats") or {}

    cpu_delta = (cpu_stats.get("cpu_usage") or {}).get("total_usage", 0) - \
        (precpu_stats.get("cpu_usage") or {}).get("total_usage", 0)
    system_delta = cpu_stats.get("system_cpu_usage", 0) - precpu_stats.get("system_cpu_usage", 0)
    online_cpus = cpu_stats.get("online_cpus") or \
        len((cpu_stats.get("cpu_usage") or {}).get("percpu_usage") or []) or 1

    if system_delta <= 0 or cpu_delta < 0:
        return 0.0
    return round(cpu_delta / system_delta * online_cpus * 100.0, 2)


# ============================================
# RUNTIME INTERFACE
# ============================================

class ContainerRuntime(ABC):
    """Container execution engine primitives."""

    @abstractmethod
    def pull(self, image_ref: str, on_progress: Optional[ProgressCallback] = None) -> None:
        """Pull an image, invoking on_progress for every status line."""

    @abstractmethod
    def create_container(self, spec: ContainerSpec) -> str:
        """Create (not start) a container. Returns the container id."""

    @abstractmethod
    def start(self, container_id: str) -> None: ...

    @abstractmethod
    def stop(self, container_id: str) -> None: ...

    @abstractmethod
    def restart(self, container_id: str) -> None: ...

    @abstractmethod
    def remove(self, container_id: str, force: bool = False) -> None: ...

    @abstractmethod
    def inspect(self, container_id: str) -> Dict[str, Any]: ...

    @abstractmethod
    def stats(self, container_id: str) -> Dict[str, Any]: ...

    @abstractmethod
    def logs(self, container_id: str, tail: int = 100, timestamps: bool = True) -> str: ...

    @abstractmethod
    def exec(self, container_id: str, command: List[str]) -> Dict[str, Any]: ...

    @abstractmethod
    def info(self) -> Dict[str, Any]: ...

    @abstractmethod
    def version(self) -> Dict[str, Any]: ...

    @abstractmethod
    def list_containers(self, all: bool = True) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def list_images(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def remove_image(self, image: str, force: bool = False) -> None: ...

    @abstractmethod
    def list_networks(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def create_network(self, name: str, driver: str = "bridge") -> str: ...

    @abstractmethod
    def list_volumes(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def create_volume(self, name: str, driver: str = "local") -> str: ...


# ============================================
# DOCKER IMPLEMENTATION
# ============================================

@contextmanager
def docker_errors(action: str):
    """Translate docker SDK exceptions into panel errors."""
    try:
        yield
    except NotFound as e:
        raise NotFoundError(f"{action}: {e.explanation or e}") from e
    except DockerException as e:
        logger.error(f"[docker] {action} failed: {e}")
        raise UpstreamError(f"{action} failed", details=str(e)) from e
    except requests.exceptions.RequestException as e:
        logger.error(f"[docker] {action} failed, daemon unreachable: {e}")
        raise UpstreamError(f"{action} failed", details=str(e)) from e


class DockerRuntime(ContainerRuntime):
    """ContainerRuntime backed by the local docker daemon."""

    def __init__(self, base_url: Optional[str] = None, client: Optional[docker.DockerClient] = None):
        self._base_url = base_url
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self) -> docker.DockerClient:
        """Connect on first use so the API can boot without a daemon."""
        if self._client is None:
            with self._lock:
                if self._client is None:
                    with docker_errors("Connect to Docker"):
                        if self._base_url:
                            self._client = docker.DockerClient(base_url=self._base_url)
                        else:
                            self._client = docker.from_env()
                    logger.info("[docker] connected to Docker daemon")
        return self._client

    # -------------------------
    # Images
    # -------------------------

    def pull(self, image_ref: str, on_progress: Optional[ProgressCallback] = None) -> None:
        repository, tag = split_image_ref(image_ref)
        logger.info(f"[docker] pulling {repository}:{tag}")

        with docker_errors(f"Pull {image_ref}"):
            for line in self.client.api.pull(repository, tag=tag, stream=True, decode=True):
                if "error" in line:
                    raise UpstreamError(f"Pull {image_ref} failed", details=line["error"])
                if on_progress:
                    on_progress(line)

    def list_images(self) -> List[Dict[str, Any]]:
        with docker_errors("List images"):
            return self.client.api.images()

    def remove_image(self, image: str, force: bool = False) -> None:
        with docker_errors(f"Remove image {image}"):
            self.client.images.remove(image, force=force)

    # -------------------------
    # Containers
    # -------------------------

    def create_container(self, spec: ContainerSpec) -> str:
        with docker_errors(f"Create container {spec.name}"):
            container = self.client.containers.create(
                image=spec.image,
                name=spec.name,
                environment=spec.env,
                ports=spec.ports,
                volumes=spec.binds,
                restart_policy={"Name": spec.restart_policy},
                mem_limit=spec.mem_limit,
                nano_cpus=spec.nano_cpus,
                labels=spec.labels,
            )
        logger.info(f"[docker] created {spec.name} ({container.id[:12]})")
        return container.id

    def _container(self, container_id: str):
        return self.client.containers.get(container_id)

    def start(self, container_id: str) -> None:
        with docker_errors(f"Start container {container_id[:12]}"):
            self._container(container_id).start()

    def stop(self, container_id: str) -> None:
        with docker_errors(f"Stop container {container_id[:12]}"):
            self._container(container_id).stop(timeout=10)

    def restart(self, container_id: str) -> None:
        with docker_errors(f"Restart container {container_id[:12]}"):
            self._container(container_id).restart(timeout=10)

    def remove(self, container_id: str, force: bool = False) -> None:
        with docker_errors(f"Remove container {container_id[:12]}"):
            self._container(container_id).remove(force=force)

    def inspect(self, container_id: str) -> Dict[str, Any]:
        with docker_errors(f"Inspect container {container_id[:12]}"):
            return self.client.api.inspect_container(container_id)

    def stats(self, container_id: str) -> Dict[str, Any]:
        with docker_errors(f"Stats for container {container_id[:12]}"):
            return self._container(container_id).stats(stream=False)

    def logs(self, container_id: str, tail: int = 100, timestamps: bool = True) -> str:
        with docker_errors(f"Logs for container {container_id[:12]}"):
            raw = self._container(container_id).logs(tail=tail, timestamps=timestamps)
        return raw.decode("utf-8", errors="replace")

    def exec(self, container_id: str, command: List[str]) -> Dict[str, Any]:
        with docker_errors(f"Exec in container {container_id[:12]}"):
            result = self._container(container_id).exec_run(command)
        return {
            "exit_code": result.exit_code,
            "output": (result.output or b"").decode("utf-8", errors="replace"),
        }

    def list_containers(self, all: bool = True) -> List[Dict[str, Any]]:
        with docker_errors("List containers"):
            return self.client.api.containers(all=all)

    # -------------------------
    # Daemon
    # -------------------------

    def info(self) -> Dict[str, Any]:
        with docker_errors("Docker info"):
            return self.client.info()

    def version(self) -> Dict[str, Any]:
        with docker_errors("Docker version"):
            return self.client.version()

    # -------------------------
    # Networks / volumes
    # -------------------------

    def list_networks(self) -> List[Dict[str, Any]]:
        with docker_errors("List networks"):
            return self.client.api.networks()

    def create_network(self, name: str, driver: str = "bridge") -> str:
        with docker_errors(f"Create network {name}"):
            return self.client.networks.create(name, driver=driver).id

    def list_volumes(self) -> List[Dict[str, Any]]:
        with docker_errors("List volumes"):
            return self.client.api.volumes().get("Volumes") or []

    def create_volume(self, name: str, driver: str = "local") -> str:
        with docker_errors(f"Create volume {name}"):
            return self.client.volumes.create(name=name, driver=driver).name
