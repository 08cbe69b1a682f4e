# control_panel/orchestrator/instance_orchestrator.py
"""Instance orchestrator - turns a catalog entry into a running container."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from control_panel.core.access import Action, authorize
from control_panel.core.errors import (
    ConflictError, NotFoundError, PanelError, UpstreamError, ValidationError
)
from control_panel.core.events import EventEmitter, NullEventEmitter
from control_panel.core.events_model import PanelEvent
from control_panel.infrastructure.postgres.repository import (
    CatalogRepository, DomainRepository, InstanceRepository
)
from control_panel.registry.models import (
    CatalogEntry, EnvVar, InstalledInstance, InstanceStatus, LogLevel, PortMapping, VolumeMapping
)
from control_panel.runtime.docker_runtime import ContainerRuntime, ContainerSpec

logger = logging.getLogger(__name__)


CONTAINER_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]{0,127}$")
MB = 1024 * 1024
NANO_CPUS = 1_000_000_000
MAX_LOG_TAIL = 5000


@dataclass
class InstallParams:
    """Caller-supplied install parameters. None means "use the catalog default"."""
    container_name: str
    domain_id: Optional[UUID] = None
    subdomain: Optional[str] = None
    ports: Optional[List[PortMapping]] = None
    volumes: Optional[List[VolumeMapping]] = None
    environment: Optional[List[EnvVar]] = None
    memory: Optional[int] = None  # MB
    cpu: Optional[float] = None  # vCPU


# ============================================
# BINDING HELPERS
# ============================================

def resolve_bindings(
    entry: CatalogEntry,
    params: InstallParams,
) -> Tuple[List[PortMapping], List[VolumeMapping], List[EnvVar]]:
    """
    Caller values win: a supplied list replaces the catalog default for
    that category, an omitted one falls back to the catalog.
    """
    ports = list(params.ports) if params.ports is not None else list(entry.ports)
    volumes = list(params.volumes) if params.volumes is not None else list(entry.volumes)
    environment = list(params.environment) if params.environment is not None else list(entry.environment)
    return ports, volumes, environment


def missing_required_env(entry: CatalogEntry, environment: List[EnvVar]) -> List[str]:
    values = {env.key: env.value for env in environment}
    return [
        declared.key for declared in entry.environment
        if declared.required and not values.get(declared.key)
    ]


def build_container_spec(instance: InstalledInstance, image_ref: str) -> ContainerSpec:
    """Translate registry bindings into runtime units (bytes, nano-CPUs, "port/proto")."""
    return ContainerSpec(
        name=instance.container_name,
        image=image_ref,
        ports={f"{p.container}/{p.protocol or 'tcp'}": p.host for p in instance.ports},
        # Volumes without a host path are left to the image's own VOLUME declarations
        binds=[f"{v.host}:{v.container}" for v in instance.volumes if v.host],
        env=[f"{e.key}={e.value}" for e in instance.environment if e.value],
        mem_limit=int(instance.memory * MB),
        nano_cpus=int(instance.cpu * NANO_CPUS),
        restart_policy="unless-stopped",
        labels={
            "control-panel.instance": str(instance.instance_id),
            "control-panel.app": instance.entry_slug or "",
        },
    )


# ============================================
# ORCHESTRATOR
# ============================================

class InstanceOrchestrator:
    """
    Container lifecycle for installed instances.

    Install flow:
    1. Validate input and reserve the container name (registry record in "installing")
    2. Pull image (progress relayed as it arrives)
    3. Create container with bindings and limits
    4. Start container
    5. Record container id, mark "running"

    A failure in 2-4 marks the record "error" with the message logged on
    it; completed steps are not rolled back.
    """

    def __init__(
        self,
        catalog_repo: CatalogRepository,
        instance_repo: InstanceRepository,
        domain_repo: DomainRepository,
        runtime: ContainerRuntime,
        emitter: Optional[EventEmitter] = None,
        default_memory_mb: int = 512,
        default_cpu: float = 1.0,
    ):
        self._catalog_repo = catalog_repo
        self._instance_repo = instance_repo
        self._domain_repo = domain_repo
        self._runtime = runtime
        self._emitter = emitter or NullEventEmitter()
        self._default_memory_mb = default_memory_mb
        self._default_cpu = default_cpu

    # ============================================
    # INSTALL
    # ============================================

    def install(self, subject, entry_id: UUID, params: InstallParams) -> InstalledInstance:
        authorize(subject, Action.MANAGE)

        entry = self._catalog_repo.get(entry_id)
        if not entry:
            raise NotFoundError(f"App {entry_id} not found")

        self._validate_params(params)
        if self._instance_repo.get_by_container_name(params.container_name):
            raise ConflictError(f"Container name '{params.container_name}' is already in use")

        if params.domain_id is not None:
            domain = self._domain_repo.get(params.domain_id)
            if not domain:
                raise NotFoundError(f"Domain {params.domain_id} not found")
            authorize(subject, Action.READ, domain)

        ports, volumes, environment = resolve_bindings(entry, params)
        missing = missing_required_env(entry, environment)
        if missing:
            raise ValidationError(f"Missing required environment variables: {', '.join(missing)}")

        instance = InstalledInstance(
            entry_id=entry.entry_id,
            entry_slug=entry.slug,
            entry_name=entry.name,
            owner_id=subject.user_id,
            container_name=params.container_name,
            domain_id=params.domain_id,
            subdomain=params.subdomain,
            status=InstanceStatus.INSTALLING,
            ports=ports,
            volumes=volumes,
            environment=environment,
            memory=params.memory or entry.min_memory or self._default_memory_mb,
            cpu=params.cpu or entry.min_cpu or self._default_cpu,
        )
        # Unique constraint on container_name rejects a concurrent install that passed the pre-check
        self._instance_repo.create(instance)
        self._emit(PanelEvent.app_install_start(instance))
        logger.info(f"[orchestrator] installing {entry.slug} as {instance.container_name}")

        try:
            self._emit(PanelEvent.app_install_progress(instance, "pulling", {"message": f"Pulling {entry.image_ref}"}))
            self._runtime.pull(
                entry.image_ref,
                on_progress=lambda line: self._emit(PanelEvent.app_install_progress(instance, "pulling", line)),
            )

            self._emit(PanelEvent.app_install_progress(instance, "creating", {"message": "Creating container"}))
            instance.container_id = self._runtime.create_container(
                build_container_spec(instance, entry.image_ref)
            )

            self._emit(PanelEvent.app_install_progress(instance, "starting", {"message": "Starting container"}))
            self._runtime.start(instance.container_id)

        except Exception as e:
            reason = self._describe(e)
            logger.error(f"[orchestrator] install of {instance.container_name} failed: {reason}")

            instance.status = InstanceStatus.ERROR
            instance.append_log(reason, LogLevel.ERROR)
            self._instance_repo.update(instance)
            self._emit(PanelEvent.app_install_error(instance, reason))

            raise UpstreamError("Application could not be installed", details=reason) from e

        instance.status = InstanceStatus.RUNNING
        instance.append_log("Application installed successfully")
        self._instance_repo.update(instance)
        self._emit(PanelEvent.app_install_complete(instance))

        logger.info(f"[orchestrator] installed {entry.slug} as {instance.container_name} by {subject.email}")
        return instance

    # ============================================
    # LIFECYCLE
    # ============================================

    def start(self, subject, instance_id: UUID) -> InstalledInstance:
        return self._transition(subject, instance_id, "start", InstanceStatus.RUNNING, "Application started")

    def stop(self, subject, instance_id: UUID) -> InstalledInstance:
        return self._transition(subject, instance_id, "stop", InstanceStatus.STOPPED, "Application stopped")

    def restart(self, subject, instance_id: UUID) -> InstalledInstance:
        return self._transition(subject, instance_id, "restart", InstanceStatus.RUNNING, "Application restarted")

    def _transition(
        self,
        subject,
        instance_id: UUID,
        operation: str,
        target: InstanceStatus,
        message: str,
    ) -> InstalledInstance:
        """Run one runtime primitive; status and log change only after it succeeds."""
        authorize(subject, Action.MANAGE)
        instance = self._require_instance(instance_id)
        container_id = self._require_container(instance)

        getattr(self._runtime, operation)(container_id)

        instance.status = target
        instance.append_log(message)
        self._instance_repo.update(instance)
        logger.info(f"[orchestrator] {operation} {instance.container_name} by {subject.email}")
        return instance

    def reconfigure(
        self,
        subject,
        instance_id: UUID,
        environment: Optional[List[EnvVar]] = None,
        memory: Optional[int] = None,
        cpu: Optional[float] = None,
    ) -> InstalledInstance:
        """
        Recreate the container with new environment or limits.

        The record is "updating" while the old container is replaced; the
        name and bindings stay the same.
        """
        authorize(subject, Action.MANAGE)
        instance = self._require_instance(instance_id)
        entry = self._catalog_repo.get(instance.entry_id)
        if not entry:
            raise NotFoundError(f"App {instance.entry_id} not found")

        if environment is not None:
            missing = missing_required_env(entry, environment)
            if missing:
                raise ValidationError(f"Missing required environment variables: {', '.join(missing)}")
            instance.environment = list(environment)
        if memory is not None:
            instance.memory = memory
        if cpu is not None:
            instance.cpu = cpu
        self._validate_limits(instance.memory, instance.cpu)

        instance.status = InstanceStatus.UPDATING
        self._instance_repo.update(instance)

        try:
            if instance.container_id:
                self._runtime.remove(instance.container_id, force=True)
                instance.container_id = None
            instance.container_id = self._runtime.create_container(
                build_container_spec(instance, entry.image_ref)
            )
            self._runtime.start(instance.container_id)
        except Exception as e:
            reason = self._describe(e)
            instance.status = InstanceStatus.ERROR
            instance.append_log(reason, LogLevel.ERROR)
            self._instance_repo.update(instance)
            raise UpstreamError("Application could not be reconfigured", details=reason) from e

        instance.status = InstanceStatus.RUNNING
        instance.append_log("Application reconfigured")
        self._instance_repo.update(instance)
        return instance

    def uninstall(self, subject, instance_id: UUID) -> None:
        """Stop and remove the container, then delete the record no matter what the runtime says."""
        authorize(subject, Action.MANAGE)
        instance = self._require_instance(instance_id)

        try:
            if instance.container_id:
                try:
                    self._runtime.stop(instance.container_id)
                except Exception as e:
                    logger.info(f"[orchestrator] stop before remove ignored for {instance.container_name}: {e}")
                self._runtime.remove(instance.container_id, force=True)
        except Exception as e:
            logger.warning(f"[orchestrator] container removal failed for {instance.container_name}: {self._describe(e)}")

        self._instance_repo.delete(instance.instance_id)
        logger.info(f"[orchestrator] uninstalled {instance.container_name} by {subject.email}")

    # ============================================
    # READ
    # ============================================

    def list_instances(self, subject) -> List[InstalledInstance]:
        """Admins see everything, users their own; status is refreshed from the runtime."""
        owner_filter = None if subject.is_admin else subject.user_id
        instances = self._instance_repo.list(owner_id=owner_filter)
        for instance in instances:
            self._refresh_status(instance)
        return instances

    def get_instance(self, subject, instance_id: UUID) -> Tuple[InstalledInstance, Optional[Dict[str, Any]]]:
        """Return the instance plus live container state and memory stats when available."""
        instance = self._require_instance(instance_id)
        authorize(subject, Action.READ, instance)

        if not instance.container_id:
            return instance, None

        try:
            state = self._runtime.inspect(instance.container_id).get("State", {})
            stats = self._runtime.stats(instance.container_id)
        except PanelError as e:
            logger.warning(f"[orchestrator] container info unavailable for {instance.container_name}: {e}")
            return instance, {"state": {"Status": "error"}}

        self._apply_state(instance, state)
        memory_stats = stats.get("memory_stats") or {}
        return instance, {
            "state": state,
            "stats": {
                "memory": {
                    "usage": memory_stats.get("usage", 0),
                    "limit": memory_stats.get("limit", 0),
                },
            },
        }

    def get_logs(self, subject, instance_id: UUID, tail: int = 100) -> Dict[str, Any]:
        if not 1 <= tail <= MAX_LOG_TAIL:
            raise ValidationError(f"tail must be between 1 and {MAX_LOG_TAIL}")

        instance = self._require_instance(instance_id)
        authorize(subject, Action.READ, instance)

        container_logs = ""
        if instance.container_id:
            try:
                container_logs = self._runtime.logs(instance.container_id, tail=tail, timestamps=True)
            except PanelError as e:
                logger.warning(f"[orchestrator] container logs unavailable for {instance.container_name}: {e}")

        return {"app_logs": instance.logs, "container_logs": container_logs}

    # ============================================
    # HELPERS
    # ============================================

    def _require_instance(self, instance_id: UUID) -> InstalledInstance:
        instance = self._instance_repo.get(instance_id)
        if not instance:
            raise NotFoundError(f"Installed app {instance_id} not found")
        return instance

    @staticmethod
    def _require_container(instance: InstalledInstance) -> str:
        if not instance.container_id:
            raise ValidationError(f"Installed app {instance.container_name} has no container")
        return instance.container_id

    def _refresh_status(self, instance: InstalledInstance) -> None:
        if not instance.container_id:
            return
        try:
            state = self._runtime.inspect(instance.container_id).get("State", {})
        except PanelError:
            instance.status = InstanceStatus.ERROR
            return
        self._apply_state(instance, state)

    @staticmethod
    def _apply_state(instance: InstalledInstance, state: Dict[str, Any]) -> None:
        if instance.status in (InstanceStatus.INSTALLING, InstanceStatus.UPDATING):
            return
        instance.status = InstanceStatus.RUNNING if state.get("Running") else InstanceStatus.STOPPED

    def _validate_params(self, params: InstallParams) -> None:
        if not params.container_name or not CONTAINER_NAME_RE.match(params.container_name):
            raise ValidationError(
                "Container name must start with a letter or digit and contain only [a-zA-Z0-9_.-]"
            )
        for port in params.ports or []:
            if not 1 <= port.container <= 65535 or (port.host is not None and not 1 <= port.host <= 65535):
                raise ValidationError(f"Invalid port mapping {port.host}:{port.container}")
            if port.protocol not in ("tcp", "udp"):
                raise ValidationError(f"Invalid protocol '{port.protocol}'")
        self._validate_limits(params.memory, params.cpu)

    @staticmethod
    def _validate_limits(memory: Optional[int], cpu: Optional[float]) -> None:
        # Docker refuses memory limits below 6 MB
        if memory is not None and memory < 6:
            raise ValidationError("Memory must be at least 6 MB")
        if cpu is not None and cpu <= 0:
            raise ValidationError("CPU must be positive")

    @staticmethod
    def _describe(error: Exception) -> str:
        if isinstance(error, PanelError):
            return f"{error.message}: {error.details}" if error.details else error.message
        return str(error) or error.__class__.__name__

    def _emit(self, event: PanelEvent) -> None:
        self._emitter.emit([event])
