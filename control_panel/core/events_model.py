"""Event models for the notification relay."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict


SYSTEM_TOPIC = "system"
DOCKER_TOPIC = "docker"


def instance_topic(instance_id) -> str:
    return f"instances/{instance_id}"


@dataclass
class PanelEvent:
    """Lifecycle or progress event published on a topic."""

    event_type: str
    topic: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type,
            "topic": self.topic,
            "timestamp": self.timestamp.isoformat(),
            "data": self.payload,
        }

    # -------------------------
    # app:install:*
    # -------------------------

    @staticmethod
    def app_install_start(instance):
        return PanelEvent(
            event_type="app:install:start",
            topic=instance_topic(instance.instance_id),
            payload={
                "instance_id": str(instance.instance_id),
                "app": instance.entry_slug,
                "container_name": instance.container_name,
            },
        )

    @staticmethod
    def app_install_progress(instance, step: str, detail: Dict[str, Any] = None):
        """Progress step ("pulling", "creating", "starting"), merged with runtime detail."""
        payload = {"instance_id": str(instance.instance_id), "step": step}
        if detail:
            payload.update(detail)
        return PanelEvent(
            event_type="app:install:progress",
            topic=instance_topic(instance.instance_id),
            payload=payload,
        )

    @staticmethod
    def app_install_complete(instance):
        return PanelEvent(
            event_type="app:install:complete",
            topic=instance_topic(instance.instance_id),
            payload={
                "instance_id": str(instance.instance_id),
                "container_id": instance.container_id,
                "status": instance.status.value,
            },
        )

    @staticmethod
    def app_install_error(instance, reason: str):
        return PanelEvent(
            event_type="app:install:error",
            topic=instance_topic(instance.instance_id),
            payload={"instance_id": str(instance.instance_id), "error": reason},
        )

    # -------------------------
    # system:update:*
    # -------------------------

    @staticmethod
    def system_update_start(version: str):
        return PanelEvent("system:update:start", SYSTEM_TOPIC, {"version": version})

    @staticmethod
    def system_update_progress(step: str, output: str = ""):
        return PanelEvent("system:update:progress", SYSTEM_TOPIC, {"step": step, "output": output})

    @staticmethod
    def system_update_complete(version: str):
        return PanelEvent("system:update:complete", SYSTEM_TOPIC, {"version": version})

    @staticmethod
    def system_update_error(reason: str):
        return PanelEvent("system:update:error", SYSTEM_TOPIC, {"error": reason})

    # -------------------------
    # docker:pull:*
    # -------------------------

    @staticmethod
    def docker_pull_start(image: str):
        return PanelEvent("docker:pull:start", DOCKER_TOPIC, {"image": image})

    @staticmethod
    def docker_pull_progress(image: str, detail: Dict[str, Any]):
        payload = {"image": image}
        payload.update(detail)
        return PanelEvent("docker:pull:progress", DOCKER_TOPIC, payload)

    @staticmethod
    def docker_pull_complete(image: str):
        return PanelEvent("docker:pull:complete", DOCKER_TOPIC, {"image": image})

    @staticmethod
    def docker_pull_error(image: str, reason: str):
        return PanelEvent("docker:pull:error", DOCKER_TOPIC, {"image": image, "error": reason})
