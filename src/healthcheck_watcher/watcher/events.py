"""Docker lifecycle events and attribute resolution."""

from dataclasses import dataclass, field
from typing import Any

# Event types
TYPE_CONTAINER = "container"
TYPE_SERVICE = "service"

# Actions the dispatcher reacts to
ACTION_START = "start"
ACTION_DIE = "die"
ACTION_HEALTHY = "health_status: healthy"
ACTION_UNHEALTHY = "health_status: unhealthy"
ACTION_UPDATE = "update"

# Attribute keys set by Docker and swarm
ATTR_SERVICE_NAME = "com.docker.swarm.service.name"
ATTR_SERVICE_ID = "com.docker.swarm.service.id"
ATTR_IMAGE = "image"
ATTR_EXIT_CODE = "exitCode"
ATTR_UPDATE_STATE_NEW = "updatestate.new"
ATTR_CONTAINER_ID = "container_id"

UPDATE_STATE_UPDATING = "updating"


@dataclass(frozen=True)
class LifecycleEvent:
    """One message from the Docker events API."""

    type: str
    action: str
    actor_id: str
    attributes: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_docker(cls, message: dict[str, Any]) -> "LifecycleEvent":
        """Build an event from a decoded ``/events`` message."""
        actor = message.get("Actor") or {}
        attributes = actor.get("Attributes") or {}
        return cls(
            type=message.get("Type") or "",
            action=message.get("Action") or "",
            actor_id=actor.get("ID") or "",
            attributes={str(k): str(v) for k, v in attributes.items()},
        )


def resolve_service_name(attributes: dict[str, str]) -> str:
    """Swarm service name, falling back to the image for plain containers."""
    if ATTR_SERVICE_NAME in attributes:
        return attributes[ATTR_SERVICE_NAME]
    return attributes.get(ATTR_IMAGE, "")


def resolve_service_id(attributes: dict[str, str]) -> str:
    """Swarm service id, or "" for containers outside a service.

    Containers without a service id all share the "" key.
    """
    return attributes.get(ATTR_SERVICE_ID, "")
