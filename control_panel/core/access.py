# control_panel/core/access.py
"""Access control filter - one predicate for every ownership/role decision."""

from enum import Enum
from typing import Any, Optional

from control_panel.core.errors import AuthorizationError


class Action(Enum):
    READ = "read"
    WRITE = "write"
    MANAGE = "manage"  # admin-only operations (install, host ops, user admin)


def is_allowed(subject, action: Action, resource: Optional[Any] = None) -> bool:
    """
    Decide whether subject may perform action on resource.

    Rules:
    - admin role passes everything
    - MANAGE is admin-only
    - READ/WRITE pass when the resource is owned by the subject
    """
    if subject is None or not subject.is_active:
        return False
    if subject.is_admin:
        return True
    if action == Action.MANAGE:
        return False
    if resource is None:
        return False
    return getattr(resource, "owner_id", None) == subject.user_id


def authorize(subject, action: Action, resource: Optional[Any] = None) -> None:
    """Raise AuthorizationError unless is_allowed()."""
    if not is_allowed(subject, action, resource):
        if action == Action.MANAGE:
            raise AuthorizationError("Admin access required")
        raise AuthorizationError("Access denied")
