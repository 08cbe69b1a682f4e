# control_panel/core/errors.py

from typing import Optional


# -----------------------------
# Base Errors
# -----------------------------

class PanelError(Exception):
    """Base class for all control panel errors."""
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


# -----------------------------
# Request Errors
# -----------------------------

class ValidationError(PanelError):
    """Malformed or missing input, or a precondition that does not hold."""
    status_code = 400


class AuthenticationError(PanelError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class AuthorizationError(PanelError):
    """Authenticated identity may not perform the action."""
    status_code = 403


class NotFoundError(PanelError):
    status_code = 404


class ConflictError(PanelError):
    """Unique name already taken."""
    status_code = 409


# -----------------------------
# Upstream Errors
# -----------------------------

class UpstreamError(PanelError):
    """Container runtime or host command failed."""
    status_code = 500
