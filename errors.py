"""
Error types shared by the clients, resolver and pipeline, plus the result wrapper
handed to UI callers.
"""

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error occurred!!!"


class NotesError(Exception):
    """Base class for every failure raised by this package."""


class ConfigurationMissing(NotesError):
    """A required setting is absent or blank."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Missing required setting: {field}.")


class ValidationError(NotesError):
    """Caller input is malformed. Raised before any network call."""


class UpstreamRequestFailed(NotesError):
    """
    A call to the tracking API, the wiki API or the AI service failed.

    Carries the logical operation name, the underlying cause and, when the server
    answered, the HTTP status code.
    """

    def __init__(self, operation: str, cause: Any, status: Optional[int] = None):
        self.operation = operation
        self.cause = cause
        self.status = status
        detail = f" (HTTP {status})" if status else ""
        super().__init__(f"{operation} failed{detail}: {cause}")


class NotFound(NotesError):
    """A human-facing name did not resolve to an identifier."""

    def __init__(self, kind: str, name: str, message: Optional[str] = None):
        self.kind = kind
        self.name = name
        super().__init__(message or f"{kind.capitalize()} with name {name} not found.")


def handle_action(callback: Callable[[], Any]) -> Dict[str, Any]:
    """Run callback and wrap the outcome as {status, message, data}.

    NotesError subclasses map to status 400 with their message; anything else is
    logged and reported as a generic 500.
    """
    try:
        data = callback()
    except NotesError as exc:
        return {"status": 400, "message": str(exc), "data": None}
    except Exception:
        logger.exception("Unhandled error while running action")
        return {"status": 500, "message": UNKNOWN_ERROR_MESSAGE, "data": None}
    return {"status": 200, "message": "Operation successful", "data": data}


__all__ = [
    "NotesError",
    "ConfigurationMissing",
    "ValidationError",
    "UpstreamRequestFailed",
    "NotFound",
    "handle_action",
]
