"""
Domain Exceptions

Errors raised by repositories and domain services. Callers translate them
into transport-level responses; nothing here knows about HTTP.
"""

from typing import Optional, Any, Dict


class InfoDotException(Exception):
    """Base exception for InfoDot domain errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class EntityNotFoundException(InfoDotException):
    """Raised when a looked-up entity does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity} {entity_id} not found",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity, "entity_id": entity_id},
        )


class PermissionDeniedException(InfoDotException):
    """Raised when a user acts on a record they do not control."""

    def __init__(self, message: str, user_id: Optional[int] = None):
        details = {}
        if user_id is not None:
            details["user_id"] = user_id

        super().__init__(
            message=message, error_code="PERMISSION_DENIED", details=details
        )


class InvalidOperationException(InfoDotException):
    """Raised when arguments are valid in type but not in meaning."""

    def __init__(self, message: str, **details: Any):
        super().__init__(
            message=message, error_code="INVALID_OPERATION", details=details
        )


class BroadcastException(InfoDotException):
    """Raised when an event cannot be published to its channel."""

    def __init__(
        self, channel: str, event: str, original_error: Optional[Exception] = None
    ):
        details = {"channel": channel, "event": event}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=f"Failed to publish {event} on {channel}",
            error_code="BROADCAST_FAILED",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error
