"""
Cache Store Exceptions

Raised by ``CacheStore`` implementations. Redis client errors are wrapped in
these with exception chaining so callers never import redis-py error types.
Every exception carries the store ``backend`` and, where one applies, the
logical cache ``key`` (without the store prefix) in ``details``.
"""

from typing import Optional, Any, Dict


class CacheStoreException(Exception):
    """Base exception for cache store errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        backend: str = "redis",
    ):
        self.message = message
        self.error_code = error_code
        self.backend = backend
        self.details = {"backend": backend, **(details or {})}
        super().__init__(self.message)

    @property
    def key(self) -> Optional[str]:
        return self.details.get("key")


class CacheConnectionException(CacheStoreException):
    """The store could not be reached, or the connection dropped mid-call."""

    def __init__(
        self,
        message: str = "Cache store connection failed",
        url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        key: Optional[str] = None,
    ):
        details = {"key": key} if key else {}
        if url:
            details["url"] = url
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=message, error_code="CACHE_CONNECTION_ERROR", details=details
        )
        if original_error:
            self.__cause__ = original_error


class CacheOperationTimeoutException(CacheStoreException):
    """A single store command exceeded the socket timeout."""

    def __init__(
        self, operation: str, timeout_seconds: float, key: Optional[str] = None
    ):
        super().__init__(
            message=f"Cache {operation} timed out after {timeout_seconds}s",
            error_code="CACHE_TIMEOUT_ERROR",
            details={"operation": operation, "key": key, "timeout_seconds": timeout_seconds},
        )


class CacheCommandException(CacheStoreException):
    """
    The store rejected a command.

    ``reply`` is the leading word of the server's error reply
    (``WRONGTYPE``, ``NOSCRIPT``, ``OOM``...), useful for alerting on one
    class of failure without parsing messages.
    """

    def __init__(self, operation: str, key: Optional[str], original_error: Exception):
        text = str(original_error)
        self.reply = text.split(" ", 1)[0] if text else type(original_error).__name__

        super().__init__(
            message=f"Cache {operation} rejected: {text}",
            error_code="CACHE_COMMAND_ERROR",
            details={"operation": operation, "key": key, "reply": self.reply},
        )
        self.__cause__ = original_error


class CacheSerializationException(CacheStoreException):
    """
    A stored value could not be turned back into text, or a value could not
    be written as text.

    Args:
        key: Logical cache key
        stage: ``"decode"`` when reading, ``"encode"`` when writing
        size: Length in bytes of the offending raw value, when known
    """

    def __init__(
        self,
        key: str,
        stage: str,
        original_error: Optional[Exception] = None,
        size: Optional[int] = None,
    ):
        details = {"key": key, "stage": stage}
        if size is not None:
            details["size"] = size
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=f"Cache value for '{key}' failed to {stage}",
            error_code="CACHE_SERIALIZATION_ERROR",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error
