"""Domain exceptions for the mentoring cache service.

Defines domain-level exceptions that represent configuration errors,
invalid input and backing-store failures. These exceptions are independent
of the HTTP layer; exception handlers map them to responses.

Loader failures raised inside get_or_load are never wrapped in one of
these: the caller sees the loader's own exception.
"""

from typing import Any


class MentoringException(Exception):
    """Base exception for all mentoring cache errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. namespace, key).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON error body used by the exception handlers."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(MentoringException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(MentoringException):
    """Raised when the admin key is missing or wrong."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class UnknownNamespaceException(MentoringException):
    """Raised when a cache namespace is referenced that is not registered.

    A configuration error, never a cache miss: static config referencing it
    fails startup, admin input referencing it is rejected.
    """

    def __init__(self, namespace: str) -> None:
        """Initialize with the unregistered namespace name.

        Args:
            namespace: The namespace that is not registered.
        """
        super().__init__(
            f"Unknown cache namespace: {namespace}",
            "UNKNOWN_NAMESPACE",
            {"namespace": namespace},
        )


class CacheConfigurationException(MentoringException):
    """Raised at startup when cache settings are inconsistent."""

    def __init__(self, message: str, setting: str | None = None) -> None:
        details = {"setting": setting} if setting else {}
        super().__init__(message, "CACHE_CONFIGURATION_ERROR", details)


class CacheStoreException(MentoringException):
    """Raised when a backing-store write or delete fails or times out.

    Reads never raise this: the cache core treats a failed read as a miss.
    """

    def __init__(self, operation: str, key: str, reason: str) -> None:
        """Initialize with the failed operation and key.

        Args:
            operation: Store operation (e.g. 'write', 'delete', 'delete_prefix').
            key: Cache key or prefix involved.
            reason: Short description of the failure (e.g. 'timeout').
        """
        super().__init__(
            f"Cache store {operation} failed for {key}: {reason}",
            "CACHE_STORE_ERROR",
            {"operation": operation, "key": key, "reason": reason},
        )


class CacheUnavailableException(MentoringException):
    """Raised when the cache is not wired into the application (e.g. startup failed)."""

    def __init__(self, message: str = "Cache service is not available") -> None:
        super().__init__(message, "CACHE_UNAVAILABLE")


class ResourceNotFoundException(MentoringException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'organization').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class SqlNotConfiguredException(MentoringException):
    """Raised when an operation requires Postgres but DATABASE_URL is not set."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SQL_NOT_CONFIGURED",
        )


class InvalidationTransportException(MentoringException):
    """Raised by an invalidation transport on a failed publish or a lost subscription.

    The invalidation bus catches it: a failed publish becomes a failed
    PublishResult, a lost subscription is retried. It never reaches the
    caller of a write.
    """

    def __init__(self, channel: str, reason: str) -> None:
        super().__init__(
            f"Invalidation transport error on {channel}: {reason}",
            "INVALIDATION_TRANSPORT_ERROR",
            {"channel": channel, "reason": reason},
        )
