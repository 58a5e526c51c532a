from typing import Any, Dict, Optional


class AppError(Exception):
    """
    Root of every error flashdeck raises on purpose.

    ``error_code`` is a stable machine-readable tag returned to API clients;
    ``details`` carries the identifiers needed to act on the error.
    """

    def __init__(self, message: str, error_code: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = dict(details or {})

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ValidationError(AppError):
    """A caller supplied a value the service cannot act on, e.g. a blank project name"""

    def __init__(self, message: str, field: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", {**(details or {}), "field": field})


class ResourceNotFoundError(AppError):
    """A project (or other addressed resource) does not exist in storage"""

    def __init__(self, resource_type: str, resource_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"{resource_type} {resource_id!r} does not exist",
            "RESOURCE_NOT_FOUND",
            {**(details or {}), "resource_type": resource_type, "resource_id": resource_id},
        )


class ExternalServiceError(AppError):
    """The storage backend could not be reached"""

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Could not reach {service}: {message}",
            "EXTERNAL_SERVICE_ERROR",
            {**(details or {}), "service": service},
        )
