"""
Person Registry Backend — Custom Exception Hierarchy
======================================================

What:  Application-specific exceptions for each failure class the API reports.
Why:   Services raise domain errors; global handlers in main.py turn them into
       consistent JSON bodies with the right status code.
How:   Each exception carries a message and an optional context dict.

Exception Hierarchy:
    PersonRegistryError (base)
    ├── ValidationError    → 400 Bad Request (field-level errors)
    ├── UploadError        → 400 Bad Request (file type / size rejected)
    ├── NotFoundError      → 404 Not Found
    ├── FileStorageError   → 500 Internal Server Error
    └── DatabaseError      → 500 Internal Server Error
"""

from typing import Any, Dict, List, Optional


class PersonRegistryError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info for logs and 500 diagnostics
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PersonRegistryError):
    """
    Raised when submitted person fields fail validation.

    Carries every failing field at once so the client can fix the whole
    form in one round trip.

    Example response:
        {
            "error": "validation_error",
            "message": "Validation failed",
            "errors": [
                {"field": "phone_number", "message": "Phone number must be a valid format", "value": "abc"}
            ]
        }
    """

    def __init__(
        self,
        errors: List[Dict[str, Any]],
        message: str = "Validation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.errors = errors

    @property
    def fields(self) -> List[str]:
        return [error["field"] for error in self.errors]


class UploadError(PersonRegistryError):
    """
    Raised when an uploaded file is rejected before any business logic runs.

    When:    MIME type outside the allow-list, or the request's files exceed
             the configured size limit.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Invalid file upload",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(PersonRegistryError):
    """
    Raised when a requested record does not exist.

    The store adapter returns None for missing rows; the service layer turns
    that into this exception so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "Person",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)


class FileStorageError(PersonRegistryError):
    """
    Raised when writing an upload to disk fails (disk full, permissions, I/O).
    HTTP: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(PersonRegistryError):
    """
    Raised when a store operation fails unexpectedly.

    context["details"] holds the driver's message and context["code"] the
    SQLSTATE when one is available. Both are returned in the 500 body as
    diagnostics, which is acceptable for this internal tool.
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
