"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(AppError):
    """Raised when a requested record is missing."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ValidationError(AppError):
    """Raised when input violates an entity invariant or cannot be mapped."""

    def __init__(self, message: str = "Invalid input", status_code: int = 422):
        super().__init__(message, status_code=status_code)


class DependentRecordsError(ValidationError):
    """Raised when a delete is blocked by records that still reference the target."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class InvalidPaginationError(AppError):
    """Raised for page < 1 or page size < 1."""

    def __init__(self, message: str = "page and page_size must be >= 1"):
        super().__init__(message, status_code=400)


class TypeMismatchError(AppError):
    """Raised when a segmentation operator does not fit the field type."""

    def __init__(self, message: str):
        super().__init__(message, status_code=422)


class TransportError(AppError):
    """Raised when the storage backend fails; carries the backend message."""

    def __init__(self, message: str = "Storage backend failure"):
        super().__init__(message, status_code=502)


def from_pydantic(exc: PydanticValidationError, entity: str) -> ValidationError:
    """Flatten a pydantic error into a single readable ValidationError."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or entity
        parts.append(f"{loc}: {err.get('msg')}")
    return ValidationError(f"Invalid {entity}: " + "; ".join(parts))


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    return {
        "statusCode": error.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(
            {"message": error.message, "error": type(error).__name__, "status": "error"}
        ),
    }
