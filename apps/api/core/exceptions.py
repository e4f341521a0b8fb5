"""
Custom exception classes and error handling.

Provides consistent error responses across the API.
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """Base API exception with consistent structure."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundError(APIException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND"
        )


class ValidationError(APIException):
    """Validation error."""

    def __init__(self, detail: str, field: Optional[str] = None):
        error_code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )


class UnauthorizedError(APIException):
    """Missing or wrong credential."""

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


# --- Domain errors raised by services; routers translate them ---

class EntityNotFoundError(LookupError):
    """A referenced row does not exist."""

    def __init__(self, entity: str, identifier: Any):
        super().__init__(f"{entity} not found: {identifier}")
        self.entity = entity
        self.identifier = str(identifier)


class InvalidDurationError(ValueError):
    """duration_weeks must be a positive integer."""

    def __init__(self, duration: Any, assignment_id: Any = None):
        where = f" (assignment {assignment_id})" if assignment_id else ""
        super().__init__(f"duration_weeks must be a positive integer, got {duration!r}{where}")
        self.duration = duration


class SessionValidationError(ValueError):
    """A logged session payload is inconsistent."""


def to_api_exception(exc: Exception) -> APIException:
    """Map a domain error to its HTTP counterpart."""
    if isinstance(exc, EntityNotFoundError):
        return NotFoundError(exc.entity, exc.identifier)
    if isinstance(exc, InvalidDurationError):
        return ValidationError(str(exc), field="duration_weeks")
    return ValidationError(str(exc))


# Domain errors a router may translate with to_api_exception
DOMAIN_ERRORS = (EntityNotFoundError, InvalidDurationError, SessionValidationError)
