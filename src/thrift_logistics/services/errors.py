"""Service-layer exceptions.

Raised by the services when a business rule is violated. The API layer catches
these and translates them into HTTP responses; anything else is treated as an
internal fault.
"""

from __future__ import annotations

import enum
from typing import Any


class ErrorCategory(str, enum.Enum):
    AUTH_REQUIRED = "AUTH_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    BUSINESS_UNAVAILABLE = "BUSINESS_UNAVAILABLE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


HTTP_STATUS_BY_CATEGORY: dict[ErrorCategory, int] = {
    ErrorCategory.AUTH_REQUIRED: 401,
    ErrorCategory.FORBIDDEN: 403,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.BUSINESS_UNAVAILABLE: 503,
    ErrorCategory.VALIDATION_ERROR: 422,
    ErrorCategory.UPSTREAM_FAILURE: 502,
    ErrorCategory.INTERNAL_ERROR: 500,
}


class ServiceError(Exception):
    category: ErrorCategory = ErrorCategory.INTERNAL_ERROR
    default_code: str = "INTERNAL_ERROR"
    default_message: str = "Something went wrong. Please try again."

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CATEGORY[self.category]

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class AuthRequired(ServiceError):
    category = ErrorCategory.AUTH_REQUIRED
    default_code = "AUTH_REQUIRED"
    default_message = "Authentication required"


class Forbidden(ServiceError):
    category = ErrorCategory.FORBIDDEN
    default_code = "FORBIDDEN"
    default_message = "Access denied"


class NotFound(ServiceError):
    category = ErrorCategory.NOT_FOUND
    default_code = "NOT_FOUND"
    default_message = "Resource not found"


class Conflict(ServiceError):
    category = ErrorCategory.CONFLICT
    default_code = "CONFLICT"
    default_message = "The request conflicts with the current state"


class BusinessUnavailable(ServiceError):
    """Expected, retryable business condition; not a system fault."""

    category = ErrorCategory.BUSINESS_UNAVAILABLE
    default_code = "BUSINESS_UNAVAILABLE"
    default_message = "Not available yet, try again shortly"


class ValidationFailed(ServiceError):
    category = ErrorCategory.VALIDATION_ERROR
    default_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class UpstreamFailure(ServiceError):
    category = ErrorCategory.UPSTREAM_FAILURE
    default_code = "UPSTREAM_FAILURE"
    default_message = "An external service is unavailable, please retry"


class InternalFault(ServiceError):
    category = ErrorCategory.INTERNAL_ERROR
    default_code = "INTERNAL_ERROR"
