# -*- coding: utf-8 -*-
"""
Domain errors raised by the workflow services.

They subclass HTTPException so that routers can let them propagate and
FastAPI renders them as-is. ``detail`` is always ``{"code", "message"}`` so
clients can tell "class full" apart from "already enrolled".
"""

from fastapi import HTTPException, status


class AcademyError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "error"

    def __init__(self, message, code=None):
        self.code = code or self.default_code
        self.message = message
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": message},
        )

    def __str__(self):
        return f"[{self.code}] {self.message}"


class ValidationError(AcademyError):
    """Malformed input: bad id, missing field, unsupported enum value."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "validation_error"


class NotFoundError(AcademyError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class ConflictError(AcademyError):
    """Business-rule violation; repeating the same call will fail again."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"

    CLASS_FULL = "class_full"
    ALREADY_ENROLLED = "already_enrolled"
    DUPLICATE_REQUEST = "duplicate_request"
    INVALID_STATE = "invalid_state"


class UnauthorizedError(AcademyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthorized"


class PermissionDeniedError(AcademyError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"


class GatewayError(AcademyError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_code = "gateway_error"


def validate_id(value, label="id"):
    """Coerce an identifier to int, raising ValidationError on bad input."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label}: {value!r}", code="invalid_id")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label}: {value!r}", code="invalid_id")
    if parsed <= 0 or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"Invalid {label}: {value!r}", code="invalid_id")
    return parsed
