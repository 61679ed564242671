"""
Domain errors raised by the service layer.

Each error carries the HTTP status it maps to and a stable machine-readable
code. `main.create_app` registers one handler that renders them as
``{"detail": ..., "code": ...}``.
"""

from fastapi import status


class WritersInnError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(WritersInnError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_message = "Invalid request"


class Conflict(WritersInnError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "conflict"
    default_message = "Resource already exists"


class InvalidToken(WritersInnError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_token"
    default_message = "Invalid or expired token"


class NotFound(WritersInnError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class Unauthorized(WritersInnError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "unauthorized"
    default_message = "Unauthorized"


class Forbidden(WritersInnError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Access denied"


class CooldownViolation(WritersInnError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "cooldown_violation"
    default_message = "You are not eligible to take a new task yet"


class AlreadySubmitted(WritersInnError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_submitted"
    default_message = "Assignment has already been submitted"


class UpstreamFailure(WritersInnError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_failure"
    default_message = "A backing service failed to process the request"
