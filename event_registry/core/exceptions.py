"""
Errors raised by the service layer.

Each error carries the HTTP status and error code it is reported with; the
message is returned to the client verbatim.
"""
from typing import Any


class ServiceError(Exception):
    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"

    @classmethod
    def for_resource(cls, resource: str, field: str, value: Any) -> "NotFoundError":
        return cls(f"{resource} not found with {field}: {value}")


class ConflictError(ServiceError):
    status_code = 409
    error_code = "CONFLICT"

    @classmethod
    def already_exists(cls, resource: str, field: str, value: Any) -> "ConflictError":
        return cls(f"{resource} already exists with {field}: {value}")


class InvalidStateError(ServiceError):
    status_code = 400
    error_code = "INVALID_STATE"


class UnauthorizedError(ServiceError):
    status_code = 401
    error_code = "UNAUTHORIZED"


class ForbiddenError(ServiceError):
    status_code = 403
    error_code = "FORBIDDEN"
