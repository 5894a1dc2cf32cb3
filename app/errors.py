"""Error taxonomy shared by the record store, services and routes.

Every error is an ``HTTPException`` so FastAPI renders it directly.
The ``detail`` is a short machine readable code such as ``email_in_use``.
"""

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "internal_error"

    def __init__(self, code: str | None = None, headers: dict | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=code or self.default_code,
            headers=headers,
        )

    @property
    def code(self) -> str:
        return self.detail


class InvalidArgument(AppError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_argument"


class Unauthorized(AppError):
    """Missing or invalid bearer credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "invalid_token"

    def __init__(self, code: str | None = None):
        super().__init__(code, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AppError):
    """Authenticated caller does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class Conflict(AppError):
    """Duplicate unique key."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class Internal(AppError):
    pass
