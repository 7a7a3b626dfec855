"""
Application error taxonomy.

Every error is an HTTPException so FastAPI renders it directly:

- AuthenticationError (401): no valid caller identity
- ValidationError (400): malformed or missing fields
- ConflictError (409): duplicate record
- NotFoundError (404): record absent OR not owned by the caller
- ForbiddenError (403): caller is known but lacks group membership
- DependencyError (500): storage or messaging collaborator failed
"""

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for application errors."""

    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail_default: str = "An internal error occurred."

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.detail_default,
            headers=headers,
        )


class AuthenticationError(AppError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Not authenticated"

    def __init__(self, detail: str | None = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ValidationError(AppError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Invalid request"


class ConflictError(AppError):
    status_code_default = status.HTTP_409_CONFLICT
    detail_default = "Resource already exists"


class NotFoundError(AppError):
    status_code_default = status.HTTP_404_NOT_FOUND
    detail_default = "Resource not found"


class ForbiddenError(AppError):
    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "You do not have permission to access this resource"


class DependencyError(AppError):
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail_default = "A downstream service failed."
