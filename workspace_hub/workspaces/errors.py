"""Error taxonomy for workspace operations."""

from __future__ import annotations

from fastapi import status


class WorkspaceError(Exception):
    """Base class; ``status_code`` and ``detail`` feed the HTTP error handler."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Workspace request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(WorkspaceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid input"


class ConflictError(WorkspaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflicting state"


class AuthError(WorkspaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"


class NotFoundError(WorkspaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class PermissionDeniedError(WorkspaceError, PermissionError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient role"
