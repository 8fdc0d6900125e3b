"""Exception hierarchy shared by every layer.

Routes map these to HTTP status codes; services raise them before any
write so that a failed check never leaves partial state behind.
"""
from typing import Optional


class WorkshopTrackerError(Exception):
    """Base class for all application errors."""

    status_code: int = 400

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(WorkshopTrackerError):
    """Input rejected before reaching the database."""

    status_code = 400


class AuthenticationError(WorkshopTrackerError):
    """Missing, unknown or expired credentials."""

    status_code = 401


class PermissionDeniedError(WorkshopTrackerError):
    """The caller's role does not allow the action."""

    status_code = 403


class NotFoundError(WorkshopTrackerError):
    """The requested record does not exist (or is outside the caller's scope)."""

    status_code = 404


class ConflictError(WorkshopTrackerError):
    """The write would break a uniqueness or reference rule."""

    status_code = 409


class FetchError(WorkshopTrackerError):
    """One fetch of a concurrent fetch group failed; the whole group is discarded."""

    status_code = 500


class ExportError(WorkshopTrackerError):
    """A view could not be serialized; no file was produced."""

    status_code = 500
