"""
Custom exception classes for unified error handling.
"""

from fastapi import HTTPException, status


class AppBaseError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ValidationRejection(AppBaseError):
    """Raised when a candidate item is malformed (e.g. end is not after start)."""
    def __init__(self, message: str = "End time must be after start time", detail: str | None = None):
        super().__init__(message=message, detail=detail)


class ConflictRejection(AppBaseError):
    """Raised when a candidate item overlaps an item already in the collection.

    `conflicts` holds the existing items the candidate collides with.
    """
    def __init__(self, candidate, conflicts: list):
        self.candidate = candidate
        self.conflicts = list(conflicts)
        titles = ", ".join(f"'{item.title}'" for item in self.conflicts)
        super().__init__(
            message="Cannot save item due to a time conflict",
            detail=f"Overlaps with {titles}" if titles else None,
        )


class RemoteFailure(AppBaseError):
    """Raised when the remote store rejects or fails an operation."""
    def __init__(self, operation: str, original_error: str | None = None):
        self.operation = operation
        super().__init__(
            message=f"Remote operation '{operation}' failed",
            detail=original_error,
        )


class ItemNotFoundError(RemoteFailure):
    """Raised when the remote store does not know the requested item id."""
    def __init__(self, operation: str, item_id: str):
        self.item_id = item_id
        super().__init__(operation, f"Item '{item_id}' not found")


# ── Utility: convert to HTTPException ────────────────────

_STATUS_BY_ERROR: list[tuple[type[AppBaseError], int]] = [
    (ValidationRejection, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConflictRejection, status.HTTP_409_CONFLICT),
    (ItemNotFoundError, status.HTTP_404_NOT_FOUND),
    (RemoteFailure, status.HTTP_502_BAD_GATEWAY),
]


def app_error_to_http(error: AppBaseError, status_code: int | None = None) -> HTTPException:
    """Convert an AppBaseError to an HTTPException with consistent JSON body."""
    if status_code is None:
        status_code = next(
            (code for error_type, code in _STATUS_BY_ERROR if isinstance(error, error_type)),
            status.HTTP_400_BAD_REQUEST,
        )
    return HTTPException(
        status_code=status_code,
        detail={
            "error": error.message,
            "detail": error.detail,
            "type": type(error).__name__,
        },
    )
