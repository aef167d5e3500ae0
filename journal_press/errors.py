"""Error kinds surfaced by the journal press core."""
from typing import Optional


class JournalPressError(Exception):
    """Base class for every error the core raises to its callers."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(JournalPressError):
    """Raised when input is malformed or a required field is missing."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(JournalPressError):
    """Raised when a referenced record does not exist."""

    def __init__(self, kind: str, record_id: str, message: Optional[str] = None):
        self.kind = kind
        self.record_id = record_id
        super().__init__(message or f"{kind.capitalize()} '{record_id}' not found.")


class PermissionDeniedError(JournalPressError):
    """Raised when the current user may not perform an operation."""


class LoginRequiredError(PermissionDeniedError):
    """Raised when an operation needs a user and nobody is logged in."""


class BackendUnavailableError(JournalPressError):
    """Raised when a collaborator (database, file storage) call fails."""
