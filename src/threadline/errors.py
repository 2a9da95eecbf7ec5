from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


class StoreError(Exception):
    """Base class for failures reported by the comment store."""


class VersionConflictError(StoreError):
    """Raised when a document changed between fetch and save."""

    def __init__(self, message: str = "Document version is stale") -> None:
        super().__init__(message)


class RecordExistsError(StoreError):
    """Raised when a comments document already exists for the same owner."""

    def __init__(self, message: str = "Comments record already exists") -> None:
        super().__init__(message)


class TransientStoreError(StoreError):
    """Raised on network failures and timeouts talking to the store."""


class RetryExhaustedError(Exception):
    """Raised when a retried call runs out of attempts or time."""

    def __init__(self, reason: str, attempts: int, last_error: BaseException | None = None) -> None:
        super().__init__(f"Retry exhausted ({reason}) after {attempts} attempts")
        self.reason = reason
        self.attempts = attempts
        self.last_error = last_error
