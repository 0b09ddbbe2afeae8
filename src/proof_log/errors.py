"""Application error types."""

from datetime import datetime


class ProofLogError(Exception):
    """Base class for expected application errors."""


class ValidationError(ProofLogError):
    """Raised when user input fails validation."""


class RecordNotFoundError(ProofLogError):
    """Raised when no record exists for a date key."""


class RecordFinalizedError(ProofLogError):
    """Raised when a write targets a record from a past day."""


class RateLimitExceededError(ProofLogError):
    """Raised by callers that turn a denied rate-limit decision into an error."""

    def __init__(self, message: str, locked_until: datetime | None = None) -> None:
        super().__init__(message)
        self.locked_until = locked_until


class InvalidCredentialsError(ProofLogError):
    """Raised when an email/password pair does not match an account."""


class EmailNotVerifiedError(ProofLogError):
    """Raised when an unverified account tries to log in."""


class AccountExistsError(ProofLogError):
    """Raised when signing up with an email that is already registered."""


class EmailDeliveryError(ProofLogError):
    """Raised when the email provider rejects a message."""
