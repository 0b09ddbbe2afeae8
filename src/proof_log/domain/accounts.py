"""Domain models for accounts and one-time PIN tokens."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class TokenPurpose(StrEnum):
    """What a PIN token proves control of the email address for."""

    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True)
class PendingToken:
    """A PIN and the instant after which it no longer validates."""

    token: str
    expires_at: datetime


@dataclass(frozen=True)
class AccountRecord:
    """Represents an account stored in the auth database."""

    id: str
    email: str
    name: str
    password_hash: str
    created_at: datetime
    email_verified: bool = False
    email_verification: PendingToken | None = None
    password_reset: PendingToken | None = None

    def pending_token(self, purpose: TokenPurpose) -> PendingToken | None:
        """Return the stored token for a purpose, if any."""
        if purpose is TokenPurpose.EMAIL_VERIFICATION:
            return self.email_verification
        return self.password_reset
