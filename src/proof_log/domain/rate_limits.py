"""Domain models for attempt rate limiting."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum


class OperationClass(StrEnum):
    """Named rate-limit policy buckets."""

    AUTH = "AUTH"
    PIN_VERIFICATION = "PIN_VERIFICATION"
    EMAIL = "EMAIL"


class DecisionOutcome(StrEnum):
    """How a rate-limit decision was reached."""

    ALLOWED = "allowed"
    DENIED = "denied"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Thresholds for one operation class."""

    max_attempts: int
    window: timedelta
    lockout: timedelta


DEFAULT_POLICIES: dict[OperationClass, RateLimitPolicy] = {
    OperationClass.AUTH: RateLimitPolicy(
        max_attempts=5,
        window=timedelta(minutes=15),
        lockout=timedelta(minutes=30),
    ),
    OperationClass.PIN_VERIFICATION: RateLimitPolicy(
        max_attempts=3,
        window=timedelta(minutes=10),
        lockout=timedelta(minutes=15),
    ),
    OperationClass.EMAIL: RateLimitPolicy(
        max_attempts=3,
        window=timedelta(hours=1),
        lockout=timedelta(hours=1),
    ),
}


@dataclass(frozen=True)
class RateLimitEntry:
    """Attempts recorded for one (operation class, identifier) pair."""

    attempts: int
    first_attempt: datetime
    locked_until: datetime | None = None


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of checking an identifier against its policy.

    ``INDETERMINATE`` means the entry could not be read; it is treated as
    allowed so an unavailable store never locks users out.
    """

    outcome: DecisionOutcome
    remaining_attempts: int
    locked_until: datetime | None = None

    @property
    def allowed(self) -> bool:
        """Return whether the operation may proceed."""
        return self.outcome is not DecisionOutcome.DENIED
