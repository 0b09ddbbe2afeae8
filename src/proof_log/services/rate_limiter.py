"""Sliding-window attempt limiter with lockout."""

import logging
import math
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from proof_log.domain.rate_limits import (
    DEFAULT_POLICIES,
    DecisionOutcome,
    OperationClass,
    RateLimitDecision,
    RateLimitEntry,
    RateLimitPolicy,
)

_logger = logging.getLogger(__name__)

EXEMPT_REMAINING_ATTEMPTS = 999

_KEY_REPLACEMENTS = (
    ("@", "_at_"),
    (".", "_dot_"),
    ("+", "_plus_"),
    ("/", "_slash_"),
    ("=", "_equals_"),
)
_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


class RateLimitStore(Protocol):
    """Key-value persistence for rate-limit entries."""

    def get_entry(self, key: str) -> RateLimitEntry | None:
        """Return the entry stored under ``key``, if present."""

    def set_entry(self, key: str, entry: RateLimitEntry) -> None:
        """Store ``entry`` under ``key``, replacing any previous value."""

    def delete_entry(self, key: str) -> None:
        """Remove the entry stored under ``key``."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def normalize_identifier(identifier: str) -> str:
    """Normalize an identifier (typically an email) for keying."""
    return identifier.strip().lower()


def storage_key(operation_class: OperationClass, identifier: str) -> str:
    """Build a store-safe key for an operation class and identifier."""
    encoded = normalize_identifier(identifier)
    for char, replacement in _KEY_REPLACEMENTS:
        encoded = encoded.replace(char, replacement)
    encoded = _UNSAFE_KEY_CHARS.sub("_", encoded)
    return f"{operation_class.value}_{encoded}"


@dataclass
class RateLimiter:
    """Counts attempts per (operation class, identifier) and locks out abuse.

    Identifiers on ``allowlist`` bypass limiting entirely; this exists for
    operational and testing accounts and is configured, not hard-coded.

    Store failures never propagate: a failed read yields an
    ``INDETERMINATE`` decision that is treated as allowed, and failed writes
    are logged. The load/update/persist cycle is not atomic, so two
    concurrent checks for the same identifier can under-count by one.
    """

    store: RateLimitStore
    policies: dict[OperationClass, RateLimitPolicy] = field(
        default_factory=lambda: dict(DEFAULT_POLICIES)
    )
    allowlist: frozenset[str] = frozenset()
    clock: Callable[[], datetime] = _utcnow

    def __post_init__(self) -> None:
        self.allowlist = frozenset(
            normalize_identifier(identifier) for identifier in self.allowlist
        )

    def is_exempt(self, identifier: str) -> bool:
        """Return whether the identifier bypasses rate limiting."""
        return normalize_identifier(identifier) in self.allowlist

    def check(
        self, identifier: str, operation_class: OperationClass = OperationClass.AUTH
    ) -> RateLimitDecision:
        """Record an attempt and decide whether it may proceed."""
        if self.is_exempt(identifier):
            return RateLimitDecision(
                outcome=DecisionOutcome.ALLOWED,
                remaining_attempts=EXEMPT_REMAINING_ATTEMPTS,
            )

        policy = self.policies[operation_class]
        key = storage_key(operation_class, identifier)
        now = self.clock()

        try:
            entry = self.store.get_entry(key)
        except Exception:
            _logger.exception("Failed to read rate limit entry %s", key)
            return RateLimitDecision(
                outcome=DecisionOutcome.INDETERMINATE,
                remaining_attempts=policy.max_attempts - 1,
            )

        if entry is None:
            return self._start_window(key, policy, now)

        if entry.locked_until is not None:
            if now < entry.locked_until:
                return RateLimitDecision(
                    outcome=DecisionOutcome.DENIED,
                    remaining_attempts=0,
                    locked_until=entry.locked_until,
                )
            return self._start_window(key, policy, now)

        if now - entry.first_attempt > policy.window:
            return self._start_window(key, policy, now)

        attempts = entry.attempts + 1
        remaining = max(0, policy.max_attempts - attempts)
        if attempts >= policy.max_attempts:
            locked_until = now + policy.lockout
            self._save(
                key,
                RateLimitEntry(
                    attempts=attempts,
                    first_attempt=entry.first_attempt,
                    locked_until=locked_until,
                ),
            )
            _logger.warning(
                "Rate limit exceeded: class=%s identifier=%s attempts=%s until=%s",
                operation_class.value,
                normalize_identifier(identifier),
                attempts,
                locked_until.isoformat(),
            )
            return RateLimitDecision(
                outcome=DecisionOutcome.DENIED,
                remaining_attempts=0,
                locked_until=locked_until,
            )

        self._save(
            key,
            RateLimitEntry(attempts=attempts, first_attempt=entry.first_attempt),
        )
        return RateLimitDecision(
            outcome=DecisionOutcome.ALLOWED, remaining_attempts=remaining
        )

    def record_attempt(
        self, identifier: str, operation_class: OperationClass = OperationClass.AUTH
    ) -> RateLimitDecision:
        """Record an attempt; identical to ``check``."""
        return self.check(identifier, operation_class)

    def reset(
        self, identifier: str, operation_class: OperationClass = OperationClass.AUTH
    ) -> None:
        """Forget all attempts for an identifier after a successful operation."""
        key = storage_key(operation_class, identifier)
        try:
            self.store.delete_entry(key)
        except Exception:
            _logger.exception("Failed to clear rate limit entry %s", key)

    def _start_window(
        self, key: str, policy: RateLimitPolicy, now: datetime
    ) -> RateLimitDecision:
        self._save(key, RateLimitEntry(attempts=1, first_attempt=now))
        return RateLimitDecision(
            outcome=DecisionOutcome.ALLOWED,
            remaining_attempts=policy.max_attempts - 1,
        )

    def _save(self, key: str, entry: RateLimitEntry) -> None:
        try:
            self.store.set_entry(key, entry)
        except Exception:
            _logger.exception("Failed to write rate limit entry %s", key)


def rate_limit_message(
    locked_until: datetime | None, now: datetime | None = None
) -> str:
    """Build a user-facing message for a denied attempt."""
    if locked_until is None:
        return "Too many attempts. Please try again later."
    current = now or _utcnow()
    minutes = max(1, math.ceil((locked_until - current).total_seconds() / 60))
    suffix = "" if minutes == 1 else "s"
    return f"Too many attempts. Please try again in {minutes} minute{suffix}."
