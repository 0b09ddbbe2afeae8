"""One-time PIN tokens for email verification and password reset."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from proof_log.domain.accounts import AccountRecord, PendingToken, TokenPurpose
from proof_log.domain.rate_limits import OperationClass, RateLimitDecision
from proof_log.services.rate_limiter import RateLimiter, normalize_identifier

_logger = logging.getLogger(__name__)

TOKEN_TTL = timedelta(minutes=10)
PIN_MIN = 100000
PIN_MAX = 999999


class AccountRepository(Protocol):
    """Persistence interface for accounts and their pending tokens."""

    def get_by_email(self, email: str) -> AccountRecord | None:
        """Return the account for a normalized email, if present."""

    def create_account(
        self, email: str, name: str, password_hash: str
    ) -> AccountRecord:
        """Create an unverified account and return it."""

    def set_token(self, email: str, purpose: TokenPurpose, token: PendingToken) -> None:
        """Store a pending token for a purpose, replacing any previous one."""

    def clear_token(self, email: str, purpose: TokenPurpose) -> None:
        """Remove the pending token for a purpose."""

    def set_verified(self, email: str) -> None:
        """Mark an account's email address as verified."""

    def update_password(self, email: str, password_hash: str) -> None:
        """Replace an account's password hash."""

    def delete_account(self, email: str) -> None:
        """Delete an account."""

    def list_accounts(self) -> list[AccountRecord]:
        """Return all accounts, newest first."""


class EmailSender(Protocol):
    """Interface for outgoing email delivery."""

    async def send(self, to: str, subject: str, body: str) -> None:
        """Send a plain-text email."""


def generate_pin() -> str:
    """Return a random 6-digit PIN in ``[100000, 999999]``."""
    return str(PIN_MIN + secrets.randbelow(PIN_MAX - PIN_MIN + 1))


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class TokenService:
    """Issues and verifies single-use PINs on top of the rate limiter."""

    accounts: AccountRepository
    email_sender: EmailSender
    rate_limiter: RateLimiter
    app_name: str = "Proof"
    ttl: timedelta = TOKEN_TTL
    clock: Callable[[], datetime] = _utcnow
    pin_generator: Callable[[], str] = generate_pin

    async def request(self, email: str, purpose: TokenPurpose) -> RateLimitDecision:
        """Send a fresh PIN if the account exists and needs one.

        The returned decision only reflects rate limiting, so callers see the
        same result whether or not the account exists.
        """
        identifier = normalize_identifier(email)
        decision = self.rate_limiter.check(identifier, OperationClass.EMAIL)
        if not decision.allowed:
            _logger.warning("PIN request rate limited: purpose=%s", purpose.value)
            return decision

        pin = self.pin_generator()
        account = self.accounts.get_by_email(identifier)
        if account is None or _already_completed(account, purpose):
            _logger.info("PIN request ignored: purpose=%s", purpose.value)
            return decision

        await self._deliver(account, purpose, pin)
        return decision

    async def issue(self, email: str, purpose: TokenPurpose) -> bool:
        """Send a PIN without consulting the rate limiter."""
        account = self.accounts.get_by_email(normalize_identifier(email))
        if account is None or _already_completed(account, purpose):
            return False
        await self._deliver(account, purpose, self.pin_generator())
        return True

    def verify(self, email: str, token: str, purpose: TokenPurpose) -> bool:
        """Consume a PIN, returning whether it was valid."""
        valid, _ = self.verify_with_decision(email, token, purpose)
        return valid

    def verify_with_decision(
        self, email: str, token: str, purpose: TokenPurpose
    ) -> tuple[bool, RateLimitDecision]:
        """Consume a PIN and also return the rate-limit decision taken.

        The check itself counts as the attempt, so a failed PIN is recorded
        exactly once. Wrong, expired, missing and already-used PINs are
        indistinguishable to the caller.
        """
        identifier = normalize_identifier(email)
        decision = self.rate_limiter.check(identifier, OperationClass.PIN_VERIFICATION)
        if not decision.allowed:
            _logger.warning("PIN verification rate limited: purpose=%s", purpose.value)
            return False, decision

        account = self.accounts.get_by_email(identifier)
        if account is None or not self._matches(account, token, purpose):
            _logger.info("PIN verification failed: purpose=%s", purpose.value)
            return False, decision

        if purpose is TokenPurpose.EMAIL_VERIFICATION:
            self.accounts.set_verified(identifier)
        self.accounts.clear_token(identifier, purpose)
        self.rate_limiter.reset(identifier, OperationClass.PIN_VERIFICATION)
        _logger.info("PIN verified: purpose=%s", purpose.value)
        return True, decision

    def _matches(
        self, account: AccountRecord, token: str, purpose: TokenPurpose
    ) -> bool:
        if _already_completed(account, purpose):
            return False
        pending = account.pending_token(purpose)
        if pending is None:
            return False
        if pending.token != (token or "").strip():
            return False
        return pending.expires_at >= self.clock()

    async def _deliver(
        self, account: AccountRecord, purpose: TokenPurpose, pin: str
    ) -> None:
        expires_at = self.clock() + self.ttl
        self.accounts.set_token(
            account.email, purpose, PendingToken(token=pin, expires_at=expires_at)
        )
        subject, body = build_pin_email(
            purpose, pin, account.name, self.app_name, self.ttl
        )
        await self.email_sender.send(account.email, subject, body)
        _logger.info("PIN email sent: purpose=%s", purpose.value)


def _already_completed(account: AccountRecord, purpose: TokenPurpose) -> bool:
    return purpose is TokenPurpose.EMAIL_VERIFICATION and account.email_verified


def build_pin_email(
    purpose: TokenPurpose, pin: str, name: str, app_name: str, ttl: timedelta
) -> tuple[str, str]:
    """Return the subject and body of a PIN email."""
    minutes = int(ttl.total_seconds() // 60)
    if purpose is TokenPurpose.EMAIL_VERIFICATION:
        subject = f"Your {app_name} verification PIN"
        intro = (
            f"Thank you for signing up for {app_name}! "
            "Please verify your email address using the PIN code below:"
        )
        outro = (
            f"If you didn't create an account with {app_name}, "
            "you can safely ignore this email."
        )
    else:
        subject = f"Your {app_name} password reset PIN"
        intro = "We received a request to reset your password. Use this PIN code:"
        outro = "If you didn't request a password reset, you can ignore this email."
    body = "\n\n".join(
        [
            f"Hi {name},",
            intro,
            pin,
            f"This PIN will expire in {minutes} minutes.",
            outro,
        ]
    )
    return subject, body
