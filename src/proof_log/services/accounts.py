"""Account lifecycle: signup, login, and password management."""

import logging
from dataclasses import dataclass

from proof_log.domain.accounts import AccountRecord, TokenPurpose
from proof_log.domain.rate_limits import OperationClass, RateLimitDecision
from proof_log.errors import (
    AccountExistsError,
    EmailDeliveryError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    RateLimitExceededError,
    ValidationError,
)
from proof_log.passwords import hash_password, verify_password
from proof_log.services.rate_limiter import RateLimiter, rate_limit_message
from proof_log.services.tokens import AccountRepository, TokenService
from proof_log.validation import (
    validate_email,
    validate_name,
    validate_password,
    validate_pin,
)

_logger = logging.getLogger(__name__)


@dataclass
class AuthService:
    """Application service for account actions."""

    accounts: AccountRepository
    tokens: TokenService
    rate_limiter: RateLimiter

    async def signup(self, email: str, password: str, name: str) -> AccountRecord:
        """Create an unverified account and email it a verification PIN."""
        normalized = validate_email(email)
        validate_password(password)
        cleaned_name = validate_name(name)
        if self.accounts.get_by_email(normalized) is not None:
            raise AccountExistsError("Email already registered")

        account = self.accounts.create_account(
            normalized, cleaned_name, hash_password(password)
        )
        try:
            await self.tokens.issue(normalized, TokenPurpose.EMAIL_VERIFICATION)
        except EmailDeliveryError:
            _logger.exception("Failed to send verification email")
        return account

    def login(self, email: str, password: str) -> AccountRecord:
        """Check credentials and return the account."""
        normalized = validate_email(email)
        decision = self.rate_limiter.check(normalized, OperationClass.AUTH)
        if not decision.allowed:
            _logger.warning("Login rate limit exceeded")
            self._raise_if_denied(decision)

        account = self.accounts.get_by_email(normalized)
        if account is None or not verify_password(password, account.password_hash):
            raise InvalidCredentialsError("Invalid email or password")
        if not account.email_verified:
            raise EmailNotVerifiedError(
                "Please verify your email address before logging in."
            )

        self.rate_limiter.reset(normalized, OperationClass.AUTH)
        _logger.info("Account logged in: %s", account.id)
        return account

    async def request_email_verification(self, email: str) -> RateLimitDecision:
        """Send a new email verification PIN."""
        return await self.tokens.request(
            validate_email(email), TokenPurpose.EMAIL_VERIFICATION
        )

    async def request_password_reset(self, email: str) -> RateLimitDecision:
        """Send a password reset PIN."""
        return await self.tokens.request(
            validate_email(email), TokenPurpose.PASSWORD_RESET
        )

    def verify_email(self, email: str, pin: str) -> bool:
        """Consume an email verification PIN."""
        return self._consume_pin(email, pin, TokenPurpose.EMAIL_VERIFICATION)

    def reset_password(self, email: str, pin: str, new_password: str) -> bool:
        """Consume a password reset PIN and store the new password."""
        validate_password(new_password)
        normalized = validate_email(email)
        if not self._consume_pin(normalized, pin, TokenPurpose.PASSWORD_RESET):
            return False
        self.accounts.update_password(normalized, hash_password(new_password))
        _logger.info("Password reset completed")
        return True

    def change_password(
        self, email: str, current_password: str, new_password: str
    ) -> None:
        """Replace the password after checking the current one."""
        normalized = validate_email(email)
        validate_password(new_password)
        account = self.accounts.get_by_email(normalized)
        if account is None or not verify_password(
            current_password, account.password_hash
        ):
            raise InvalidCredentialsError("Current password is incorrect")
        self.accounts.update_password(normalized, hash_password(new_password))

    def delete_account(self, email: str) -> None:
        """Delete an account."""
        normalized = validate_email(email)
        if self.accounts.get_by_email(normalized) is None:
            raise InvalidCredentialsError("User not found")
        self.accounts.delete_account(normalized)
        _logger.info("Account deleted")

    def is_email_verified(self, email: str) -> bool:
        """Return whether the account's email address has been verified."""
        account = self.accounts.get_by_email(validate_email(email))
        return bool(account and account.email_verified)

    def _consume_pin(self, email: str, pin: str, purpose: TokenPurpose) -> bool:
        normalized = validate_email(email)
        try:
            cleaned_pin = validate_pin(pin)
        except ValidationError:
            # A malformed PIN still spends a verification attempt.
            self._raise_if_denied(
                self.rate_limiter.check(normalized, OperationClass.PIN_VERIFICATION)
            )
            raise
        valid, decision = self.tokens.verify_with_decision(
            normalized, cleaned_pin, purpose
        )
        self._raise_if_denied(decision)
        return valid

    def _raise_if_denied(self, decision: RateLimitDecision) -> None:
        if decision.allowed:
            return
        raise RateLimitExceededError(
            rate_limit_message(decision.locked_until, self.rate_limiter.clock()),
            decision.locked_until,
        )
