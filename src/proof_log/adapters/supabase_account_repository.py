"""Supabase-backed account repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from proof_log.domain.accounts import AccountRecord, PendingToken, TokenPurpose
from proof_log.services.tokens import AccountRepository

_ACCOUNT_COLUMNS = (
    "id, email, name, password_hash, created_at, email_verified, "
    "email_verification_token, email_verification_token_expiry, "
    "password_reset_token, password_reset_token_expiry"
)

_TOKEN_COLUMNS = {
    TokenPurpose.EMAIL_VERIFICATION: (
        "email_verification_token",
        "email_verification_token_expiry",
    ),
    TokenPurpose.PASSWORD_RESET: (
        "password_reset_token",
        "password_reset_token_expiry",
    ),
}


@dataclass
class SupabaseAccountRepository(AccountRepository):
    """Supabase implementation for account persistence."""

    client: Client

    def get_by_email(self, email: str) -> AccountRecord | None:
        """Return the account for an email, if present."""
        response = (
            self.client.table("accounts")
            .select(_ACCOUNT_COLUMNS)
            .eq("email", email)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_account(response.data[0])

    def create_account(
        self, email: str, name: str, password_hash: str
    ) -> AccountRecord:
        """Create an account row and return it."""
        response = (
            self.client.table("accounts")
            .insert(
                {
                    "email": email,
                    "name": name,
                    "password_hash": password_hash,
                    "email_verified": False,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create account in Supabase")
        return _parse_account(response.data[0])

    def set_token(self, email: str, purpose: TokenPurpose, token: PendingToken) -> None:
        """Store a pending token and its expiry."""
        token_column, expiry_column = _TOKEN_COLUMNS[purpose]
        self.client.table("accounts").update(
            {
                token_column: token.token,
                expiry_column: token.expires_at.isoformat(),
            }
        ).eq("email", email).execute()

    def clear_token(self, email: str, purpose: TokenPurpose) -> None:
        """Clear a pending token and its expiry."""
        token_column, expiry_column = _TOKEN_COLUMNS[purpose]
        self.client.table("accounts").update(
            {token_column: None, expiry_column: None}
        ).eq("email", email).execute()

    def set_verified(self, email: str) -> None:
        """Mark an account's email address as verified."""
        self.client.table("accounts").update({"email_verified": True}).eq(
            "email", email
        ).execute()

    def update_password(self, email: str, password_hash: str) -> None:
        """Replace an account's password hash."""
        self.client.table("accounts").update({"password_hash": password_hash}).eq(
            "email", email
        ).execute()

    def delete_account(self, email: str) -> None:
        """Delete an account row."""
        self.client.table("accounts").delete().eq("email", email).execute()

    def list_accounts(self) -> list[AccountRecord]:
        """Return all accounts, newest first."""
        response = (
            self.client.table("accounts")
            .select(_ACCOUNT_COLUMNS)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_account(row) for row in response.data or []]


def _parse_account(row: dict[str, object]) -> AccountRecord:
    return AccountRecord(
        id=str(row["id"]),
        email=str(row["email"]),
        name=str(row.get("name") or ""),
        password_hash=str(row.get("password_hash") or ""),
        created_at=_parse_datetime(row.get("created_at")) or datetime.min,
        email_verified=_to_bool(row.get("email_verified")),
        email_verification=_parse_token(row, TokenPurpose.EMAIL_VERIFICATION),
        password_reset=_parse_token(row, TokenPurpose.PASSWORD_RESET),
    )


def _parse_token(row: dict[str, object], purpose: TokenPurpose) -> PendingToken | None:
    token_column, expiry_column = _TOKEN_COLUMNS[purpose]
    token = row.get(token_column)
    expires_at = _parse_datetime(row.get(expiry_column))
    if not token or expires_at is None:
        return None
    return PendingToken(token=str(token), expires_at=expires_at)


def _parse_datetime(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def _to_bool(value: object) -> bool:
    """Normalize 0/1 integer flags and booleans into a bool."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "t"}
    return bool(value)
