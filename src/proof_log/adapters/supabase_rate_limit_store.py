"""Supabase-backed key-value store for rate-limit entries."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from proof_log.domain.rate_limits import RateLimitEntry
from proof_log.services.rate_limiter import RateLimitStore


@dataclass
class SupabaseRateLimitStore(RateLimitStore):
    """Stores one row per rate-limit key."""

    client: Client

    def get_entry(self, key: str) -> RateLimitEntry | None:
        """Return the entry stored under a key, if present."""
        response = (
            self.client.table("rate_limits")
            .select("key, attempts, first_attempt, locked_until")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return RateLimitEntry(
            attempts=int(row["attempts"]),
            first_attempt=_parse_datetime(row["first_attempt"]),
            locked_until=(
                _parse_datetime(row["locked_until"])
                if row.get("locked_until")
                else None
            ),
        )

    def set_entry(self, key: str, entry: RateLimitEntry) -> None:
        """Insert or replace the entry stored under a key."""
        self.client.table("rate_limits").upsert(
            {
                "key": key,
                "attempts": entry.attempts,
                "first_attempt": entry.first_attempt.isoformat(),
                "locked_until": (
                    entry.locked_until.isoformat() if entry.locked_until else None
                ),
            },
            on_conflict="key",
        ).execute()

    def delete_entry(self, key: str) -> None:
        """Delete the entry stored under a key."""
        self.client.table("rate_limits").delete().eq("key", key).execute()


def _parse_datetime(value: object) -> datetime:
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed
