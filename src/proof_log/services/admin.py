"""Admin service for reporting."""

from dataclasses import dataclass

from proof_log.domain.accounts import AccountRecord
from proof_log.domain.records import ProofRecord
from proof_log.services.records import RecordRepository
from proof_log.services.tokens import AccountRepository


@dataclass
class AdminService:
    """Service for the admin dashboard."""

    record_repository: RecordRepository
    account_repository: AccountRepository

    def database_info(self) -> dict[str, int]:
        """Return row counts for records, photos and accounts."""
        photo_counts = self.record_repository.count_photos()
        return {
            "records_count": len(self.record_repository.list_records()),
            "photos_count": sum(photo_counts.values()),
            "accounts_count": len(self.account_repository.list_accounts()),
        }

    def list_records(self) -> list[dict[str, object]]:
        """Return records with their photo counts."""
        photo_counts = self.record_repository.count_photos()
        return [
            _serialize_record(record, photo_counts.get(record.date_key, 0))
            for record in self.record_repository.list_records()
        ]

    def list_accounts(self) -> list[dict[str, object]]:
        """Return accounts without credentials or pending tokens."""
        return [
            _serialize_account(account)
            for account in self.account_repository.list_accounts()
        ]


def _serialize_record(record: ProofRecord, photos_count: int) -> dict[str, object]:
    return {
        "date_key": record.date_key,
        "created_at": record.created_at,
        "note": record.note,
        "record_hash": record.record_hash,
        "algo": record.algo,
        "tags": record.tags or [],
        "location": record.location,
        "pinned": record.pinned,
        "photos_count": photos_count,
    }


def _serialize_account(account: AccountRecord) -> dict[str, object]:
    return {
        "id": account.id,
        "email": account.email,
        "name": account.name,
        "created_at": account.created_at.isoformat(),
        "email_verified": account.email_verified,
    }
