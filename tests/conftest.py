"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from proof_log.config import Settings
from proof_log.containers import AppContainer
from proof_log.domain.accounts import AccountRecord, PendingToken, TokenPurpose
from proof_log.domain.rate_limits import RateLimitEntry
from proof_log.domain.records import PhotoRecord, ProofRecord
from proof_log.errors import EmailDeliveryError
from proof_log.hashing import sha256_hex
from proof_log.services.accounts import AuthService
from proof_log.services.admin import AdminService
from proof_log.services.rate_limiter import RateLimiter, RateLimitStore
from proof_log.services.records import (
    PhotoStorage,
    RecordRepository,
    RecordService,
    StoredPhoto,
)
from proof_log.services.tokens import AccountRepository, EmailSender, TokenService

FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@dataclass
class FakeClock:
    """Mutable clock that tests can move forward."""

    now: datetime = FIXED_NOW

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class InMemoryRecordRepository(RecordRepository):
    """In-memory record repository for tests."""

    records: dict[str, ProofRecord] = field(default_factory=dict)
    photos: dict[str, list[PhotoRecord]] = field(default_factory=dict)

    def get_record(self, date_key: str) -> ProofRecord | None:
        return self.records.get(date_key)

    def list_photos(self, date_key: str) -> list[PhotoRecord]:
        return sorted(
            self.photos.get(date_key, []),
            key=lambda photo: (photo.sort_index, photo.id),
        )

    def insert_record(self, record: ProofRecord, photos: list[PhotoRecord]) -> None:
        self.records[record.date_key] = record
        self.photos[record.date_key] = list(photos)

    def update_record(self, record: ProofRecord, photos: list[PhotoRecord]) -> None:
        self.records[record.date_key] = record
        self.photos[record.date_key] = list(photos)

    def delete_record(self, date_key: str) -> None:
        self.records.pop(date_key, None)
        self.photos.pop(date_key, None)

    def list_records(self) -> list[ProofRecord]:
        return sorted(
            self.records.values(), key=lambda record: record.date_key, reverse=True
        )

    def list_pinned_records(self) -> list[ProofRecord]:
        return [record for record in self.list_records() if record.pinned]

    def set_pinned(self, date_key: str, pinned: bool) -> None:
        self.records[date_key] = replace(self.records[date_key], pinned=pinned)

    def delete_all_records(self) -> list[str]:
        file_uris = [
            photo.file_uri for photos in self.photos.values() for photo in photos
        ]
        self.records.clear()
        self.photos.clear()
        return file_uris

    def count_photos(self) -> dict[str, int]:
        return {date_key: len(photos) for date_key, photos in self.photos.items()}


@dataclass
class InMemoryPhotoStorage(PhotoStorage):
    """In-memory photo storage keyed by a fake file URI."""

    files: dict[str, bytes] = field(default_factory=dict)

    def save(self, photo_id: str, content: bytes, extension: str) -> StoredPhoto:
        file_uri = f"memory://{photo_id}{extension}"
        self.files[file_uri] = content
        return StoredPhoto(file_uri=file_uri, sha256=sha256_hex(content))

    def digest(self, file_uri: str) -> str:
        if file_uri not in self.files:
            raise FileNotFoundError(file_uri)
        return sha256_hex(self.files[file_uri])

    def delete(self, file_uri: str) -> None:
        self.files.pop(file_uri, None)


@dataclass
class InMemoryAccountRepository(AccountRepository):
    """In-memory account repository for tests."""

    accounts: dict[str, AccountRecord] = field(default_factory=dict)

    def get_by_email(self, email: str) -> AccountRecord | None:
        return self.accounts.get(email)

    def create_account(
        self, email: str, name: str, password_hash: str
    ) -> AccountRecord:
        account = AccountRecord(
            id=str(uuid4()),
            email=email,
            name=name,
            password_hash=password_hash,
            created_at=FIXED_NOW,
        )
        self.accounts[email] = account
        return account

    def set_token(self, email: str, purpose: TokenPurpose, token: PendingToken) -> None:
        self._update(email, **{_token_field(purpose): token})

    def clear_token(self, email: str, purpose: TokenPurpose) -> None:
        self._update(email, **{_token_field(purpose): None})

    def set_verified(self, email: str) -> None:
        self._update(email, email_verified=True)

    def update_password(self, email: str, password_hash: str) -> None:
        self._update(email, password_hash=password_hash)

    def delete_account(self, email: str) -> None:
        self.accounts.pop(email, None)

    def list_accounts(self) -> list[AccountRecord]:
        return list(self.accounts.values())

    def _update(self, email: str, **changes: object) -> None:
        if email in self.accounts:
            self.accounts[email] = replace(self.accounts[email], **changes)


def _token_field(purpose: TokenPurpose) -> str:
    if purpose is TokenPurpose.EMAIL_VERIFICATION:
        return "email_verification"
    return "password_reset"


@dataclass
class InMemoryRateLimitStore(RateLimitStore):
    """In-memory rate-limit store for tests."""

    entries: dict[str, RateLimitEntry] = field(default_factory=dict)

    def get_entry(self, key: str) -> RateLimitEntry | None:
        return self.entries.get(key)

    def set_entry(self, key: str, entry: RateLimitEntry) -> None:
        self.entries[key] = entry

    def delete_entry(self, key: str) -> None:
        self.entries.pop(key, None)


class FailingRateLimitStore(RateLimitStore):
    """Rate-limit store whose every operation fails."""

    def get_entry(self, key: str) -> RateLimitEntry | None:
        raise RuntimeError("store unavailable")

    def set_entry(self, key: str, entry: RateLimitEntry) -> None:
        raise RuntimeError("store unavailable")

    def delete_entry(self, key: str) -> None:
        raise RuntimeError("store unavailable")


@dataclass
class WriteFailingRateLimitStore(InMemoryRateLimitStore):
    """Rate-limit store that can be read but rejects every write."""

    def set_entry(self, key: str, entry: RateLimitEntry) -> None:
        raise RuntimeError("store is read-only")

    def delete_entry(self, key: str) -> None:
        raise RuntimeError("store is read-only")


@dataclass
class FakeEmailSender(EmailSender):
    """Email sender that records messages instead of sending them."""

    sent: list[tuple[str, str, str]] = field(default_factory=list)
    fail: bool = False

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise EmailDeliveryError("delivery failed")
        self.sent.append((to, subject, body))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        resend_api_key="resend-key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def record_repository() -> InMemoryRecordRepository:
    return InMemoryRecordRepository()


@pytest.fixture
def photo_storage() -> InMemoryPhotoStorage:
    return InMemoryPhotoStorage()


@pytest.fixture
def record_service(
    record_repository: InMemoryRecordRepository,
    photo_storage: InMemoryPhotoStorage,
    clock: FakeClock,
) -> RecordService:
    return RecordService(
        repository=record_repository,
        photo_storage=photo_storage,
        timezone=ZoneInfo("UTC"),
        clock=clock,
    )


@pytest.fixture
def rate_limit_store() -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore()


@pytest.fixture
def rate_limiter(
    rate_limit_store: InMemoryRateLimitStore, clock: FakeClock
) -> RateLimiter:
    return RateLimiter(store=rate_limit_store, clock=clock)


@pytest.fixture
def account_repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def token_service(
    account_repository: InMemoryAccountRepository,
    email_sender: FakeEmailSender,
    rate_limiter: RateLimiter,
    clock: FakeClock,
) -> TokenService:
    return TokenService(
        accounts=account_repository,
        email_sender=email_sender,
        rate_limiter=rate_limiter,
        clock=clock,
    )


@pytest.fixture
def auth_service(
    account_repository: InMemoryAccountRepository,
    token_service: TokenService,
    rate_limiter: RateLimiter,
) -> AuthService:
    return AuthService(
        accounts=account_repository,
        tokens=token_service,
        rate_limiter=rate_limiter,
    )


@pytest.fixture
def container(
    settings: Settings,
    record_service: RecordService,
    rate_limiter: RateLimiter,
    token_service: TokenService,
    auth_service: AuthService,
    record_repository: InMemoryRecordRepository,
    account_repository: InMemoryAccountRepository,
) -> AppContainer:
    admin_service = AdminService(
        record_repository=record_repository,
        account_repository=account_repository,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        record_service=record_service,
        rate_limiter=rate_limiter,
        token_service=token_service,
        auth_service=auth_service,
        admin_service=admin_service,
        close_resources=close_resources,
    )
