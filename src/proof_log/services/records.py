"""Daily proof records: creation, editing of today, and re-verification."""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4
from zoneinfo import ZoneInfo

from proof_log.domain.records import (
    PhotoRecord,
    PhotoUpload,
    ProofRecord,
    RecordState,
    VerificationStatus,
    VerifiedRecord,
)
from proof_log.errors import (
    RecordFinalizedError,
    RecordNotFoundError,
    ValidationError,
)
from proof_log.hashing import HASH_ALGORITHM
from proof_log.services.integrity import compute_record_hash, verify_record_integrity
from proof_log.validation import (
    validate_note,
    validate_photo_id,
    validate_photo_mime_type,
    validate_tags,
)

_logger = logging.getLogger(__name__)

MAX_PHOTOS_PER_RECORD = 3


class RecordRepository(Protocol):
    """Persistence interface for records and their photos."""

    def get_record(self, date_key: str) -> ProofRecord | None:
        """Return the record for a date key, if present."""

    def list_photos(self, date_key: str) -> list[PhotoRecord]:
        """Return a record's photos ordered by sort index then id."""

    def insert_record(self, record: ProofRecord, photos: list[PhotoRecord]) -> None:
        """Insert a new record together with its photos."""

    def update_record(self, record: ProofRecord, photos: list[PhotoRecord]) -> None:
        """Overwrite a record and replace its photo set."""

    def delete_record(self, date_key: str) -> None:
        """Delete a record and its photos."""

    def list_records(self) -> list[ProofRecord]:
        """Return all records, newest date first."""

    def list_pinned_records(self) -> list[ProofRecord]:
        """Return pinned records, newest date first."""

    def set_pinned(self, date_key: str, pinned: bool) -> None:
        """Set the pinned flag of a record."""

    def delete_all_records(self) -> list[str]:
        """Delete every record and photo, returning the removed file URIs."""

    def count_photos(self) -> dict[str, int]:
        """Return the number of photos per date key."""


@dataclass(frozen=True)
class StoredPhoto:
    """Location and digest of photo bytes written to storage."""

    file_uri: str
    sha256: str


class PhotoStorage(Protocol):
    """Storage for raw photo bytes."""

    def save(self, photo_id: str, content: bytes, extension: str) -> StoredPhoto:
        """Write photo bytes and return where they live and their digest."""

    def digest(self, file_uri: str) -> str:
        """Return the digest of the bytes currently stored at ``file_uri``."""

    def delete(self, file_uri: str) -> None:
        """Remove stored photo bytes."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class RecordService:
    """Application service for daily proof records.

    Only today's record is writable (``DRAFT``). Once the calendar day is
    over the record is ``FINALIZED`` and only its pinned flag may change.
    """

    repository: RecordRepository
    photo_storage: PhotoStorage
    timezone: ZoneInfo = ZoneInfo("UTC")
    clock: Callable[[], datetime] = _utcnow

    def today_key(self) -> str:
        """Return today's date key in the configured timezone."""
        return self.clock().astimezone(self.timezone).date().isoformat()

    def record_state(self, date_key: str) -> RecordState:
        """Return whether a date's record is still editable."""
        if date_key == self.today_key():
            return RecordState.DRAFT
        return RecordState.FINALIZED

    def log_today(
        self,
        note: str | None,
        photos: Sequence[PhotoUpload | str] = (),
        tags: list[str] | None = None,
        location: dict[str, object] | None = None,
    ) -> ProofRecord:
        """Create or rewrite today's record.

        ``photos`` lists the photos in display order. New content is given as
        a ``PhotoUpload``; a photo already attached to today's record is kept
        by passing its id.
        """
        date_key = self.today_key()
        cleaned_note = validate_note(note)
        cleaned_tags = validate_tags(tags)
        if len(photos) > MAX_PHOTOS_PER_RECORD:
            raise ValidationError(
                f"You can add up to {MAX_PHOTOS_PER_RECORD} photos per proof."
            )

        existing = self.repository.get_record(date_key)
        existing_photos = (
            {photo.id: photo for photo in self.repository.list_photos(date_key)}
            if existing
            else {}
        )

        # Resolve every photo before writing anything.
        resolved: list[PhotoRecord | tuple[str, PhotoUpload, str]] = []
        seen_ids: set[str] = set()
        for index, item in enumerate(photos):
            if isinstance(item, str):
                kept = existing_photos.get(item)
                if kept is None:
                    raise ValidationError(f"Unknown photo {item} for {date_key}")
                photo_id = item
                resolved.append(replace(kept, sort_index=index))
            else:
                photo_id = validate_photo_id(item.id) if item.id else str(uuid4())
                if photo_id in existing_photos:
                    raise ValidationError(f"Photo {photo_id} already exists")
                extension = validate_photo_mime_type(item.mime_type)
                resolved.append((photo_id, item, extension))
            if photo_id in seen_ids:
                raise ValidationError(f"Photo {photo_id} is listed more than once")
            seen_ids.add(photo_id)

        saved_uris: list[str] = []
        try:
            photo_records: list[PhotoRecord] = []
            for index, entry in enumerate(resolved):
                if isinstance(entry, PhotoRecord):
                    photo_records.append(entry)
                    continue
                photo_id, upload, extension = entry
                stored = self.photo_storage.save(photo_id, upload.content, extension)
                saved_uris.append(stored.file_uri)
                photo_records.append(
                    PhotoRecord(
                        id=photo_id,
                        date_key=date_key,
                        file_uri=stored.file_uri,
                        mime_type=upload.mime_type.strip().lower(),
                        sha256=stored.sha256,
                        sort_index=index,
                    )
                )
            record = self._write_today(
                date_key, existing, cleaned_note, cleaned_tags, location, photo_records
            )
        except Exception:
            self._delete_files(saved_uris)
            raise

        if existing:
            kept_ids = {photo.id for photo in photo_records}
            self._delete_files(
                photo.file_uri
                for photo_id, photo in existing_photos.items()
                if photo_id not in kept_ids
            )
            _logger.info("Updated draft record %s", date_key)
        else:
            _logger.info("Created record %s with %s photos", date_key, len(photos))
        return record

    def _write_today(  # noqa: PLR0913
        self,
        date_key: str,
        existing: ProofRecord | None,
        cleaned_note: str,
        cleaned_tags: list[str],
        location: dict[str, object] | None,
        photo_records: list[PhotoRecord],
    ) -> ProofRecord:
        created_at = (
            existing.created_at
            if existing
            else int(self.clock().timestamp() * 1000)
        )
        record_hash = compute_record_hash(
            date_key,
            created_at,
            cleaned_note,
            [photo.descriptor() for photo in photo_records],
        )
        record = ProofRecord(
            date_key=date_key,
            created_at=created_at,
            note=cleaned_note,
            record_hash=record_hash,
            algo=HASH_ALGORITHM,
            tags=cleaned_tags or None,
            location=location,
            pinned=existing.pinned if existing else False,
        )

        if existing:
            self.repository.update_record(record, photo_records)
        else:
            self.repository.insert_record(record, photo_records)
        return record

    def get_record(self, date_key: str, check_files: bool = False) -> VerifiedRecord:
        """Load a record and re-verify its hash.

        With ``check_files`` every photo file is hashed again and compared
        with the digest captured at ingestion.
        """
        record = self.repository.get_record(date_key)
        if record is None:
            raise RecordNotFoundError(f"No proof record for {date_key}")
        photos = self.repository.list_photos(date_key)

        verified = verify_record_integrity(
            record.record_hash,
            record.date_key,
            record.created_at,
            record.note,
            [photo.descriptor() for photo in photos],
        )
        mismatched = self._mismatched_photos(photos) if check_files else []
        status = (
            VerificationStatus.VERIFIED
            if verified and not mismatched
            else VerificationStatus.TAMPERED
        )
        if status is VerificationStatus.TAMPERED:
            _logger.warning(
                "Integrity check failed for record %s (photos=%s)",
                date_key,
                mismatched,
            )
        return VerifiedRecord(
            record=record,
            photos=photos,
            state=self.record_state(date_key),
            status=status,
            mismatched_photo_ids=mismatched,
        )

    def list_records(self) -> list[ProofRecord]:
        """Return all records, newest first."""
        return self.repository.list_records()

    def list_pinned_records(self) -> list[ProofRecord]:
        """Return pinned records, newest first."""
        return self.repository.list_pinned_records()

    def toggle_pinned(self, date_key: str) -> bool:
        """Flip the pinned flag of a record and return the new value."""
        record = self.repository.get_record(date_key)
        if record is None:
            raise RecordNotFoundError(f"No proof record for {date_key}")
        pinned = not record.pinned
        self.repository.set_pinned(date_key, pinned)
        return pinned

    def delete_record(self, date_key: str) -> None:
        """Delete today's record and its photo files."""
        if self.record_state(date_key) is RecordState.FINALIZED:
            raise RecordFinalizedError(
                f"Record {date_key} is finalized and cannot be deleted"
            )
        if self.repository.get_record(date_key) is None:
            raise RecordNotFoundError(f"No proof record for {date_key}")
        photos = self.repository.list_photos(date_key)
        self._delete_files(photo.file_uri for photo in photos)
        self.repository.delete_record(date_key)
        _logger.info("Deleted draft record %s", date_key)

    def delete_all_records(self) -> list[str]:
        """Wipe every record and photo file."""
        file_uris = self.repository.delete_all_records()
        self._delete_files(file_uris)
        _logger.info("Deleted all records (%s photo files)", len(file_uris))
        return file_uris

    def _mismatched_photos(self, photos: list[PhotoRecord]) -> list[str]:
        mismatched: list[str] = []
        for photo in photos:
            try:
                digest = self.photo_storage.digest(photo.file_uri)
            except OSError:
                _logger.warning("Photo file unreadable: %s", photo.file_uri)
                mismatched.append(photo.id)
                continue
            if digest.lower() != photo.sha256.lower():
                mismatched.append(photo.id)
        return mismatched

    def _delete_files(self, file_uris: Iterable[str]) -> None:
        for file_uri in file_uris:
            try:
                self.photo_storage.delete(file_uri)
            except OSError:
                _logger.warning("Failed to delete photo file %s", file_uri)
