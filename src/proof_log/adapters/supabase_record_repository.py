"""Supabase-backed record and photo repository."""

import json
import logging
from collections import Counter
from dataclasses import dataclass

from supabase import Client

from proof_log.domain.records import PhotoRecord, ProofRecord
from proof_log.services.records import RecordRepository

_RECORD_COLUMNS = (
    "date_key, created_at, note, record_hash, algo, tags, location, pinned"
)
_PHOTO_COLUMNS = "id, date_key, file_uri, mime_type, sha256, sort_index"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseRecordRepository(RecordRepository):
    """Supabase implementation for records and photos."""

    client: Client

    def get_record(self, date_key: str) -> ProofRecord | None:
        """Return the record for a date key, if present."""
        response = (
            self.client.table("records")
            .select(_RECORD_COLUMNS)
            .eq("date_key", date_key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_record(response.data[0])

    def list_photos(self, date_key: str) -> list[PhotoRecord]:
        """Return photos for a record ordered by sort index then id."""
        response = (
            self.client.table("photos")
            .select(_PHOTO_COLUMNS)
            .eq("date_key", date_key)
            .order("sort_index")
            .order("id")
            .execute()
        )
        return [_parse_photo(row) for row in response.data or []]

    def insert_record(self, record: ProofRecord, photos: list[PhotoRecord]) -> None:
        """Insert a record row followed by its photo rows."""
        response = (
            self.client.table("records").insert(_record_payload(record)).execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to create record {record.date_key}")
        try:
            self._insert_photos(photos)
        except Exception:
            _logger.exception(
                "Photo insert failed; removing record %s", record.date_key
            )
            self.delete_record(record.date_key)
            raise

    def update_record(self, record: ProofRecord, photos: list[PhotoRecord]) -> None:
        """Overwrite a record row and replace its photo rows.

        If any step fails the previous row and photo set are written back.
        """
        previous = self.get_record(record.date_key)
        previous_photos = self.list_photos(record.date_key)
        try:
            self._replace(record, photos)
        except Exception:
            _logger.exception("Update failed; restoring record %s", record.date_key)
            if previous is not None:
                self._replace(previous, previous_photos)
            raise

    def _replace(self, record: ProofRecord, photos: list[PhotoRecord]) -> None:
        payload = _record_payload(record)
        payload.pop("date_key")
        self.client.table("records").update(payload).eq(
            "date_key", record.date_key
        ).execute()
        self.client.table("photos").delete().eq("date_key", record.date_key).execute()
        self._insert_photos(photos)

    def delete_record(self, date_key: str) -> None:
        """Delete photo rows first, then the record row."""
        self.client.table("photos").delete().eq("date_key", date_key).execute()
        self.client.table("records").delete().eq("date_key", date_key).execute()

    def list_records(self) -> list[ProofRecord]:
        """Return all records, newest date first."""
        response = (
            self.client.table("records")
            .select(_RECORD_COLUMNS)
            .order("date_key", desc=True)
            .execute()
        )
        return [_parse_record(row) for row in response.data or []]

    def list_pinned_records(self) -> list[ProofRecord]:
        """Return pinned records, newest date first."""
        response = (
            self.client.table("records")
            .select(_RECORD_COLUMNS)
            .eq("pinned", True)
            .order("date_key", desc=True)
            .execute()
        )
        return [_parse_record(row) for row in response.data or []]

    def set_pinned(self, date_key: str, pinned: bool) -> None:
        """Update the pinned flag of a record."""
        self.client.table("records").update({"pinned": pinned}).eq(
            "date_key", date_key
        ).execute()

    def delete_all_records(self) -> list[str]:
        """Delete every photo and record row and return the photo file URIs."""
        response = self.client.table("photos").select("file_uri").execute()
        file_uris = [str(row["file_uri"]) for row in response.data or []]
        self.client.table("photos").delete().neq("date_key", "").execute()
        self.client.table("records").delete().neq("date_key", "").execute()
        return file_uris

    def count_photos(self) -> dict[str, int]:
        """Return the number of photos per date key."""
        response = self.client.table("photos").select("date_key").execute()
        return dict(Counter(str(row["date_key"]) for row in response.data or []))

    def _insert_photos(self, photos: list[PhotoRecord]) -> None:
        if not photos:
            return
        self.client.table("photos").insert(
            [_photo_payload(photo) for photo in photos]
        ).execute()


def _record_payload(record: ProofRecord) -> dict[str, object]:
    return {
        "date_key": record.date_key,
        "created_at": record.created_at,
        "note": record.note,
        "record_hash": record.record_hash,
        "algo": record.algo,
        "tags": json.dumps(record.tags) if record.tags else None,
        "location": json.dumps(record.location) if record.location else None,
        "pinned": record.pinned,
    }


def _photo_payload(photo: PhotoRecord) -> dict[str, object]:
    return {
        "id": photo.id,
        "date_key": photo.date_key,
        "file_uri": photo.file_uri,
        "mime_type": photo.mime_type,
        "sha256": photo.sha256,
        "sort_index": photo.sort_index,
    }


def _parse_record(row: dict[str, object]) -> ProofRecord:
    tags = _parse_json(row.get("tags"))
    location = _parse_json(row.get("location"))
    return ProofRecord(
        date_key=str(row["date_key"]),
        created_at=int(row["created_at"]),
        note=str(row.get("note") or ""),
        record_hash=str(row["record_hash"]),
        algo=str(row["algo"]),
        tags=[str(tag) for tag in tags] if isinstance(tags, list) else None,
        location=location if isinstance(location, dict) else None,
        pinned=_to_bool(row.get("pinned")),
    )


def _parse_photo(row: dict[str, object]) -> PhotoRecord:
    return PhotoRecord(
        id=str(row["id"]),
        date_key=str(row["date_key"]),
        file_uri=str(row["file_uri"]),
        mime_type=str(row["mime_type"]),
        sha256=str(row["sha256"]),
        sort_index=int(row["sort_index"]),
    )


def _parse_json(value: object) -> object:
    """Decode a JSON text column; jsonb columns arrive already decoded."""
    if isinstance(value, str) and value:
        return json.loads(value)
    return value


def _to_bool(value: object) -> bool:
    """Normalize 0/1 integer flags and booleans into a bool."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "t"}
    return bool(value)
