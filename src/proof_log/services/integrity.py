"""Record fingerprinting and re-verification."""

import logging
from collections.abc import Iterable

from proof_log.canonical import canonical_serialize
from proof_log.domain.records import PhotoDescriptor
from proof_log.hashing import sha256_hex

_logger = logging.getLogger(__name__)


def build_canonical_record(
    date_key: str,
    created_at: int,
    note: str | None,
    photos: Iterable[PhotoDescriptor],
) -> dict[str, object]:
    """Build the value whose canonical form is hashed for a record.

    Photos are ordered by ``(sort_index, id)`` here because the serializer
    keeps sequence order as given. Storage details such as file paths are
    left out, so moving a photo file never changes the hash.
    """
    ordered = sorted(photos, key=lambda photo: (photo.sort_index, photo.id))
    return {
        "dateKey": date_key,
        "createdAt": created_at,
        "note": note or "",
        "photos": [
            {
                "id": photo.id,
                "mimeType": photo.mime_type,
                "sha256": photo.sha256,
                "sortIndex": photo.sort_index,
            }
            for photo in ordered
        ],
    }


def compute_record_hash(
    date_key: str,
    created_at: int,
    note: str | None,
    photos: Iterable[PhotoDescriptor],
) -> str:
    """Return the hex fingerprint of a record."""
    canonical = build_canonical_record(date_key, created_at, note, photos)
    return sha256_hex(canonical_serialize(canonical))


def verify_record_integrity(
    stored_hash: str,
    date_key: str,
    created_at: int,
    note: str | None,
    photos: Iterable[PhotoDescriptor],
) -> bool:
    """Recompute a record's hash and compare it with the stored one."""
    try:
        computed = compute_record_hash(date_key, created_at, note, photos)
    except (TypeError, ValueError):
        _logger.exception("Failed to recompute hash for record %s", date_key)
        return False
    return stored_hash.lower() == computed.lower()
