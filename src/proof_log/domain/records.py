"""Domain models for proof records and their photos."""

from dataclasses import dataclass
from enum import StrEnum


class RecordState(StrEnum):
    """Lifecycle state of a record, derived from its date key."""

    DRAFT = "draft"
    FINALIZED = "finalized"


class VerificationStatus(StrEnum):
    """Outcome of re-verifying a stored record."""

    VERIFIED = "verified"
    TAMPERED = "tampered"


@dataclass(frozen=True)
class PhotoDescriptor:
    """The integrity-relevant fields of a photo."""

    id: str
    mime_type: str
    sha256: str
    sort_index: int


@dataclass(frozen=True)
class PhotoRecord:
    """Represents a persisted photo belonging to a record."""

    id: str
    date_key: str
    file_uri: str
    mime_type: str
    sha256: str
    sort_index: int

    def descriptor(self) -> PhotoDescriptor:
        """Return the fields covered by the record hash."""
        return PhotoDescriptor(
            id=self.id,
            mime_type=self.mime_type,
            sha256=self.sha256,
            sort_index=self.sort_index,
        )


@dataclass(frozen=True)
class ProofRecord:
    """Represents a persisted record for a single calendar day."""

    date_key: str
    created_at: int
    note: str
    record_hash: str
    algo: str
    tags: list[str] | None = None
    location: dict[str, object] | None = None
    pinned: bool = False


@dataclass(frozen=True)
class PhotoUpload:
    """Raw photo content submitted for today's record."""

    content: bytes
    mime_type: str
    id: str | None = None


@dataclass(frozen=True)
class VerifiedRecord:
    """A record with its photos and the result of re-verification."""

    record: ProofRecord
    photos: list[PhotoRecord]
    state: RecordState
    status: VerificationStatus
    mismatched_photo_ids: list[str]
