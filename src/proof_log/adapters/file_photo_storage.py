"""Local filesystem storage for photo bytes."""

from dataclasses import dataclass
from pathlib import Path

from proof_log.errors import ValidationError
from proof_log.hashing import sha256_file
from proof_log.services.records import PhotoStorage, StoredPhoto


@dataclass
class FilePhotoStorage(PhotoStorage):
    """Writes photos as files under a single directory."""

    root: Path

    def save(self, photo_id: str, content: bytes, extension: str) -> StoredPhoto:
        """Write raw photo bytes and digest what landed on disk."""
        self.root.mkdir(parents=True, exist_ok=True)
        suffix = extension if extension.startswith(".") else f".{extension}"
        name = f"{photo_id}{suffix.lower()}"
        path = self.root / name
        if path.name != name or name in {".", ".."}:
            raise ValidationError(f"Unsafe photo file name: {name!r}")
        path.write_bytes(content)
        return StoredPhoto(file_uri=str(path), sha256=sha256_file(path))

    def digest(self, file_uri: str) -> str:
        """Return the digest of the bytes stored at a file URI."""
        return sha256_file(file_uri)

    def delete(self, file_uri: str) -> None:
        """Remove a photo file if it still exists."""
        Path(file_uri).unlink(missing_ok=True)
