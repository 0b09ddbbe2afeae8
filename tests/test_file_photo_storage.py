"""Tests for filesystem photo storage."""

from pathlib import Path

import pytest

from proof_log.adapters.file_photo_storage import FilePhotoStorage
from proof_log.errors import ValidationError
from proof_log.hashing import sha256_hex


def test_save_digest_and_delete(tmp_path: Path) -> None:
    storage = FilePhotoStorage(tmp_path / "photos")

    stored = storage.save("p1", b"raw-bytes", "JPG")

    assert stored.file_uri == str(tmp_path / "photos" / "p1.jpg")
    assert stored.sha256 == sha256_hex(b"raw-bytes")
    assert storage.digest(stored.file_uri) == stored.sha256

    Path(stored.file_uri).write_bytes(b"edited")
    assert storage.digest(stored.file_uri) != stored.sha256

    storage.delete(stored.file_uri)
    storage.delete(stored.file_uri)
    assert not Path(stored.file_uri).exists()


@pytest.mark.parametrize(
    ("photo_id", "extension"),
    [("abc", "/../../evil"), ("../abc", ".jpg"), ("a/b", ".jpg")],
)
def test_save_rejects_names_outside_root(
    tmp_path: Path, photo_id: str, extension: str
) -> None:
    storage = FilePhotoStorage(tmp_path / "photos")

    with pytest.raises(ValidationError):
        storage.save(photo_id, b"x", extension)

    assert list((tmp_path / "photos").iterdir()) == []
