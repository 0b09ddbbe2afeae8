"""SHA-256 digest helpers for records and photo files."""

import hashlib
from pathlib import Path

HASH_ALGORITHM = "SHA-256"

_CHUNK_SIZE = 64 * 1024


def sha256_hex(data: str | bytes) -> str:
    """Return the lowercase hex SHA-256 digest of a string or bytes."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: str | Path) -> str:
    """Return the hex digest of the raw bytes stored at ``path``."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
