"""Password hashing with PBKDF2-HMAC-SHA256."""

import base64
import hmac
import secrets

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

_SCHEME = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 390_000
_SALT_BYTES = 16
_KEY_LENGTH = 32


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=_KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Return an encoded hash in the form ``scheme$iterations$salt$key``."""
    salt = secrets.token_bytes(_SALT_BYTES)
    key = _derive(password, salt, iterations)
    return "$".join(
        [
            _SCHEME,
            str(iterations),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(key).decode("ascii"),
        ]
    )


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against an encoded hash.

    A hash that cannot be parsed never verifies.
    """
    try:
        scheme, iterations, salt, key = encoded.split("$")
        rounds = int(iterations)
        salt_bytes = base64.b64decode(salt, validate=True)
        expected = base64.b64decode(key, validate=True)
    except ValueError:
        return False
    if scheme != _SCHEME or rounds < 1:
        return False
    return hmac.compare_digest(_derive(password, salt_bytes, rounds), expected)
