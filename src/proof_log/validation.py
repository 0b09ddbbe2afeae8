"""Input validation for records and accounts."""

import re

from proof_log.errors import ValidationError

MAX_NOTE_LENGTH = 500
MAX_TAG_LENGTH = 30
MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PIN_PATTERN = re.compile(r"^\d{6}$")
_TAG_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-_]+$")
_PHOTO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_COMMON_PASSWORDS = {"password", "123456", "12345678", "qwerty", "abc123"}
_PHOTO_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/heic": ".heic",
    "image/heif": ".heif",
    "image/webp": ".webp",
}


def validate_email(email: str) -> str:
    """Validate an email address and return its normalized form."""
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValidationError("Email is required")
    if not _EMAIL_PATTERN.match(normalized):
        raise ValidationError("Please enter a valid email address")
    if len(normalized) > MAX_EMAIL_LENGTH:
        raise ValidationError("Email address is too long")
    return normalized


def validate_password(password: str) -> str:
    """Validate a password and return its strength label."""
    if not password:
        raise ValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password is too long (maximum {MAX_PASSWORD_LENGTH} characters)"
        )
    if password.lower() in _COMMON_PASSWORDS:
        return "weak"

    score = sum(
        [
            len(password) >= 8,
            bool(re.search(r"[a-z]", password)),
            bool(re.search(r"[A-Z]", password)),
            bool(re.search(r"[0-9]", password)),
            bool(re.search(r"[^a-zA-Z0-9]", password)),
        ]
    )
    if score >= 4:
        return "strong"
    if score >= 3:
        return "medium"
    return "weak"


def validate_name(name: str) -> str:
    """Validate a display name and return it trimmed."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("Name is required")
    if len(trimmed) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if len(trimmed) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"Name is too long (maximum {MAX_NAME_LENGTH} characters)"
        )
    if "<" in trimmed or ">" in trimmed:
        raise ValidationError("Name contains invalid characters")
    return trimmed


def validate_pin(pin: str) -> str:
    """Validate a PIN code and return it trimmed."""
    trimmed = (pin or "").strip()
    if not trimmed:
        raise ValidationError("PIN code is required")
    if not _PIN_PATTERN.match(trimmed):
        raise ValidationError("PIN code must be exactly 6 digits")
    return trimmed


def validate_note(note: str | None) -> str:
    """Validate an optional note and return it trimmed."""
    trimmed = (note or "").strip()
    if len(trimmed) > MAX_NOTE_LENGTH:
        raise ValidationError(f"Note cannot exceed {MAX_NOTE_LENGTH} characters")
    return trimmed


def validate_tag(tag: str) -> str:
    """Validate a single tag and return it trimmed."""
    trimmed = (tag or "").strip()
    if not trimmed:
        raise ValidationError("Tag cannot be empty")
    if len(trimmed) > MAX_TAG_LENGTH:
        raise ValidationError(f"Tag cannot exceed {MAX_TAG_LENGTH} characters")
    if not _TAG_PATTERN.match(trimmed):
        raise ValidationError(
            "Tag can only contain letters, numbers, spaces, hyphens, and underscores"
        )
    return trimmed


def validate_tags(tags: list[str] | None) -> list[str]:
    """Validate tags, dropping duplicates while keeping their order."""
    cleaned: list[str] = []
    for tag in tags or []:
        value = validate_tag(tag)
        if value not in cleaned:
            cleaned.append(value)
    return cleaned


def validate_photo_mime_type(mime_type: str) -> str:
    """Validate a photo MIME type and return the file extension it maps to."""
    extension = _PHOTO_EXTENSIONS.get((mime_type or "").strip().lower())
    if extension is None:
        raise ValidationError(f"Unsupported photo type: {mime_type}")
    return extension


def validate_photo_id(photo_id: str) -> str:
    """Validate a caller-supplied photo id, which becomes part of a file name."""
    if not _PHOTO_ID_PATTERN.fullmatch(photo_id or ""):
        raise ValidationError(f"Invalid photo id: {photo_id!r}")
    return photo_id
