"""Pydantic models for API request payloads."""

from pydantic import Base64Bytes, BaseModel


class PhotoInput(BaseModel):
    """A photo in today's record: new base64 content or a kept photo id."""

    keep_id: str | None = None
    content: Base64Bytes | None = None
    mime_type: str = "image/jpeg"


class LogTodayRequest(BaseModel):
    """Payload for creating or editing today's record."""

    note: str | None = None
    tags: list[str] = []
    location: dict[str, object] | None = None
    photos: list[PhotoInput] = []


class SignupRequest(BaseModel):
    """Payload for creating an account."""

    email: str
    password: str
    name: str


class LoginRequest(BaseModel):
    """Payload for logging in."""

    email: str
    password: str


class EmailRequest(BaseModel):
    """Payload carrying only an email address."""

    email: str


class VerifyPinRequest(BaseModel):
    """Payload for submitting a PIN."""

    email: str
    pin: str


class ResetPasswordRequest(BaseModel):
    """Payload for resetting a password with a PIN."""

    email: str
    pin: str
    new_password: str


class ChangePasswordRequest(BaseModel):
    """Payload for changing a known password."""

    email: str
    current_password: str
    new_password: str
