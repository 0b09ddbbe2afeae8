"""Tests for record and account endpoints."""

import base64

from fastapi.testclient import TestClient

from proof_log.api.app import create_app
from proof_log.domain.accounts import TokenPurpose
from proof_log.hashing import sha256_hex
from tests.conftest import FakeClock, InMemoryAccountRepository, InMemoryPhotoStorage

EMAIL = "user@example.com"
PASSWORD = "Secret123!"


def _encode(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


def _pin(repository: InMemoryAccountRepository, purpose: TokenPurpose) -> str:
    token = repository.accounts[EMAIL].pending_token(purpose)
    assert token is not None
    return token.token


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_log_today_and_fetch(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/records/today",
        json={
            "note": "morning run",
            "tags": ["run"],
            "photos": [{"content": _encode(b"one"), "mime_type": "image/png"}],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "draft"
    assert data["status"] == "verified"
    assert data["record"]["date_key"] == "2024-01-01"
    assert data["record"]["tags"] == ["run"]
    assert data["photos"][0]["sha256"] == sha256_hex(b"one")
    assert data["photos"][0]["mime_type"] == "image/png"

    fetched = client.get("/records/2024-01-01").json()
    assert fetched["record"]["record_hash"] == data["record"]["record_hash"]
    listed = client.get("/records").json()
    assert [record["date_key"] for record in listed["records"]] == ["2024-01-01"]


def test_edit_keeps_photo_by_id(container) -> None:
    client = TestClient(create_app(container))
    first = client.post(
        "/records/today",
        json={"photos": [{"content": _encode(b"one")}]},
    ).json()
    photo_id = first["photos"][0]["id"]

    second = client.post(
        "/records/today",
        json={
            "note": "edited",
            "photos": [{"content": _encode(b"two")}, {"keep_id": photo_id}],
        },
    ).json()

    assert [photo["id"] for photo in second["photos"]][1] == photo_id
    assert second["record"]["created_at"] == first["record"]["created_at"]


def test_check_files_reports_tampering(container) -> None:
    client = TestClient(create_app(container))
    client.post("/records/today", json={"photos": [{"content": _encode(b"one")}]})
    storage = container.record_service.photo_storage
    assert isinstance(storage, InMemoryPhotoStorage)
    for file_uri in storage.files:
        storage.files[file_uri] = b"edited"

    response = client.get("/records/2024-01-01", params={"check_files": True})

    assert response.status_code == 200
    assert response.json()["status"] == "tampered"
    assert len(response.json()["mismatched_photo_ids"]) == 1


def test_record_errors_map_to_status_codes(container) -> None:
    client = TestClient(create_app(container))

    missing = client.get("/records/2023-12-31")
    too_long = client.post("/records/today", json={"note": "x" * 501})
    empty_photo = client.post("/records/today", json={"photos": [{}]})
    bad_type = client.post(
        "/records/today",
        json={"photos": [{"content": _encode(b"x"), "mime_type": "text/html"}]},
    )
    finalized = client.delete("/records/2023-12-31")

    assert missing.status_code == 404
    assert too_long.status_code == 422
    assert "500" in too_long.json()["detail"]
    assert empty_photo.status_code == 422
    assert bad_type.status_code == 422
    assert finalized.status_code == 409


def test_pin_and_delete(container) -> None:
    client = TestClient(create_app(container))
    client.post("/records/today", json={"note": "today"})

    pinned = client.post("/records/2024-01-01/pin")
    assert pinned.json() == {"date_key": "2024-01-01", "pinned": True}
    assert len(client.get("/records/pinned").json()["records"]) == 1

    deleted = client.delete("/records/2024-01-01")
    assert deleted.status_code == 200
    assert client.get("/records").json() == {"records": []}


def test_past_record_can_be_pinned_but_not_deleted(
    container, clock: FakeClock
) -> None:
    client = TestClient(create_app(container))
    client.post("/records/today", json={"note": "today"})
    clock.advance(days=1)

    assert client.post("/records/2024-01-01/pin").json()["pinned"] is True
    assert client.delete("/records/2024-01-01").status_code == 409
    assert client.get("/records/2024-01-01").json()["state"] == "finalized"


def test_signup_verify_and_login(
    container, account_repository: InMemoryAccountRepository
) -> None:
    client = TestClient(create_app(container))

    signup = client.post(
        "/auth/signup",
        json={"email": EMAIL, "password": PASSWORD, "name": "Test User"},
    )
    assert signup.status_code == 201
    assert signup.json()["account"]["email_verified"] is False

    unverified = client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})
    assert unverified.status_code == 403

    pin = _pin(account_repository, TokenPurpose.EMAIL_VERIFICATION)
    verified = client.post("/auth/verify-email", json={"email": EMAIL, "pin": pin})
    assert verified.json() == {"verified": True}

    login = client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})
    assert login.status_code == 200
    assert login.json()["account"]["email"] == EMAIL
    assert "password_hash" not in login.json()["account"]


def test_duplicate_signup_conflicts(container) -> None:
    client = TestClient(create_app(container))
    payload = {"email": EMAIL, "password": PASSWORD, "name": "Test User"}

    client.post("/auth/signup", json=payload)
    duplicate = client.post("/auth/signup", json=payload)

    assert duplicate.status_code == 409


def test_invalid_pin_is_bad_request(container) -> None:
    client = TestClient(create_app(container))
    client.post(
        "/auth/signup",
        json={"email": EMAIL, "password": PASSWORD, "name": "Test User"},
    )

    response = client.post(
        "/auth/verify-email", json={"email": EMAIL, "pin": "000000"}
    )

    assert response.status_code == 400


def test_login_lockout_returns_429(container) -> None:
    client = TestClient(create_app(container))
    payload = {"email": EMAIL, "password": "wrong-password"}

    statuses = [client.post("/auth/login", json=payload).status_code for _ in range(5)]

    assert statuses == [401, 401, 401, 401, 429]
    body = client.post("/auth/login", json=payload).json()
    assert body["detail"].startswith("Too many attempts.")
    assert body["locked_until"] == "2024-01-01T12:30:00+00:00"


def test_reset_request_is_identical_for_unknown_email(container) -> None:
    client = TestClient(create_app(container))
    client.post(
        "/auth/signup",
        json={"email": EMAIL, "password": PASSWORD, "name": "Test User"},
    )

    known = client.post("/auth/password-reset/request", json={"email": EMAIL})
    unknown = client.post(
        "/auth/password-reset/request", json={"email": "ghost@example.com"}
    )

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_password_reset_and_change(
    container, account_repository: InMemoryAccountRepository
) -> None:
    client = TestClient(create_app(container))
    client.post(
        "/auth/signup",
        json={"email": EMAIL, "password": PASSWORD, "name": "Test User"},
    )
    client.post("/auth/password-reset/request", json={"email": EMAIL})
    pin = _pin(account_repository, TokenPurpose.PASSWORD_RESET)

    reset = client.post(
        "/auth/password-reset",
        json={"email": EMAIL, "pin": pin, "new_password": "NewSecret456!"},
    )
    reused = client.post(
        "/auth/password-reset",
        json={"email": EMAIL, "pin": pin, "new_password": "Other789!"},
    )
    changed = client.post(
        "/auth/change-password",
        json={
            "email": EMAIL,
            "current_password": "NewSecret456!",
            "new_password": "Third789!",
        },
    )

    assert reset.json() == {"status": "password_reset"}
    assert reused.status_code == 400
    assert changed.json() == {"status": "password_changed"}


def test_email_requests_are_rate_limited(container) -> None:
    client = TestClient(create_app(container))
    payload = {"email": "ghost@example.com"}

    statuses = [
        client.post("/auth/verify-email/request", json=payload).status_code
        for _ in range(3)
    ]

    assert statuses == [200, 200, 429]
