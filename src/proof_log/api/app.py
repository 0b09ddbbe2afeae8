"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from proof_log.api.admin import router as admin_router
from proof_log.api.models import (
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    LogTodayRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyPinRequest,
)
from proof_log.app_logging import configure_logging
from proof_log.containers import AppContainer
from proof_log.domain.accounts import AccountRecord
from proof_log.domain.rate_limits import RateLimitDecision
from proof_log.domain.records import (
    PhotoRecord,
    PhotoUpload,
    ProofRecord,
    VerifiedRecord,
)
from proof_log.errors import (
    AccountExistsError,
    EmailDeliveryError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    ProofLogError,
    RateLimitExceededError,
    RecordFinalizedError,
    RecordNotFoundError,
    ValidationError,
)
from proof_log.services.rate_limiter import rate_limit_message

_ERROR_STATUS: list[tuple[type[ProofLogError], int]] = [
    (ValidationError, 422),
    (RecordNotFoundError, 404),
    (RecordFinalizedError, 409),
    (AccountExistsError, 409),
    (RateLimitExceededError, 429),
    (InvalidCredentialsError, 401),
    (EmailNotVerifiedError, 403),
    (EmailDeliveryError, 502),
]


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(ProofLogError)
    async def handle_proof_log_error(
        request: Request, exc: ProofLogError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        content: dict[str, object] = {"detail": str(exc)}
        if isinstance(exc, RateLimitExceededError) and exc.locked_until:
            content["locked_until"] = exc.locked_until.isoformat()
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=status_code, content=content)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/records")
    async def list_records(request: Request) -> dict[str, object]:
        """Return all records, newest first."""
        state_container: AppContainer = request.app.state.container
        records = state_container.record_service.list_records()
        return {"records": [_serialize_record(record) for record in records]}

    @app.get("/records/pinned")
    async def list_pinned_records(request: Request) -> dict[str, object]:
        """Return pinned records, newest first."""
        state_container: AppContainer = request.app.state.container
        records = state_container.record_service.list_pinned_records()
        return {"records": [_serialize_record(record) for record in records]}

    @app.post("/records/today")
    async def log_today(
        payload: LogTodayRequest, request: Request
    ) -> dict[str, object]:
        """Create or rewrite today's record."""
        state_container: AppContainer = request.app.state.container
        photos: list[PhotoUpload | str] = []
        for photo in payload.photos:
            if photo.keep_id:
                photos.append(photo.keep_id)
            elif photo.content:
                photos.append(
                    PhotoUpload(
                        content=photo.content,
                        mime_type=photo.mime_type,
                    )
                )
            else:
                raise ValidationError("Photo needs either content or keep_id")
        record = state_container.record_service.log_today(
            payload.note,
            photos,
            tags=payload.tags,
            location=payload.location,
        )
        verified = state_container.record_service.get_record(record.date_key)
        return _serialize_verified(verified)

    @app.get("/records/{date_key}")
    async def get_record(
        date_key: str, request: Request, check_files: bool = False
    ) -> dict[str, object]:
        """Return a record with its verification status."""
        state_container: AppContainer = request.app.state.container
        verified = state_container.record_service.get_record(
            date_key, check_files=check_files
        )
        return _serialize_verified(verified)

    @app.post("/records/{date_key}/pin")
    async def toggle_pinned(date_key: str, request: Request) -> dict[str, object]:
        """Flip a record's pinned flag."""
        state_container: AppContainer = request.app.state.container
        pinned = state_container.record_service.toggle_pinned(date_key)
        return {"date_key": date_key, "pinned": pinned}

    @app.delete("/records/{date_key}")
    async def delete_record(date_key: str, request: Request) -> dict[str, str]:
        """Delete today's record."""
        state_container: AppContainer = request.app.state.container
        state_container.record_service.delete_record(date_key)
        return {"status": "deleted"}

    @app.post("/auth/signup", status_code=status.HTTP_201_CREATED)
    async def signup(payload: SignupRequest, request: Request) -> dict[str, object]:
        """Register an account and send a verification PIN."""
        state_container: AppContainer = request.app.state.container
        account = await state_container.auth_service.signup(
            payload.email, payload.password, payload.name
        )
        return {
            "status": "pending_verification",
            "account": _serialize_account(account),
        }

    @app.post("/auth/login")
    async def login(payload: LoginRequest, request: Request) -> dict[str, object]:
        """Check credentials."""
        state_container: AppContainer = request.app.state.container
        account = state_container.auth_service.login(payload.email, payload.password)
        return {"account": _serialize_account(account)}

    @app.post("/auth/verify-email/request")
    async def request_email_verification(
        payload: EmailRequest, request: Request
    ) -> dict[str, str]:
        """Send a new verification PIN if the account needs one."""
        state_container: AppContainer = request.app.state.container
        decision = await state_container.auth_service.request_email_verification(
            payload.email
        )
        return _request_response(decision, state_container)

    @app.post("/auth/verify-email")
    async def verify_email(
        payload: VerifyPinRequest, request: Request
    ) -> dict[str, bool]:
        """Consume an email verification PIN."""
        state_container: AppContainer = request.app.state.container
        if not state_container.auth_service.verify_email(payload.email, payload.pin):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired PIN",
            )
        return {"verified": True}

    @app.post("/auth/password-reset/request")
    async def request_password_reset(
        payload: EmailRequest, request: Request
    ) -> dict[str, str]:
        """Send a password reset PIN if the account exists."""
        state_container: AppContainer = request.app.state.container
        decision = await state_container.auth_service.request_password_reset(
            payload.email
        )
        return _request_response(decision, state_container)

    @app.post("/auth/password-reset")
    async def reset_password(
        payload: ResetPasswordRequest, request: Request
    ) -> dict[str, str]:
        """Set a new password using a reset PIN."""
        state_container: AppContainer = request.app.state.container
        if not state_container.auth_service.reset_password(
            payload.email, payload.pin, payload.new_password
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired PIN",
            )
        return {"status": "password_reset"}

    @app.post("/auth/change-password")
    async def change_password(
        payload: ChangePasswordRequest, request: Request
    ) -> dict[str, str]:
        """Replace a password after checking the current one."""
        state_container: AppContainer = request.app.state.container
        state_container.auth_service.change_password(
            payload.email, payload.current_password, payload.new_password
        )
        return {"status": "password_changed"}

    return app


def _status_for(exc: ProofLogError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def _request_response(
    decision: RateLimitDecision, container: AppContainer
) -> dict[str, str]:
    if not decision.allowed:
        raise RateLimitExceededError(
            rate_limit_message(
                decision.locked_until, container.rate_limiter.clock()
            ),
            decision.locked_until,
        )
    return {"status": "ok"}


def _serialize_record(record: ProofRecord) -> dict[str, object]:
    return {
        "date_key": record.date_key,
        "created_at": record.created_at,
        "note": record.note,
        "record_hash": record.record_hash,
        "algo": record.algo,
        "tags": record.tags or [],
        "location": record.location,
        "pinned": record.pinned,
    }


def _serialize_photo(photo: PhotoRecord) -> dict[str, object]:
    return {
        "id": photo.id,
        "mime_type": photo.mime_type,
        "sha256": photo.sha256,
        "sort_index": photo.sort_index,
    }


def _serialize_verified(verified: VerifiedRecord) -> dict[str, object]:
    return {
        "record": _serialize_record(verified.record),
        "photos": [_serialize_photo(photo) for photo in verified.photos],
        "state": verified.state.value,
        "status": verified.status.value,
        "mismatched_photo_ids": verified.mismatched_photo_ids,
    }


def _serialize_account(account: AccountRecord) -> dict[str, object]:
    return {
        "id": account.id,
        "email": account.email,
        "name": account.name,
        "email_verified": account.email_verified,
    }
