"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

from supabase import create_client

from proof_log.adapters.file_photo_storage import FilePhotoStorage
from proof_log.adapters.resend_email_client import ResendEmailClient
from proof_log.adapters.supabase_account_repository import SupabaseAccountRepository
from proof_log.adapters.supabase_rate_limit_store import SupabaseRateLimitStore
from proof_log.adapters.supabase_record_repository import SupabaseRecordRepository
from proof_log.config import Settings, parse_allowlist
from proof_log.services.accounts import AuthService
from proof_log.services.admin import AdminService
from proof_log.services.rate_limiter import RateLimiter
from proof_log.services.records import RecordService
from proof_log.services.tokens import TokenService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    record_service: RecordService
    rate_limiter: RateLimiter
    token_service: TokenService
    auth_service: AuthService
    admin_service: AdminService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    record_repository = SupabaseRecordRepository(supabase_client)
    account_repository = SupabaseAccountRepository(supabase_client)
    rate_limit_store = SupabaseRateLimitStore(supabase_client)
    email_client = ResendEmailClient.create(
        api_key=resolved_settings.resend_api_key,
        sender=resolved_settings.email_from,
    )

    record_service = RecordService(
        repository=record_repository,
        photo_storage=FilePhotoStorage(Path(resolved_settings.photos_dir)),
        timezone=ZoneInfo(resolved_settings.timezone),
    )
    rate_limiter = RateLimiter(
        store=rate_limit_store,
        allowlist=parse_allowlist(resolved_settings.rate_limit_allowlist),
    )
    token_service = TokenService(
        accounts=account_repository,
        email_sender=email_client,
        rate_limiter=rate_limiter,
        app_name=resolved_settings.app_name,
        ttl=timedelta(minutes=resolved_settings.token_ttl_minutes),
    )
    auth_service = AuthService(
        accounts=account_repository,
        tokens=token_service,
        rate_limiter=rate_limiter,
    )
    admin_service = AdminService(
        record_repository=record_repository,
        account_repository=account_repository,
    )

    async def close_resources() -> None:
        await email_client.close()

    return AppContainer(
        settings=resolved_settings,
        record_service=record_service,
        rate_limiter=rate_limiter,
        token_service=token_service,
        auth_service=auth_service,
        admin_service=admin_service,
        close_resources=close_resources,
    )
