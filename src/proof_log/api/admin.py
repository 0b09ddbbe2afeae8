"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from proof_log.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/info", dependencies=[Depends(require_admin)])
async def database_info(request: Request) -> dict[str, int]:
    """Return row counts for records, photos and accounts."""
    container: AppContainer = request.app.state.container
    return container.admin_service.database_info()


@router.get("/records", dependencies=[Depends(require_admin)])
async def list_records(request: Request) -> dict[str, object]:
    """Return all records with photo counts."""
    container: AppContainer = request.app.state.container
    return {"records": container.admin_service.list_records()}


@router.delete("/records", dependencies=[Depends(require_admin)])
async def delete_all_records(request: Request) -> dict[str, object]:
    """Delete every record and photo file."""
    container: AppContainer = request.app.state.container
    removed = container.record_service.delete_all_records()
    return {"deleted_photos": len(removed)}


@router.get("/accounts", dependencies=[Depends(require_admin)])
async def list_accounts(request: Request) -> dict[str, object]:
    """Return all accounts without credentials."""
    container: AppContainer = request.app.state.container
    return {"accounts": container.admin_service.list_accounts()}
