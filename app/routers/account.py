"""Account ledger endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.dependencies import get_account_session
from app.schemas.account import LedgerSnapshot
from app.services.session_service import AccountSession

router = APIRouter()


@router.get("", response_model=LedgerSnapshot)
async def get_account(session: AccountSession = Depends(get_account_session)) -> dict:
    """Return the caller's in-memory ledger."""
    return session.snapshot()


@router.post("/refresh", response_model=LedgerSnapshot)
async def refresh_account(session: AccountSession = Depends(get_account_session)) -> dict:
    """Re-read balance and totals from the store."""
    await session.refresh()
    return session.snapshot()
