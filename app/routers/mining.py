"""Mining endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.dependencies import get_account_session
from app.schemas.account import MiningStatus
from app.services.session_service import AccountSession

router = APIRouter()


@router.get("", response_model=MiningStatus)
async def get_mining(session: AccountSession = Depends(get_account_session)) -> dict:
    """Return the caller's mining state."""
    return session.mining_status()


@router.post("/toggle", response_model=MiningStatus)
async def toggle_mining(session: AccountSession = Depends(get_account_session)) -> dict:
    """Start or stop mining; stopping flushes unsaved rewards first."""
    await session.mining.toggle()
    return session.mining_status()
