"""Authentication endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.config import settings
from app.dependencies import get_current_account_id

router = APIRouter()


@router.get("/session")
def auth_session(account_id: str = Depends(get_current_account_id)) -> dict:
    """Return the authenticated account and whether withdrawals need a captcha."""
    return {"account_id": account_id, "proof_required": settings.proof_required}
