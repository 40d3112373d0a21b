"""Activity accrual endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.dependencies import get_account_session
from app.schemas.account import EarnRequest, EarnResponse
from app.services.accrual_service import AccrualService, parse_kind
from app.services.session_service import AccountSession

router = APIRouter()


@router.post("/{kind}", response_model=EarnResponse)
async def earn(
    kind: str,
    payload: EarnRequest,
    session: AccountSession = Depends(get_account_session),
) -> dict:
    """Credit one completed ad, short link or offer."""
    event = AccrualService(session).credit_activity(parse_kind(kind), payload.amount)
    return {"activity": event.model_dump(), "ledger": session.snapshot()}
