"""Withdrawal endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header

from app.dependencies import get_withdrawal_service, require_payout_config
from app.models.withdrawal import PAYOUT_METHODS
from app.schemas.withdrawal import PayoutMethodResponse, WithdrawalRequest, WithdrawalResponse
from app.services.withdrawal_service import WithdrawalService

router = APIRouter()


@router.get("/methods", response_model=list[PayoutMethodResponse])
def list_methods() -> list[dict]:
    """Return the supported payout methods with fees and minimums."""
    return [method.model_dump() for method in PAYOUT_METHODS.values()]


@router.post(
    "",
    response_model=WithdrawalResponse,
    dependencies=[Depends(require_payout_config)],
)
async def withdraw(
    payload: WithdrawalRequest,
    authorization: str = Header(None),
    service: WithdrawalService = Depends(get_withdrawal_service),
) -> dict:
    """Settle one withdrawal through the payout processor."""
    return await service.settle(
        authorization,
        amount=payload.amount,
        address=payload.address,
        method_id=payload.method_id,
        proof_token=payload.proof_token,
        request_id=payload.request_id,
    )
