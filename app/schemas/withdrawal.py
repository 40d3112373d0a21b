"""Withdrawal schemas."""

from pydantic import BaseModel, Field


class WithdrawalRequest(BaseModel):
    """Request body for one withdrawal attempt."""

    amount: int
    address: str
    method_id: str = Field(..., alias="methodId")
    proof_token: str | None = Field(default=None, alias="captchaToken")
    request_id: str | None = Field(default=None, alias="requestId", max_length=128)

    model_config = {"populate_by_name": True}


class WithdrawalResponse(BaseModel):
    """Successful settlement payload."""

    success: bool = True
    message: str
    tx_hash: str
    net_amount: int
    fee: int
    currency: str
    new_balance: int


class PayoutMethodResponse(BaseModel):
    """One withdrawal option."""

    method_id: str
    currency: str
    fee: int
    minimum: int
