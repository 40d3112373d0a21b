"""Withdrawal methods, processor results and audit records."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.utils.time import now_utc


class PayoutMethod(BaseModel):
    """Currency, fee and minimum for one withdrawal option (satoshi units)."""

    model_config = ConfigDict(frozen=True)

    method_id: str
    currency: str
    fee: int
    minimum: int


PAYOUT_METHODS: dict[str, PayoutMethod] = {
    "btc": PayoutMethod(method_id="btc", currency="btc", fee=1000, minimum=50000),
    "ltc": PayoutMethod(method_id="ltc", currency="ltc", fee=200, minimum=20000),
    "doge": PayoutMethod(method_id="doge", currency="doge", fee=100, minimum=10000),
    "usdt": PayoutMethod(method_id="usdt", currency="usdt", fee=500, minimum=30000),
    "trx": PayoutMethod(method_id="trx", currency="trx", fee=50, minimum=15000),
    # FaucetPay internal balance pays out in BTC
    "faucetpay": PayoutMethod(method_id="faucetpay", currency="btc", fee=0, minimum=5000),
}


class WithdrawalStatus(StrEnum):
    """Lifecycle of one withdrawal attempt. Completed and failed are terminal."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PayoutResult(BaseModel):
    """Processor response reduced to what settlement needs."""

    success: bool
    reference: str | None = None
    code: int | None = None
    message: str | None = None


class WithdrawalRecord(BaseModel):
    """One audit row per withdrawal attempt."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    account_id: str
    method: str
    requested_amount: int
    fee: int
    net_amount: int
    address: str
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    external_reference: str | None = None
    created_at: datetime = Field(default_factory=now_utc)
    processed_at: datetime | None = None

    def to_row(self) -> dict[str, Any]:
        """Return the ``withdrawals`` table payload."""
        return {
            "id": self.id,
            "user_id": self.account_id,
            "method": self.method,
            "amount": self.requested_amount,
            "fee": self.fee,
            "net_amount": self.net_amount,
            "address": self.address,
            "status": self.status.value,
            "tx_hash": self.external_reference,
            "created_at": self.created_at.isoformat(),
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }
