"""Stored history schemas."""

from datetime import datetime

from pydantic import BaseModel


class TransactionResponse(BaseModel):
    """A stored activity transaction."""

    id: str
    type: str
    description: str | None = None
    amount: int
    created_at: datetime


class WithdrawalHistoryItem(BaseModel):
    """A stored withdrawal attempt."""

    id: str
    method: str
    amount: int
    fee: int
    net_amount: int
    address: str
    status: str
    tx_hash: str | None = None
    processed_at: datetime | None = None
    created_at: datetime


class ReferralResponse(BaseModel):
    """A referred account and the commission it produced."""

    id: str
    referred_id: str
    commission_earned: int
    created_at: datetime
