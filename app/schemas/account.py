"""Ledger and accrual schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ActivityResponse(BaseModel):
    """One recent activity entry."""

    id: str
    kind: str
    amount: int
    description: str
    timestamp: datetime


class MiningStatus(BaseModel):
    """Current mining loop state."""

    active: bool
    hash_rate: float
    pending: int
    mining_earned: int


class LedgerSnapshot(BaseModel):
    """In-memory ledger as seen by the owning session."""

    account_id: str
    balance: int
    total_earned: int
    today_earned: int
    ads_watched: int
    links_visited: int
    offers_completed: int
    mining_earned: int
    level: int
    xp: int
    xp_to_next: int
    referral_code: str
    referral_count: int
    referral_earnings: int
    mining: MiningStatus
    activities: list[ActivityResponse] = Field(default_factory=list)


class EarnRequest(BaseModel):
    """Reward for one completed activity."""

    amount: int


class EarnResponse(BaseModel):
    """Result of crediting an activity."""

    activity: ActivityResponse
    ledger: LedgerSnapshot
