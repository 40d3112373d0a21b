"""Account ledger aggregate and activity events.

A ledger is owned by exactly one session. All mutations are plain method calls
that finish without suspending, so callers on the event loop always observe a
consistent balance; persistence of the resulting fields happens afterwards.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.utils.errors import InvalidAmountError
from app.utils.time import day_of, now_utc, parse_timestamp

logger = logging.getLogger(__name__)

ACTIVITY_LOG_LIMIT = 50
XP_GROWTH = 1.3


class ActivityKind(StrEnum):
    """Activity and transaction type tags."""

    AD = "ad"
    LINK = "link"
    OFFER = "offer"
    MINING = "mining"
    REFERRAL = "referral"
    BONUS = "bonus"
    WITHDRAW = "withdraw"


XP_GAIN = {
    ActivityKind.AD: 10,
    ActivityKind.LINK: 8,
    ActivityKind.OFFER: 25,
}

# in-memory field -> profiles column
PROFILE_COLUMNS = {
    "balance": "balance_satoshi",
    "total_earned": "total_earned",
    "today_earned": "today_earned",
    "ads_watched": "ads_watched",
    "links_visited": "links_visited",
    "offers_completed": "offers_completed",
    "mining_earned": "mining_earned",
    "level": "level",
    "xp": "xp",
    "xp_to_next": "xp_to_next",
}

ACTIVITY_COUNTERS = {
    ActivityKind.AD: "ads_watched",
    ActivityKind.LINK: "links_visited",
    ActivityKind.OFFER: "offers_completed",
}

_DESCRIPTIONS = {
    ActivityKind.AD: "Watched ad (+{amount:,} sat)",
    ActivityKind.LINK: "Completed short link (+{amount:,} sat)",
    ActivityKind.OFFER: "Completed offer (+{amount:,} sat)",
}


class ActivityEvent(BaseModel):
    """Immutable audit entry shown in the recent activity feed."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    kind: ActivityKind
    amount: int
    description: str
    timestamp: datetime = Field(default_factory=now_utc)

    @classmethod
    def from_transaction(cls, row: dict[str, Any]) -> ActivityEvent | None:
        """Build an event from a stored transaction row.

        Returns None for a type this service does not know, so one odd row
        cannot keep an account from loading.
        """
        raw_kind = str(row.get("type") or "")
        # rows written by older clients used "shortlink"
        if raw_kind == "shortlink":
            raw_kind = ActivityKind.LINK.value
        try:
            kind = ActivityKind(raw_kind)
        except ValueError:
            logger.warning("Skipping transaction %s with unknown type %r", row.get("id"), raw_kind)
            return None
        return cls(
            id=str(row["id"]),
            kind=kind,
            amount=abs(int(row["amount"])),
            description=row.get("description") or "",
            timestamp=parse_timestamp(row.get("created_at")) or now_utc(),
        )


def apply_experience(xp: int, level: int, xp_to_next: int, gain: int) -> tuple[int, int, int]:
    """Add ``gain`` experience and resolve every level-up it causes.

    Returns the new ``(xp, level, xp_to_next)``. Each level consumes the current
    threshold and multiplies the next one by 1.3 (floored).
    """
    xp += gain
    while xp >= xp_to_next:
        xp -= xp_to_next
        level += 1
        xp_to_next = int(xp_to_next * XP_GROWTH)
    return xp, level, xp_to_next


def _events_from_transactions(
    transactions: list[dict[str, Any]], limit: int
) -> list[ActivityEvent]:
    events = (ActivityEvent.from_transaction(row) for row in transactions)
    return [event for event in events if event is not None][:limit]


def _require_positive(amount: object) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)
    return amount


class AccountLedger(BaseModel):
    """Per-account balance, earning totals and level state."""

    account_id: str
    balance: int = 0
    total_earned: int = 0
    today_earned: int = 0
    ads_watched: int = 0
    links_visited: int = 0
    offers_completed: int = 0
    mining_earned: int = 0
    level: int = 1
    xp: int = 0
    xp_to_next: int = 1000
    referral_code: str = ""
    referral_count: int = 0
    referral_earnings: int = 0
    total_withdrawn: int = 0
    earned_on: date
    activity_limit: int = ACTIVITY_LOG_LIMIT
    activities: list[ActivityEvent] = Field(default_factory=list)

    @classmethod
    def from_profile(
        cls,
        profile: dict[str, Any],
        transactions: list[dict[str, Any]],
        today: date,
        activity_limit: int = ACTIVITY_LOG_LIMIT,
    ) -> tuple[AccountLedger, bool]:
        """Load a ledger from a stored profile.

        Returns the ledger and whether the stored ``today_earned`` belongs to an
        earlier day and must be corrected to 0 in the store.
        """
        stale_day = day_of(profile.get("updated_at")) != today
        ledger = cls(
            account_id=str(profile["id"]),
            balance=int(profile.get("balance_satoshi") or 0),
            total_earned=int(profile.get("total_earned") or 0),
            today_earned=0 if stale_day else int(profile.get("today_earned") or 0),
            ads_watched=int(profile.get("ads_watched") or 0),
            links_visited=int(profile.get("links_visited") or 0),
            offers_completed=int(profile.get("offers_completed") or 0),
            mining_earned=int(profile.get("mining_earned") or 0),
            level=int(profile.get("level") or 1),
            xp=int(profile.get("xp") or 0),
            xp_to_next=int(profile.get("xp_to_next") or 1000),
            referral_code=profile.get("referral_code") or "",
            referral_count=int(profile.get("referral_count") or 0),
            referral_earnings=int(profile.get("referral_earnings") or 0),
            earned_on=today,
            activity_limit=activity_limit,
            activities=_events_from_transactions(transactions, activity_limit),
        )
        return ledger, stale_day

    def roll_day(self, today: date) -> bool:
        """Reset ``today_earned`` once when the calendar day changes."""
        if today == self.earned_on:
            return False
        self.today_earned = 0
        self.earned_on = today
        return True

    def record(self, event: ActivityEvent) -> None:
        """Prepend an event and keep only the most recent entries."""
        self.activities = [event, *self.activities][: self.activity_limit]

    def _earn(self, amount: int) -> None:
        self.balance += amount
        self.total_earned += amount
        self.today_earned += amount

    def credit(self, kind: ActivityKind, amount: int, today: date) -> ActivityEvent:
        """Apply a completed ad, link or offer and return its activity event."""
        amount = _require_positive(amount)
        if kind not in XP_GAIN:
            raise ValueError(f"{kind} is not a creditable activity")

        self.roll_day(today)
        self._earn(amount)
        counter = ACTIVITY_COUNTERS[kind]
        setattr(self, counter, getattr(self, counter) + 1)
        self.xp, self.level, self.xp_to_next = apply_experience(
            self.xp, self.level, self.xp_to_next, XP_GAIN[kind]
        )

        event = ActivityEvent(
            kind=kind,
            amount=amount,
            description=_DESCRIPTIONS[kind].format(amount=amount),
        )
        self.record(event)
        return event

    def credit_mining(self, reward: int, today: date) -> None:
        """Apply one mining reward tick."""
        reward = _require_positive(reward)
        self.roll_day(today)
        self._earn(reward)
        self.mining_earned += reward

    def debit_withdrawal(self, amount: int, event: ActivityEvent, floor: int = 0) -> None:
        """Remove a settled withdrawal from the in-memory balance.

        ``floor`` is the stored balance after the debit; a session that fell
        behind the store never drops below it.
        """
        amount = _require_positive(amount)
        self.balance = max(floor, self.balance - amount, 0)
        self.total_withdrawn += amount
        self.record(event)

    def refresh_from_profile(self, profile: dict[str, Any], today: date) -> None:
        """Adopt stored balance and totals, as after a profile refresh."""
        self.balance = int(profile.get("balance_satoshi") or 0)
        self.total_earned = int(profile.get("total_earned") or 0)
        self.today_earned = int(profile.get("today_earned") or 0)
        self.earned_on = today

    def profile_fields(self, *fields: str) -> dict[str, Any]:
        """Return stored column values for the given ledger fields."""
        return {PROFILE_COLUMNS[name]: getattr(self, name) for name in fields}
