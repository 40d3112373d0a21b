"""Reward accrual for completed activities."""

from __future__ import annotations

from app.models.ledger import ACTIVITY_COUNTERS, ActivityEvent, ActivityKind
from app.services.session_service import AccountSession
from app.utils.errors import InvalidInputError

CREDITABLE_KINDS = frozenset(ACTIVITY_COUNTERS)


def parse_kind(value: str) -> ActivityKind:
    """Resolve a path segment to a creditable activity kind."""
    try:
        kind = ActivityKind(value)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown activity '{value}'") from exc
    if kind not in CREDITABLE_KINDS:
        raise InvalidInputError(f"Activity '{value}' cannot be credited directly")
    return kind


class AccrualService:
    """Apply activity rewards to a session ledger and queue their persistence."""

    def __init__(self, session: AccountSession) -> None:
        self.session = session

    def credit_activity(self, kind: ActivityKind, amount: int) -> ActivityEvent:
        """Credit ``amount`` for one completed activity.

        The ledger is updated before this returns; the profile write and the
        transaction insert are queued behind it.
        """
        ledger = self.session.ledger
        event = ledger.credit(kind, amount, self.session.today())
        self.session.persist_profile(
            "balance",
            "total_earned",
            "today_earned",
            ACTIVITY_COUNTERS[kind],
            "level",
            "xp",
            "xp_to_next",
        )
        self.session.record_transaction(kind, event.description, amount)
        return event
