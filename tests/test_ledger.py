"""Ledger aggregate and experience rule tests."""

from __future__ import annotations

from datetime import date

import pytest
from fakes import TODAY

from app.models.ledger import AccountLedger, ActivityEvent, ActivityKind, apply_experience
from app.utils.errors import InvalidAmountError


def _ledger(**fields) -> AccountLedger:
    return AccountLedger(account_id="acct-1", earned_on=TODAY, **fields)


def test_experience_carries_remainder_into_next_level() -> None:
    """Crossing one threshold keeps the overflow and grows the threshold by 1.3x."""
    assert apply_experience(xp=950, level=5, xp_to_next=1000, gain=80) == (30, 6, 1300)


def test_experience_cascades_multiple_level_ups() -> None:
    """A large gain must keep levelling until the remainder fits."""
    xp, level, xp_to_next = apply_experience(xp=0, level=1, xp_to_next=100, gain=250)
    assert (xp, level, xp_to_next) == (20, 3, 169)
    assert 0 <= xp < xp_to_next


def test_experience_without_level_up() -> None:
    assert apply_experience(xp=10, level=2, xp_to_next=1300, gain=25) == (35, 2, 1300)


@pytest.mark.parametrize(
    ("kind", "counter", "xp_gain"),
    [
        (ActivityKind.AD, "ads_watched", 10),
        (ActivityKind.LINK, "links_visited", 8),
        (ActivityKind.OFFER, "offers_completed", 25),
    ],
)
def test_credit_updates_totals_counter_and_xp(
    kind: ActivityKind, counter: str, xp_gain: int
) -> None:
    ledger = _ledger(balance=100, total_earned=100, today_earned=5)
    event = ledger.credit(kind, 40, TODAY)

    assert ledger.balance == 140
    assert ledger.total_earned == 140
    assert ledger.today_earned == 45
    assert getattr(ledger, counter) == 1
    assert ledger.xp == xp_gain
    assert ledger.activities[0] == event
    assert event.kind == kind
    assert event.amount == 40


@pytest.mark.parametrize("amount", [0, -5, 2.5, True, "10"])
def test_credit_rejects_non_positive_amounts_without_mutating(amount) -> None:
    ledger = _ledger(balance=100, total_earned=100)
    with pytest.raises(InvalidAmountError):
        ledger.credit(ActivityKind.AD, amount, TODAY)
    assert ledger.balance == 100
    assert ledger.ads_watched == 0
    assert ledger.xp == 0
    assert ledger.activities == []


def test_activity_log_keeps_most_recent_fifty() -> None:
    ledger = _ledger()
    for amount in range(1, 61):
        ledger.credit(ActivityKind.AD, amount, TODAY)

    assert len(ledger.activities) == 50
    assert ledger.activities[0].amount == 60
    assert ledger.activities[-1].amount == 11


def test_balance_matches_earned_minus_withdrawn() -> None:
    ledger = _ledger()
    ledger.credit(ActivityKind.OFFER, 700, TODAY)
    ledger.credit_mining(3, TODAY)
    withdraw = ActivityEvent(kind=ActivityKind.WITHDRAW, amount=500, description="w")
    ledger.debit_withdrawal(500, withdraw)
    ledger.credit(ActivityKind.LINK, 12, TODAY)

    assert ledger.balance == ledger.total_earned - ledger.total_withdrawn == 215
    assert ledger.mining_earned == 3


def test_debit_never_goes_negative() -> None:
    ledger = _ledger(balance=100, total_earned=100)
    event = ActivityEvent(kind=ActivityKind.WITHDRAW, amount=300, description="w")
    ledger.debit_withdrawal(300, event)
    assert ledger.balance == 0


def test_roll_day_resets_today_once() -> None:
    ledger = _ledger(today_earned=80)
    tomorrow = date(2026, 10, 20)

    assert ledger.roll_day(tomorrow) is True
    assert ledger.today_earned == 0
    ledger.credit(ActivityKind.AD, 5, tomorrow)
    assert ledger.roll_day(tomorrow) is False
    assert ledger.today_earned == 5


def test_from_profile_zeroes_stale_today_earned() -> None:
    profile = {
        "id": "acct-1",
        "balance_satoshi": 900,
        "total_earned": 1200,
        "today_earned": 75,
        "level": 3,
        "xp": 40,
        "xp_to_next": 1690,
        "updated_at": "2026-10-18T23:59:00Z",
    }
    ledger, stale = AccountLedger.from_profile(profile, [], TODAY)

    assert stale is True
    assert ledger.today_earned == 0
    assert ledger.balance == 900
    assert ledger.level == 3


def test_from_profile_keeps_today_earned_on_same_day() -> None:
    profile = {"id": "acct-1", "today_earned": 75, "updated_at": "2026-10-19T00:01:00+00:00"}
    ledger, stale = AccountLedger.from_profile(profile, [], TODAY)

    assert stale is False
    assert ledger.today_earned == 75


def test_from_profile_maps_legacy_shortlink_rows() -> None:
    rows = [
        {"id": 7, "type": "shortlink", "amount": 12, "description": "old", "created_at": None},
        {"id": 6, "type": "withdraw", "amount": -500, "description": "w", "created_at": None},
    ]
    ledger, _ = AccountLedger.from_profile({"id": "acct-1"}, rows, TODAY)

    assert [event.kind for event in ledger.activities] == [
        ActivityKind.LINK,
        ActivityKind.WITHDRAW,
    ]
    assert ledger.activities[1].amount == 500


def test_from_profile_keeps_bonus_rows_and_skips_unknown_types() -> None:
    rows = [
        {"id": 9, "type": "bonus", "amount": 50, "description": "Bonus", "created_at": None},
        {"id": 8, "type": "lottery", "amount": 5, "description": "?", "created_at": None},
        {"id": 7, "type": "ad", "amount": 10, "description": "ad", "created_at": None},
    ]
    ledger, _ = AccountLedger.from_profile({"id": "acct-1"}, rows, TODAY, activity_limit=2)

    assert [event.kind for event in ledger.activities] == [ActivityKind.BONUS, ActivityKind.AD]
    assert ledger.activities[0].description == "Bonus"


def test_unknown_transaction_type_yields_no_event() -> None:
    row = {"id": 1, "type": "", "amount": 3, "description": "", "created_at": None}
    assert ActivityEvent.from_transaction(row) is None
