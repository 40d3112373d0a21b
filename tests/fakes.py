"""In-memory stand-ins for the store, scheduler and external services."""

from __future__ import annotations

import asyncio
import itertools
from datetime import date
from typing import Any

from app.models.withdrawal import PayoutResult
from app.utils.errors import ConflictError, NetworkOrStoreError, NotFoundError, UnauthorizedError

TODAY = date(2026, 10, 19)
ACCOUNT_ID = "acct-1"
GOOD_CREDENTIAL = "Bearer good-token"


def today() -> date:
    return TODAY


class FakeStore:
    """Dict-backed replacement for RewardsStore."""

    def __init__(self) -> None:
        self.profiles: dict[str, dict[str, Any]] = {}
        self.transactions: list[dict[str, Any]] = []
        self.withdrawals: list[dict[str, Any]] = []
        self.profile_updates: list[dict[str, Any]] = []
        self.balance_reads = 0
        self.fail_updates = 0
        self._ids = itertools.count(1)
        self._idempotency_keys: set[str] = set()

    def add_profile(self, account_id: str = ACCOUNT_ID, **fields: Any) -> dict[str, Any]:
        row = {
            "id": account_id,
            "balance_satoshi": 0,
            "total_earned": 0,
            "today_earned": 0,
            "ads_watched": 0,
            "links_visited": 0,
            "offers_completed": 0,
            "mining_earned": 0,
            "level": 1,
            "xp": 0,
            "xp_to_next": 1000,
            "referral_code": "REF123",
            "referral_count": 0,
            "referral_earnings": 0,
            "updated_at": f"{TODAY.isoformat()}T08:00:00+00:00",
        }
        row.update(fields)
        self.profiles[account_id] = row
        return row

    def fetch_profile(self, user_id: str) -> dict[str, Any]:
        if user_id not in self.profiles:
            raise NotFoundError("Profile")
        return dict(self.profiles[user_id])

    def fetch_balance(self, user_id: str) -> int:
        self.balance_reads += 1
        return int(self.fetch_profile(user_id)["balance_satoshi"])

    def update_profile(self, user_id: str, updates: dict[str, Any]) -> list[dict[str, Any]]:
        if self.fail_updates:
            self.fail_updates -= 1
            raise NetworkOrStoreError("Database unreachable")
        self.profile_updates.append(dict(updates))
        self.profiles[user_id].update(updates)
        return [dict(self.profiles[user_id])]

    def add_transaction(
        self,
        user_id: str,
        entry_type: str,
        description: str,
        amount: int,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        if idempotency_key in self._idempotency_keys:
            raise ConflictError("Duplicate row", code="DUPLICATE")
        if idempotency_key:
            self._idempotency_keys.add(idempotency_key)
        row = {
            "id": str(next(self._ids)),
            "user_id": user_id,
            "type": entry_type,
            "description": description,
            "amount": amount,
            "created_at": f"{TODAY.isoformat()}T09:00:00+00:00",
        }
        self.transactions.append(row)
        return row

    def list_transactions(self, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
        rows = [row for row in self.transactions if row["user_id"] == user_id]
        return list(reversed(rows))[:limit]

    def insert_withdrawal(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.withdrawals.append(dict(payload))
        return payload

    def list_withdrawals(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        rows = [row for row in self.withdrawals if row["user_id"] == user_id]
        return list(reversed(rows))[:limit]

    def list_referrals(self, user_id: str) -> list[dict[str, Any]]:
        return []


class FakeScheduler:
    """Records jobs instead of running them."""

    def __init__(self) -> None:
        self.jobs: dict[str, tuple[Any, Any]] = {}

    def add_job(self, func, trigger, id: str, **kwargs: Any) -> None:
        self.jobs[id] = (func, trigger)

    def get_job(self, job_id: str):
        return self.jobs.get(job_id)

    def remove_job(self, job_id: str) -> None:
        del self.jobs[job_id]


class FixedRng:
    """Deterministic rng for mining rewards."""

    def __init__(self, reward: int = 2, fraction: float = 0.5) -> None:
        self.reward = reward
        self.fraction = fraction

    def randint(self, low: int, high: int) -> int:
        return self.reward

    def random(self) -> float:
        return self.fraction


class FakePayouts:
    """Processor that returns a preset result or raises a preset error."""

    def __init__(self, result: PayoutResult | None = None, error: Exception | None = None):
        self.result = result or PayoutResult(success=True, reference="12345", code=200)
        self.error = error
        self.calls: list[tuple[int, str, str]] = []

    async def send(self, amount: int, address: str, currency: str) -> PayoutResult:
        self.calls.append((amount, address, currency))
        if self.error is not None:
            raise self.error
        return self.result


class BlockingPayouts(FakePayouts):
    """Processor that waits until released, to hold a withdrawal in flight."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def send(self, amount: int, address: str, currency: str) -> PayoutResult:
        self.calls.append((amount, address, currency))
        self.entered.set()
        await self.release.wait()
        return self.result


class FakeVerifier:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.tokens: list[str] = []

    async def verify(self, token: str) -> bool:
        self.tokens.append(token)
        return self.ok


class FakeAuth:
    """Resolve one known credential; record every lookup."""

    def __init__(self) -> None:
        self.calls: list[str | None] = []

    def __call__(self, credential: str | None) -> str:
        self.calls.append(credential)
        if credential != GOOD_CREDENTIAL:
            raise UnauthorizedError("Invalid or expired session. Please log in again.")
        return ACCOUNT_ID
