"""Session-scoped ledger ownership."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Callable
from datetime import date
from typing import Any

from app.models.ledger import AccountLedger, ActivityKind
from app.services.mining_service import PERIODIC_FLUSH, MiningLoop
from app.services.persistence import WriteBehindQueue
from app.services.store_service import RewardsStore
from app.utils.time import utc_today

logger = logging.getLogger(__name__)

REFRESH_ATTEMPTS = 5


class AccountSession:
    """The single owner of one account's in-memory ledger."""

    def __init__(
        self,
        ledger: AccountLedger,
        store: RewardsStore,
        writer: WriteBehindQueue,
        scheduler,
        reward_interval_seconds: int = 3,
        flush_interval_seconds: int = 15,
        today: Callable[[], date] = utc_today,
        rng: random.Random | None = None,
    ) -> None:
        self.ledger = ledger
        self.store = store
        self.writer = writer
        self.today = today
        self.last_seen = time.monotonic()
        self.mining = MiningLoop(
            self,
            scheduler,
            reward_interval_seconds=reward_interval_seconds,
            flush_interval_seconds=flush_interval_seconds,
            rng=rng,
        )

    @property
    def account_id(self) -> str:
        return self.ledger.account_id

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def persist_profile(self, *fields: str) -> asyncio.Future:
        """Queue a write of the current values of ``fields``."""
        updates = self.ledger.profile_fields(*fields)
        account_id = self.account_id
        return self.writer.submit(
            f"profile:{account_id}",
            lambda _token: self.store.update_profile(account_id, updates),
        )

    def record_transaction(
        self, kind: ActivityKind, description: str, amount: int
    ) -> asyncio.Future:
        """Queue an insert into the transactions table."""
        account_id = self.account_id
        return self.writer.submit(
            f"transaction:{account_id}",
            lambda token: self.store.add_transaction(
                account_id, kind.value, description, amount, idempotency_key=token
            ),
        )

    def mining_status(self) -> dict[str, Any]:
        return {
            "active": self.mining.active,
            "hash_rate": round(self.mining.hash_rate, 1),
            "pending": self.mining.pending,
            "mining_earned": self.ledger.mining_earned,
        }

    def snapshot(self) -> dict[str, Any]:
        """Return the ledger with mining state for API responses."""
        payload = self.ledger.model_dump(
            exclude={"earned_on", "activity_limit", "total_withdrawn"}
        )
        payload["mining"] = self.mining_status()
        return payload

    def _accrual_mark(self) -> tuple[int, int, int, date]:
        ledger = self.ledger
        return (ledger.total_earned, ledger.total_withdrawn, ledger.today_earned, ledger.earned_on)

    async def refresh(self) -> AccountLedger:
        """Reload balance and totals from the store once pending writes land.

        A credit or debit applied while the profile is being read makes that
        read stale, so the read is repeated after the new writes land. If the
        ledger keeps moving the in-memory values are kept as they are.
        """
        for _ in range(REFRESH_ATTEMPTS):
            pending = self.mining.flush(PERIODIC_FLUSH)
            if pending:
                await asyncio.gather(*pending)
            await self.writer.join()
            mark = self._accrual_mark()
            profile = await asyncio.to_thread(self.store.fetch_profile, self.account_id)
            if self._accrual_mark() == mark:
                self.ledger.refresh_from_profile(profile, self.today())
                return self.ledger

        logger.warning("Skipped refresh for %s: ledger changed on every read", self.account_id)
        return self.ledger


class SessionRegistry:
    """Keep at most one live session per account."""

    def __init__(
        self,
        store: RewardsStore,
        writer: WriteBehindQueue,
        scheduler,
        reward_interval_seconds: int = 3,
        flush_interval_seconds: int = 15,
        activity_log_limit: int = 50,
        today: Callable[[], date] = utc_today,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.writer = writer
        self.scheduler = scheduler
        self.reward_interval_seconds = reward_interval_seconds
        self.flush_interval_seconds = flush_interval_seconds
        self.activity_log_limit = activity_log_limit
        self.today = today
        self.rng = rng
        self._sessions: dict[str, AccountSession] = {}
        self._load_locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self):
        return iter(list(self._sessions.values()))

    def find(self, account_id: str) -> AccountSession | None:
        """Return the live session for an account without loading one."""
        return self._sessions.get(str(account_id))

    async def get(self, account_id: str) -> AccountSession:
        """Return the account's session, loading it from the store on first use."""
        key = str(account_id)
        session = self._sessions.get(key)
        if session is not None:
            session.touch()
            return session

        lock = self._load_locks.setdefault(key, asyncio.Lock())
        async with lock:
            session = self._sessions.get(key)
            if session is None:
                session = await self._load(key)
                self._sessions[key] = session
        self._load_locks.pop(key, None)
        session.touch()
        return session

    async def _load(self, account_id: str) -> AccountSession:
        profile, transactions = await asyncio.gather(
            asyncio.to_thread(self.store.fetch_profile, account_id),
            asyncio.to_thread(
                self.store.list_transactions, account_id, self.activity_log_limit
            ),
        )
        ledger, stale_day = AccountLedger.from_profile(
            profile,
            transactions,
            self.today(),
            activity_limit=self.activity_log_limit,
        )
        session = AccountSession(
            ledger,
            self.store,
            self.writer,
            self.scheduler,
            reward_interval_seconds=self.reward_interval_seconds,
            flush_interval_seconds=self.flush_interval_seconds,
            today=self.today,
            rng=self.rng,
        )
        if stale_day:
            logger.info("Resetting today_earned for %s on load", account_id)
            session.persist_profile("today_earned")
        return session

    async def evict(self, account_id: str) -> None:
        """Stop mining (flushing it) and forget the session."""
        session = self._sessions.pop(str(account_id), None)
        if session is not None and session.mining.active:
            await session.mining.stop()

    async def evict_idle(self, idle_seconds: float) -> int:
        """Evict sessions not touched within ``idle_seconds``."""
        cutoff = time.monotonic() - idle_seconds
        idle = [s.account_id for s in self if s.last_seen < cutoff]
        for account_id in idle:
            await self.evict(account_id)
        return len(idle)

    async def close_all(self) -> None:
        for session in self:
            await self.evict(session.account_id)
