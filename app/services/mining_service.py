"""Timer-driven mining accrual for one session."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING

from apscheduler.triggers.interval import IntervalTrigger

from app.models.ledger import ActivityEvent, ActivityKind
from app.utils.errors import ConflictError

if TYPE_CHECKING:
    from app.services.session_service import AccountSession

logger = logging.getLogger(__name__)

REWARD_RANGE = (1, 3)
HASH_RATE_FLOOR = 15.0
HASH_RATE_SPAN = 30.0
PERIODIC_FLUSH = "Mining reward: {amount} sat"
SESSION_FLUSH = "Mining session: {amount} sat earned"


class MiningLoop:
    """OFF/ON state machine driving the reward and flush jobs.

    While ON, the reward job credits 1-3 sat to the ledger every reward
    interval and adds it to ``pending``. The flush job writes a ledger snapshot
    plus one aggregated transaction for ``pending`` every flush interval.
    Switching OFF removes both jobs and flushes whatever is left before the
    toggle returns.
    """

    def __init__(
        self,
        session: AccountSession,
        scheduler,
        reward_interval_seconds: int = 3,
        flush_interval_seconds: int = 15,
        rng: random.Random | None = None,
    ) -> None:
        self.session = session
        self.scheduler = scheduler
        self.reward_interval_seconds = reward_interval_seconds
        self.flush_interval_seconds = flush_interval_seconds
        self.rng = rng or random.Random()
        self.active = False
        self.hash_rate = 0.0
        self.pending = 0
        self._toggling = False

    @property
    def reward_job_id(self) -> str:
        return f"mining-reward:{self.session.account_id}"

    @property
    def flush_job_id(self) -> str:
        return f"mining-flush:{self.session.account_id}"

    def sample_hash_rate(self) -> float:
        """Cosmetic hash rate in [15, 45); never used for rewards."""
        return HASH_RATE_FLOOR + self.rng.random() * HASH_RATE_SPAN

    async def toggle(self) -> bool:
        """Invert the mining state and return the new ``active`` flag."""
        if self._toggling:
            raise ConflictError("Mining toggle already in progress", code="MINING_BUSY")
        self._toggling = True
        try:
            if self.active:
                await self.stop()
            else:
                self.start()
        finally:
            self._toggling = False
        return self.active

    def start(self) -> None:
        if self.active:
            return
        self.active = True
        self.pending = 0
        self.hash_rate = self.sample_hash_rate()
        self.scheduler.add_job(
            self.reward_tick,
            IntervalTrigger(seconds=self.reward_interval_seconds),
            id=self.reward_job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self.flush_tick,
            IntervalTrigger(seconds=self.flush_interval_seconds),
            id=self.flush_job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Mining started for %s", self.session.account_id)

    async def stop(self) -> None:
        if not self.active:
            return
        for job_id in (self.reward_job_id, self.flush_job_id):
            if self.scheduler.get_job(job_id) is not None:
                self.scheduler.remove_job(job_id)
        self.active = False
        self.hash_rate = 0.0

        pending = self.flush(SESSION_FLUSH)
        if pending:
            await asyncio.gather(*pending)
        logger.info("Mining stopped for %s", self.session.account_id)

    async def reward_tick(self) -> None:
        """Credit one random reward to the ledger."""
        if not self.active:
            return
        reward = self.rng.randint(*REWARD_RANGE)
        self.session.ledger.credit_mining(reward, self.session.today())
        self.pending += reward
        self.hash_rate = self.sample_hash_rate()

    async def flush_tick(self) -> None:
        if not self.active:
            return
        self.flush(PERIODIC_FLUSH)

    def flush(self, description: str) -> list[asyncio.Future]:
        """Persist the ledger snapshot and one transaction for ``pending``.

        Returns the queued write futures, or an empty list when nothing was
        pending.
        """
        amount = self.pending
        if amount <= 0:
            return []
        self.pending = 0

        text = description.format(amount=amount)
        self.session.ledger.record(
            ActivityEvent(kind=ActivityKind.MINING, amount=amount, description=text)
        )
        return [
            self.session.persist_profile(
                "balance", "total_earned", "today_earned", "mining_earned"
            ),
            self.session.record_transaction(ActivityKind.MINING, text, amount),
        ]
