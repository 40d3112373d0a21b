"""Write-behind queue for best-effort ledger persistence."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from app.utils.errors import AppError, ConflictError

logger = logging.getLogger(__name__)


@dataclass
class PendingWrite:
    """One queued store call and the future its submitter may await."""

    label: str
    operation: Callable[[str], Any]
    done: asyncio.Future
    token: str = field(default_factory=lambda: uuid.uuid4().hex)


class WriteBehindQueue:
    """Serialize store writes on one worker task with bounded retry.

    Writes run in submission order. Every write gets an idempotency token that
    is passed to its operation; a duplicate-row conflict on retry means an
    earlier attempt already landed and counts as success. A write that still
    fails after ``max_attempts`` is logged and counted, never raised to the
    submitter: the in-memory ledger stays correct either way.
    """

    def __init__(self, max_attempts: int = 3, backoff_seconds: float = 0.5) -> None:
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = max(0.0, backoff_seconds)
        self.failed_writes = 0
        self._queue: asyncio.Queue[PendingWrite] | None = None
        self._worker: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the worker on the running event loop."""
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.get_running_loop().create_task(self._run())

    def submit(self, label: str, operation: Callable[[str], Any]) -> asyncio.Future:
        """Queue ``operation(token)``; the future resolves to True once written."""
        if not self.running:
            self.start()
        assert self._queue is not None
        done = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(PendingWrite(label=label, operation=operation, done=done))
        return done

    async def join(self) -> None:
        """Wait until every queued write has been attempted."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Drain outstanding writes and stop the worker."""
        if not self.running:
            return
        await self.join()
        assert self._worker is not None
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            item = await self._queue.get()
            try:
                written = await self._write(item)
                if not item.done.done():
                    item.done.set_result(written)
            finally:
                self._queue.task_done()

    async def _write(self, item: PendingWrite) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await asyncio.to_thread(item.operation, item.token)
                return True
            except ConflictError:
                logger.info("Write %s already applied (token %s)", item.label, item.token)
                return True
            except AppError as exc:
                logger.warning(
                    "Write %s failed on attempt %s/%s: %s",
                    item.label,
                    attempt,
                    self.max_attempts,
                    exc.message,
                )
            except Exception:
                logger.exception("Write %s raised unexpectedly", item.label)
                break

            if attempt < self.max_attempts:
                await asyncio.sleep(self.backoff_seconds * attempt)

        self.failed_writes += 1
        logger.error("Dropping write %s after retries (token %s)", item.label, item.token)
        return False
