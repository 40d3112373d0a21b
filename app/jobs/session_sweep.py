"""Idle session eviction job."""

from __future__ import annotations

import logging

from app.services.session_service import SessionRegistry

logger = logging.getLogger(__name__)


async def sweep_idle_sessions(registry: SessionRegistry, idle_seconds: float) -> None:
    """Evict idle sessions, flushing any mining reward they still hold."""
    evicted = await registry.evict_idle(idle_seconds)
    if evicted:
        logger.info("sweep_idle_sessions evicted %s sessions", evicted)
