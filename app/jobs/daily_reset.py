"""Midnight rollover of today's earnings for live sessions."""

from __future__ import annotations

import logging

from app.services.session_service import SessionRegistry

logger = logging.getLogger(__name__)


async def daily_ledger_reset(registry: SessionRegistry) -> None:
    """Zero ``today_earned`` for every live session that crossed midnight.

    Sessions loaded later are corrected on load, so each ledger resets once
    per day whichever path sees the new date first.
    """
    reset = 0
    for session in registry:
        if session.ledger.roll_day(session.today()):
            session.persist_profile("today_earned")
            reset += 1

    logger.info("daily_ledger_reset completed for %s sessions", reset)
