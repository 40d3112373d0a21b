"""Background job modules for periodic ledger tasks."""

from app.jobs.daily_reset import daily_ledger_reset
from app.jobs.session_sweep import sweep_idle_sessions

__all__ = [
    "daily_ledger_reset",
    "sweep_idle_sessions",
]
