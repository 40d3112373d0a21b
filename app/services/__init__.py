"""Service package exports with lazy loading."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "AccountSession": "app.services.session_service",
    "AccrualService": "app.services.accrual_service",
    "FaucetPayClient": "app.services.payout_service",
    "HCaptchaVerifier": "app.services.proof_service",
    "MiningLoop": "app.services.mining_service",
    "RewardsStore": "app.services.store_service",
    "SessionRegistry": "app.services.session_service",
    "SupabaseService": "app.services.common",
    "WithdrawalService": "app.services.withdrawal_service",
    "WriteBehindQueue": "app.services.persistence",
}

__all__ = sorted(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(_EXPORTS[name])
    return getattr(module, name)
