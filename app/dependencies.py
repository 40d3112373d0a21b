"""FastAPI dependency injection helpers."""

from __future__ import annotations

import threading
import time
from functools import lru_cache
from typing import Any

import httpx
from fastapi import Depends, Header

from app.config import settings
from app.jobs.scheduler import scheduler
from app.services.payout_service import FaucetPayClient
from app.services.persistence import WriteBehindQueue
from app.services.proof_service import HCaptchaVerifier
from app.services.session_service import AccountSession, SessionRegistry
from app.services.store_service import RewardsStore
from app.services.withdrawal_service import RequestIdCache, WithdrawalService
from app.utils.errors import ConfigurationError, UnauthorizedError
from app.utils.supabase_client import get_service_client

_token_cache: dict[str, tuple[float, Any]] = {}
_cache_lock = threading.Lock()


def _cache_get(cache: dict[Any, tuple[float, Any]], key: Any) -> Any | None:
    """Return a cache value when present and not expired."""
    now = time.monotonic()
    with _cache_lock:
        entry = cache.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if expires_at <= now:
            cache.pop(key, None)
            return None
        return value


def _cache_set(
    cache: dict[Any, tuple[float, Any]],
    key: Any,
    value: Any,
    ttl_seconds: int,
    max_entries: int,
) -> None:
    """Store a bounded cache value with TTL."""
    if ttl_seconds <= 0:
        return

    with _cache_lock:
        bounded_max_entries = max(1, max_entries)
        if len(cache) >= bounded_max_entries:
            oldest_key = next(iter(cache))
            cache.pop(oldest_key, None)
        cache[key] = (time.monotonic() + ttl_seconds, value)


def resolve_account_id(authorization: str | None) -> str:
    """Resolve a ``Bearer`` credential to an account id through Supabase Auth.

    Raises:
        UnauthorizedError: 401 if the header is missing, malformed, or
            the token cannot be validated.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Unauthorized - no token provided")

    token = authorization.split(" ", 1)[1]
    cached_id = _cache_get(_token_cache, token)
    if cached_id is not None:
        return cached_id

    supabase = get_service_client()

    try:
        response = supabase.auth.get_user(token)
        if not response or not response.user:
            raise UnauthorizedError("Invalid token")
        account_id = str(response.user.id)
        _cache_set(
            _token_cache,
            token,
            account_id,
            settings.auth_token_cache_ttl_seconds,
            settings.auth_token_cache_max_entries,
        )
        return account_id
    except UnauthorizedError:
        raise
    except Exception as exc:
        raise UnauthorizedError(
            "Invalid or expired session. Please log in again."
        ) from exc


def get_current_account_id(authorization: str = Header(None)) -> str:
    """Return the authenticated caller's account id."""
    return resolve_account_id(authorization)


@lru_cache(maxsize=1)
def get_store() -> RewardsStore:
    return RewardsStore(get_service_client())


@lru_cache(maxsize=1)
def get_write_queue() -> WriteBehindQueue:
    return WriteBehindQueue(
        max_attempts=settings.persistence_max_attempts,
        backoff_seconds=settings.persistence_retry_backoff_seconds,
    )


@lru_cache(maxsize=1)
def get_session_registry() -> SessionRegistry:
    """Return the process-wide registry of live account sessions."""
    return SessionRegistry(
        get_store(),
        get_write_queue(),
        scheduler,
        reward_interval_seconds=settings.mining_reward_interval_seconds,
        flush_interval_seconds=settings.mining_flush_interval_seconds,
        activity_log_limit=settings.activity_log_limit,
    )


@lru_cache(maxsize=1)
def get_http_client() -> httpx.AsyncClient:
    """Return the shared outbound client for the processor and hCaptcha."""
    return httpx.AsyncClient(timeout=httpx.Timeout(settings.payout_timeout_seconds))


def require_payout_config() -> None:
    """Refuse withdrawals before reading input when credentials are missing."""
    if not settings.faucetpay_api_key or not settings.supabase_service_key:
        raise ConfigurationError()


@lru_cache(maxsize=1)
def get_withdrawal_service() -> WithdrawalService:
    http = get_http_client()
    verifier = None
    if settings.proof_required:
        verifier = HCaptchaVerifier(
            settings.hcaptcha_secret_key, settings.hcaptcha_verify_url, http
        )
    return WithdrawalService(
        store=get_store(),
        writer=get_write_queue(),
        authenticate=resolve_account_id,
        payouts=FaucetPayClient(settings.faucetpay_api_key, settings.faucetpay_api_url, http),
        verifier=verifier,
        sessions=get_session_registry(),
        request_ids=RequestIdCache(settings.withdraw_request_id_ttl_seconds),
    )


async def get_account_session(
    account_id: str = Depends(get_current_account_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> AccountSession:
    """Return (loading if needed) the caller's session."""
    return await registry.get(account_id)
