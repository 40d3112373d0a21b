"""Supabase service-role client singleton."""

from functools import lru_cache

import httpx
from supabase.lib.client_options import SyncClientOptions

from app.config import settings
from app.utils.errors import ConfigurationError
from supabase import Client, create_client


def _pool_limits() -> tuple[httpx.Limits, int]:
    connections = max(10, settings.supabase_http_max_connections)
    keepalive = min(connections, max(5, settings.supabase_http_max_keepalive_connections))
    return (
        httpx.Limits(max_connections=connections, max_keepalive_connections=keepalive),
        max(1, settings.supabase_postgrest_timeout_seconds),
    )


@lru_cache(maxsize=1)
def get_service_client() -> Client:
    """Return the service-role Supabase client (bypasses RLS).

    Profile balances are only ever written through this client, so the
    browser never holds a key that can change them. Sessions are not
    persisted; the client only validates bearer tokens and reads or writes
    ledger tables.
    """
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ConfigurationError()

    limits, timeout_seconds = _pool_limits()
    options = SyncClientOptions(
        auto_refresh_token=False,
        persist_session=False,
        postgrest_client_timeout=timeout_seconds,
        httpx_client=httpx.Client(timeout=httpx.Timeout(timeout_seconds), limits=limits),
    )
    return create_client(settings.supabase_url, settings.supabase_service_key, options=options)
