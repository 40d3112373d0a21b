"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration.

    Values are read from environment variables (or a `.env` file).
    """

    # Supabase
    supabase_url: str
    supabase_service_key: str
    supabase_http_max_connections: int = 100
    supabase_http_max_keepalive_connections: int = 50
    supabase_postgrest_timeout_seconds: int = 30

    # Payout processor
    faucetpay_api_key: str = ""
    faucetpay_api_url: str = "https://faucetpay.io/api/v1"
    payout_timeout_seconds: float = 30.0

    # Human verification (enabled when the secret is set)
    hcaptcha_secret_key: str = ""
    hcaptcha_verify_url: str = "https://hcaptcha.com/siteverify"

    # App
    app_name: str = "Satoshi Rewards API"
    app_version: str = "1.0.0"
    environment: str = "development"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:5173"
    enable_scheduler: bool = True

    # Scheduling
    timezone: str = "UTC"
    mining_reward_interval_seconds: int = 3
    mining_flush_interval_seconds: int = 15
    session_idle_seconds: int = 1800
    session_sweep_interval_seconds: int = 60

    # Ledger + persistence
    activity_log_limit: int = 50
    persistence_max_attempts: int = 3
    persistence_retry_backoff_seconds: float = 0.5

    # Performance tuning
    auth_token_cache_ttl_seconds: int = 15
    auth_token_cache_max_entries: int = 1024
    withdraw_request_id_ttl_seconds: int = 600
    slow_request_log_threshold_ms: int = 0
    slow_query_log_threshold_ms: int = 0

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment == "production"

    @property
    def origins_list(self) -> list[str]:
        """Parse comma-separated ALLOWED_ORIGINS into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def proof_required(self) -> bool:
        """Return True when withdrawals must carry a verified hCaptcha token."""
        return bool(self.hcaptcha_secret_key)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()  # type: ignore[call-arg]
