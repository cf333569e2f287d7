from datetime import time
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.services.rates.providers import ALLOWED_RATE_PROVIDERS
from app.services.rates.scheduler import parse_time_of_day


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., DEBUG,
    EXCHANGE_RATE_PROVIDER, RATES_STALE_AFTER_SECONDS, SYMBOLS_REFRESH_TIME).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Budget FX Rates"
    debug: bool = False
    version: str = "0.1.0"

    # Upstream provider
    # Allowed: 'exchangerate-host' (HTTP API), 'static' (built-in table, offline)
    exchange_rate_provider: str = "exchangerate-host"
    rates_api_base_url: str = "https://api.exchangerate.host"
    http_timeout_seconds: float = 5.0
    http_retries: int = 2
    http_backoff_seconds: float = 0.5

    # Cache policy
    default_base_currency: str = "USD"
    rates_stale_after_seconds: int = 30

    # Scheduler
    rates_refresh_interval_seconds: int = 60
    symbols_refresh_time: str = "02:00"  # local wall clock, HH:MM
    scheduler_enabled: bool = True
    fetch_on_startup: bool = True

    def init_post_load(self) -> None:
        """Normalize derived fields and reject unusable values."""
        if self.exchange_rate_provider not in ALLOWED_RATE_PROVIDERS:
            raise ValueError(
                f"Unsupported exchange_rate_provider '{self.exchange_rate_provider}'. "
                f"Allowed: {sorted(ALLOWED_RATE_PROVIDERS)}"
            )
        base = self.default_base_currency.strip().upper()
        if len(base) != 3 or not base.isalpha():
            raise ValueError(f"default_base_currency must be a 3-letter code, got '{base}'")
        self.default_base_currency = base
        self.rates_api_base_url = self.rates_api_base_url.rstrip("/")
        if self.rates_stale_after_seconds < 0:
            raise ValueError("rates_stale_after_seconds must be >= 0")
        if self.rates_refresh_interval_seconds <= 0:
            raise ValueError("rates_refresh_interval_seconds must be positive")
        if self.http_retries < 0:
            raise ValueError("http_retries must be >= 0")
        # fail fast on a malformed schedule
        self.symbols_refresh_at()

    def symbols_refresh_at(self) -> time:
        return parse_time_of_day(self.symbols_refresh_time)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
