from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, TYPE_CHECKING

from .base import FetchError, RateFetcher, RateTable, SymbolTable
from .conversion import ConversionResult, convert_amount, rebase
from .providers import make_rate_fetcher
from .state import CacheState, CacheStateCell

if TYPE_CHECKING:  # pragma: no cover
    from app.core.config import Settings

"""Central exchange-rate cache.

Purpose:
    Hold the current symbol table and rate table (plus the base the rates were
    fetched in and when) and answer symbol, rate and conversion queries from it.

Design:
    - One refresh path per table (refresh_rates / refresh_symbols). The
      scheduler and the query paths call the same methods.
    - A failed fetch is logged and leaves the previous state untouched; callers
      always get the last good data, however old.
    - get_rates refreshes synchronously when the requested base differs from the
      cached base or the table is older than the staleness threshold.
    - convert always refreshes at the cache's own base first.
    - No in-flight dedup: concurrent refreshes each fetch and the last commit
      wins. Every commit is a whole-state swap so the result stays consistent.
"""

logger = logging.getLogger("app.rates")

DEFAULT_STALE_AFTER = timedelta(seconds=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateCacheService:
    def __init__(
        self,
        fetcher: RateFetcher,
        cell: CacheStateCell | None = None,
        *,
        default_base: str = "USD",
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._fetcher = fetcher
        self._cell = cell if cell is not None else CacheStateCell(
            CacheState(base_currency=default_base.upper())
        )
        self._default_base = default_base.upper()
        self._stale_after = stale_after
        self._clock = clock

    @property
    def default_base(self) -> str:
        return self._default_base

    @property
    def state(self) -> CacheState:
        return self._cell.get()

    # Refresh ---------------------------------------------------
    def refresh_rates(self, base: str | None = None) -> bool:
        """Fetch rates for ``base`` (default: the cached base) and commit them.

        Returns False when the fetch failed; the cache is unchanged then.
        """
        base = (base or self._cell.get().base_currency).upper()
        started = time.perf_counter()
        try:
            fetched = self._fetcher.fetch_rates(base)
        except FetchError as e:
            logger.warning(
                "rate refresh failed", extra={"base": base, "error": str(e)}
            )
            return False
        self._cell.replace_rates(fetched.rates, fetched.base, self._clock())
        logger.debug(
            "rates committed",
            extra={
                "base": fetched.base,
                "count": len(fetched.rates),
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return True

    def refresh_symbols(self) -> bool:
        try:
            symbols = self._fetcher.fetch_symbols()
        except FetchError as e:
            logger.warning("symbol refresh failed", extra={"error": str(e)})
            return False
        self._cell.replace_symbols(symbols)
        logger.debug("symbols committed", extra={"count": len(symbols)})
        return True

    def prime(self) -> None:
        """Initial synchronous load done at application startup."""
        symbols_ok = self.refresh_symbols()
        rates_ok = self.refresh_rates(self._default_base)
        logger.info(
            "rate cache primed",
            extra={
                "base": self._default_base,
                "symbols_ok": symbols_ok,
                "rates_ok": rates_ok,
            },
        )

    # Staleness -------------------------------------------------
    def age(self, state: CacheState | None = None) -> timedelta | None:
        state = state or self._cell.get()
        if state.last_fetched_at is None:
            return None
        return self._clock() - state.last_fetched_at

    def is_stale(self, requested_base: str | None = None) -> bool:
        state = self._cell.get()
        if requested_base and requested_base.upper() != state.base_currency:
            return True
        age = self.age(state)
        return age is None or age > self._stale_after

    # Queries ---------------------------------------------------
    def get_symbols(self) -> SymbolTable:
        return dict(self._cell.get().symbols)

    def get_rates(self, requested_base: str) -> RateTable:
        requested_base = requested_base.upper()
        if self.is_stale(requested_base):
            self.refresh_rates(requested_base)
        state = self._cell.get()
        if requested_base == state.base_currency:
            return dict(state.rates)
        return rebase(state.rates, requested_base)

    def convert(self, from_currency: str, to_currency: str, amount: float) -> ConversionResult:
        self.refresh_rates()
        state = self._cell.get()
        return convert_amount(
            state.rates, state.base_currency, from_currency, to_currency, amount
        )

    def status(self) -> Dict[str, object]:
        state = self._cell.get()
        age = self.age(state)
        return {
            "provider": self._fetcher.name,
            "base_currency": state.base_currency,
            "last_fetched_at": state.last_fetched_at,
            "age_seconds": None if age is None else round(age.total_seconds(), 3),
            "stale": age is None or age > self._stale_after,
            "rate_count": len(state.rates),
            "symbol_count": len(state.symbols),
        }


def build_rate_cache_service(settings: "Settings") -> RateCacheService:
    """Wire a cache over the provider named in settings."""
    fetcher = make_rate_fetcher(
        settings.exchange_rate_provider,
        base_url=settings.rates_api_base_url,
        timeout=settings.http_timeout_seconds,
        retries=settings.http_retries,
        backoff=settings.http_backoff_seconds,
    )
    return RateCacheService(
        fetcher,
        default_base=settings.default_base_currency,
        stale_after=timedelta(seconds=settings.rates_stale_after_seconds),
    )
