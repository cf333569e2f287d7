from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List

import pytest

from app.services.rates.base import FetchError, RateFetch, RateFetcher
from app.services.rates.cache_service import RateCacheService

USD_RATES: Dict[str, float] = {"USD": 1.0, "EUR": 0.9, "INR": 83.0}
SYMBOLS: Dict[str, str] = {
    "USD": "United States Dollar",
    "EUR": "Euro",
    "INR": "Indian Rupee",
}


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeFetcher(RateFetcher):
    """Serves USD_RATES rebased to whatever base is asked for; can be told to fail."""

    name = "fake"

    def __init__(self, rates: Dict[str, float] | None = None, symbols: Dict[str, str] | None = None):
        self.usd_rates = dict(rates if rates is not None else USD_RATES)
        self.symbols = dict(symbols if symbols is not None else SYMBOLS)
        self.fail = False
        self.rate_calls: List[str] = []
        self.symbol_calls = 0

    def fetch_symbols(self):
        self.symbol_calls += 1
        if self.fail:
            raise FetchError("upstream down")
        return dict(self.symbols)

    def fetch_rates(self, base: str) -> RateFetch:
        base = base.upper()
        self.rate_calls.append(base)
        if self.fail:
            raise FetchError("upstream down")
        pivot = self.usd_rates.get(base)
        if pivot is None:
            raise FetchError(f"no base {base}")
        return RateFetch({c: v / pivot for c, v in self.usd_rates.items()}, base)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def service(fetcher: FakeFetcher, clock: FakeClock) -> RateCacheService:
    svc = RateCacheService(fetcher, default_base="USD", clock=clock)
    svc.prime()
    fetcher.rate_calls.clear()
    fetcher.symbol_calls = 0
    return svc
