from __future__ import annotations

"""Concrete rate fetchers and factory.

'exchangerate-host' talks to an exchangerate.host style API
(``GET /symbols`` and ``GET /latest?base=CODE``). 'static' serves a fixed
table shaped like the upstream payloads so the service runs offline.
"""
import math
from typing import Any, Dict, Mapping, Type

from app.services.http_client import HttpError, build_url, get_json
from .base import FetchError, RateFetch, RateFetcher, RateTable, SymbolTable

_STATIC_SYMBOLS: Dict[str, str] = {
    "USD": "United States Dollar",
    "EUR": "Euro",
    "GBP": "British Pound Sterling",
    "INR": "Indian Rupee",
    "JPY": "Japanese Yen",
    "SGD": "Singapore Dollar",
}

# USD per-unit quotes; other bases are derived on request.
_STATIC_USD_RATES: Dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.9,
    "GBP": 0.79,
    "INR": 83.0,
    "JPY": 149.5,
    "SGD": 1.35,
}


def _check_envelope(payload: Mapping[str, Any], what: str) -> None:
    # exchangerate.host reports failures as 200 + {"success": false, "error": {...}}
    if payload.get("success") is False:
        raise FetchError(f"upstream rejected {what} request: {payload.get('error')}")


def parse_symbols(payload: Mapping[str, Any]) -> SymbolTable:
    """Flatten ``{"symbols": {CODE: {"description": name}}}`` into CODE -> name."""
    _check_envelope(payload, "symbols")
    node = payload.get("symbols")
    if not isinstance(node, dict) or not node:
        raise FetchError("symbols payload has no 'symbols' object")
    symbols: SymbolTable = {}
    for code, entry in node.items():
        if isinstance(entry, dict):
            description = entry.get("description")
        else:
            description = entry
        symbols[str(code).upper()] = "" if description is None else str(description)
    return symbols


def parse_rates(payload: Mapping[str, Any], base: str) -> RateTable:
    """Flatten ``{"rates": {CODE: number}}`` into CODE -> float.

    Non-positive quotes are dropped so the table only holds usable rates.
    The base's own entry, when listed, has to be 1.0.
    """
    _check_envelope(payload, "rates")
    node = payload.get("rates")
    if not isinstance(node, dict) or not node:
        raise FetchError(f"rates payload for {base} has no 'rates' object")
    rates: RateTable = {}
    for code, value in node.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise FetchError(f"non-numeric rate for {code}: {value!r}")
        try:
            value = float(value)
        except OverflowError:
            # integer literal beyond float range; unusable like inf
            continue
        if not math.isfinite(value) or value <= 0:
            continue
        rates[str(code).upper()] = value
    if not rates:
        raise FetchError(f"rates payload for {base} has no positive rates")
    own = rates.get(base)
    if own is not None and not math.isclose(own, 1.0, rel_tol=1e-9):
        raise FetchError(f"rate table for base {base} lists {base} at {own}")
    return rates


class ExchangeRateHostFetcher(RateFetcher):
    name = "exchangerate-host"

    def __init__(
        self,
        base_url: str = "https://api.exchangerate.host",
        *,
        timeout: float = 5.0,
        retries: int = 2,
        backoff: float = 0.5,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._retries = retries
        self._backoff = backoff

    def _get(self, path: str, params: Dict[str, str] | None = None) -> Dict[str, Any]:
        url = build_url(self._base_url, path, params)
        try:
            return get_json(
                url, timeout=self._timeout, retries=self._retries, backoff=self._backoff
            )
        except HttpError as e:
            raise FetchError(str(e)) from e

    def fetch_symbols(self) -> SymbolTable:
        return parse_symbols(self._get("symbols"))

    def fetch_rates(self, base: str) -> RateFetch:
        base = base.upper()
        rates = parse_rates(self._get("latest", {"base": base}), base)
        return RateFetch(rates=rates, base=base)


class StaticRateFetcher(RateFetcher):
    name = "static"

    def fetch_symbols(self) -> SymbolTable:
        return parse_symbols(
            {"symbols": {c: {"description": d} for c, d in _STATIC_SYMBOLS.items()}}
        )

    def fetch_rates(self, base: str) -> RateFetch:
        base = base.upper()
        pivot = _STATIC_USD_RATES.get(base)
        if pivot is None:
            raise FetchError(f"static provider has no rates for base {base}")
        payload = {"rates": {c: v / pivot for c, v in _STATIC_USD_RATES.items()}}
        return RateFetch(rates=parse_rates(payload, base), base=base)


_FETCHER_REGISTRY: Dict[str, Type[RateFetcher]] = {
    ExchangeRateHostFetcher.name: ExchangeRateHostFetcher,
    StaticRateFetcher.name: StaticRateFetcher,
}

ALLOWED_RATE_PROVIDERS = frozenset(_FETCHER_REGISTRY)


def make_rate_fetcher(kind: str, **options: Any) -> RateFetcher:
    """Build the fetcher registered under ``kind``.

    ``options`` are passed to the HTTP fetcher (base_url, timeout, retries,
    backoff) and ignored by the static one.
    """
    cls = _FETCHER_REGISTRY.get(kind)
    if cls is None:
        raise ValueError(f"Unknown rate provider kind '{kind}'")
    if cls is ExchangeRateHostFetcher:
        return ExchangeRateHostFetcher(**options)
    return cls()
