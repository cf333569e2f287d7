from __future__ import annotations

"""Rate fetcher abstraction and the errors shared by the rates package.

A fetcher performs the two upstream calls (symbol list, latest rates for a
base) and returns flat mappings. It never touches cache state and never logs
failures; it raises FetchError and lets the caller decide what to keep.
"""
from abc import ABC, abstractmethod
from typing import Dict, NamedTuple

SymbolTable = Dict[str, str]
RateTable = Dict[str, float]


class FetchError(Exception):
    """Network, HTTP status or payload problem while talking to the upstream."""


class UnknownCurrencyError(LookupError):
    def __init__(self, code: str):
        super().__init__(code)
        self.code = code

    def __str__(self) -> str:
        return f"Unknown currency code: {self.code}"


class RateFetch(NamedTuple):
    rates: RateTable
    base: str


class RateFetcher(ABC):
    name: str = "abstract"

    @abstractmethod
    def fetch_symbols(self) -> SymbolTable:
        """Return currency code -> human readable name."""
        raise NotImplementedError

    @abstractmethod
    def fetch_rates(self, base: str) -> RateFetch:
        """Return rates relative to ``base`` (uppercased) and echo that base."""
        raise NotImplementedError
