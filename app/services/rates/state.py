from __future__ import annotations

"""Cache state snapshot and the cell that owns it.

A CacheState is never mutated. Writers build a replacement and swap the
cell's reference under a lock; readers take the reference without locking,
so a reader always sees a rate table paired with the base it was fetched in.
"""
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Mapping, Optional


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class CacheState:
    symbols: Mapping[str, str] = field(default_factory=lambda: _frozen({}))
    rates: Mapping[str, float] = field(default_factory=lambda: _frozen({}))
    base_currency: str = "USD"
    last_fetched_at: Optional[datetime] = None

    @property
    def has_rates(self) -> bool:
        return self.last_fetched_at is not None


class CacheStateCell:
    def __init__(self, initial: CacheState | None = None):
        self._state = initial if initial is not None else CacheState()
        self._write_lock = threading.Lock()

    def get(self) -> CacheState:
        return self._state

    def swap(self, update: Callable[[CacheState], CacheState]) -> CacheState:
        with self._write_lock:
            new_state = update(self._state)
            self._state = new_state
            return new_state

    def replace_rates(
        self, rates: Mapping[str, float], base_currency: str, fetched_at: datetime
    ) -> CacheState:
        frozen = _frozen(rates)
        return self.swap(
            lambda s: replace(
                s,
                rates=frozen,
                base_currency=base_currency.upper(),
                last_fetched_at=fetched_at,
            )
        )

    def replace_symbols(self, symbols: Mapping[str, str]) -> CacheState:
        frozen = _frozen(symbols)
        return self.swap(lambda s: replace(s, symbols=frozen))
