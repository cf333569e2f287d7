from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping

from .base import UnknownCurrencyError

"""Rebasing and pairwise conversion over a base-denominated rate table.

Every table here maps CODE -> units of CODE per 1 unit of the table's base.
Converting therefore divides by the source rate (into the base) and
multiplies by the target rate (out of the base). No rounding is applied.
"""


@dataclass(frozen=True)
class ConversionResult:
    from_currency: str
    to_currency: str
    amount: float
    result: float
    base_currency: str
    from_rate: float
    to_rate: float


def rebase(rates: Mapping[str, float], requested_base: str) -> Dict[str, float]:
    """Express ``rates`` relative to ``requested_base``.

    If the requested base is missing or quoted at zero the table is returned
    as-is (still in its original base).
    """
    pivot = rates.get(requested_base.upper())
    if not pivot:
        return dict(rates)
    return {code: value / pivot for code, value in rates.items()}


def convert_amount(
    rates: Mapping[str, float],
    base_currency: str,
    from_currency: str,
    to_currency: str,
    amount: float,
) -> ConversionResult:
    from_currency = from_currency.upper()
    to_currency = to_currency.upper()
    from_rate = rates.get(from_currency)
    if not from_rate:
        raise UnknownCurrencyError(from_currency)
    to_rate = rates.get(to_currency)
    if to_rate is None:
        raise UnknownCurrencyError(to_currency)
    return ConversionResult(
        from_currency=from_currency,
        to_currency=to_currency,
        amount=amount,
        result=amount / from_rate * to_rate,
        base_currency=base_currency,
        from_rate=from_rate,
        to_rate=to_rate,
    )
