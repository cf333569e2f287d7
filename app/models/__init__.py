"""Pydantic models and constants for the currency API."""

from .constants import (
    CURRENCY_CODE_PATTERN,
    FALLBACK_SYMBOLS,
)  # re-export
from .currency import CacheStatusOut, ConversionOut

__all__ = [
    "CURRENCY_CODE_PATTERN",
    "FALLBACK_SYMBOLS",
    "CacheStatusOut",
    "ConversionOut",
]
