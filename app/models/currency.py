from __future__ import annotations
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import CURRENCY_CODE_PATTERN


class ConversionOut(BaseModel):
    """Body of GET /api/convert; ``from`` is a keyword, hence the alias."""

    model_config = ConfigDict(populate_by_name=True)

    from_currency: str = Field(..., alias="from", pattern=CURRENCY_CODE_PATTERN)
    to_currency: str = Field(..., alias="to", pattern=CURRENCY_CODE_PATTERN)
    amount: float
    result: float

    @field_validator("from_currency", "to_currency")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()


class CacheStatusOut(BaseModel):
    provider: str
    base_currency: str
    last_fetched_at: Optional[datetime] = None
    age_seconds: Optional[float] = None
    stale: bool
    rate_count: int = Field(..., ge=0)
    symbol_count: int = Field(..., ge=0)
