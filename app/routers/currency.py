from __future__ import annotations

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from app.models.constants import CURRENCY_CODE_PATTERN, FALLBACK_SYMBOLS
from app.models.currency import CacheStatusOut, ConversionOut
from app.services.rates.cache_service import RateCacheService

"""Currency query endpoints.

    - GET /api/symbols              -> code -> name (built-in fallback until loaded)
    - GET /api/rates?base=USD       -> code -> rate relative to base
    - GET /api/convert?from&to&amount
    - GET /api/rates/status         -> cache freshness summary

Handlers are plain ``def`` so FastAPI runs them on its thread pool; a refresh
triggered by one request blocks only that request.
Unknown codes raise UnknownCurrencyError, mapped to 400 in app.core.errors.
"""

router = APIRouter(prefix="/api", tags=["currency"])


def get_rate_cache(request: Request) -> RateCacheService:
    return request.app.state.rate_cache


@router.get("/symbols", summary="Currency codes and names")
def get_symbols(
    svc: RateCacheService = Depends(get_rate_cache),
) -> Dict[str, str]:
    return svc.get_symbols() or dict(FALLBACK_SYMBOLS)


@router.get("/rates", summary="Latest rates relative to a base currency")
def get_rates(
    base: Optional[str] = Query(None, pattern=CURRENCY_CODE_PATTERN),
    svc: RateCacheService = Depends(get_rate_cache),
) -> Dict[str, float]:
    return svc.get_rates(base or svc.default_base)


@router.get("/rates/status", summary="Rate cache freshness", response_model=CacheStatusOut)
def get_rates_status(svc: RateCacheService = Depends(get_rate_cache)):
    return svc.status()


@router.get("/convert", summary="Convert an amount between currencies", response_model=ConversionOut)
def convert(
    from_currency: str = Query(..., alias="from", pattern=CURRENCY_CODE_PATTERN),
    to_currency: str = Query(..., alias="to", pattern=CURRENCY_CODE_PATTERN),
    amount: float = Query(...),
    svc: RateCacheService = Depends(get_rate_cache),
):
    res = svc.convert(from_currency, to_currency, amount)
    return ConversionOut(
        from_currency=res.from_currency,
        to_currency=res.to_currency,
        amount=res.amount,
        result=res.result,
    )
