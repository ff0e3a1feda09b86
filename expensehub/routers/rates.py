from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from datetime import datetime
from typing import Dict, Optional

from expensehub.models.rates import RateTable, RateUpdate
from expensehub.services.rate_service import RateService, describe_age
from expensehub.services.rates.base import RateFetchError
from .deps import get_rate_service

"""Rates router.

Endpoints:
    - GET /rates                -> current table (units per 1 EUR) and freshness
    - POST /rates/refresh       -> pull the configured provider and store
    - PUT /rates/{currency}     -> manual override for one currency
"""

router = APIRouter(prefix="/rates", tags=["rates"])


class RatesOut(BaseModel):
    base_currency: str = "EUR"
    rates: Dict[str, float]
    last_updated: Optional[datetime] = None
    source: str
    age: str


def _to_out(table: RateTable) -> RatesOut:
    return RatesOut(
        rates=table.rates,
        last_updated=table.last_updated,
        source=table.source,
        age=describe_age(table.last_updated),
    )


@router.get("", response_model=RatesOut, summary="Current exchange rate table")
async def get_rates(svc: RateService = Depends(get_rate_service)):
    return _to_out(svc.current())


@router.post("/refresh", response_model=RatesOut, summary="Refresh rates from provider")
def refresh_rates(svc: RateService = Depends(get_rate_service)):
    try:
        return _to_out(svc.refresh())
    except RateFetchError as e:
        raise HTTPException(status_code=502, detail=f"rate refresh failed: {e}") from e


@router.put("/{currency}", response_model=RatesOut, summary="Set a manual rate")
async def set_rate(
    currency: str,
    payload: RateUpdate,
    svc: RateService = Depends(get_rate_service),
):
    try:
        return _to_out(svc.set_rate(currency, payload.rate))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
