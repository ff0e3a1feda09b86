from __future__ import annotations
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Dict, Optional


class RateTable(BaseModel):
    """Units of each currency per 1 unit of the base currency (EUR)."""

    rates: Dict[str, float]
    last_updated: Optional[datetime] = None
    source: str = "default"

    @field_validator("rates")
    @classmethod
    def positive_rates(cls, v: Dict[str, float]) -> Dict[str, float]:
        for currency, rate in v.items():
            if rate <= 0:
                raise ValueError(f"rate for {currency} must be positive")
        return {c.upper(): r for c, r in v.items()}


class RateUpdate(BaseModel):
    rate: float = Field(..., gt=0, description="Units of currency per 1 EUR")
