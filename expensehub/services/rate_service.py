"""Exchange rate service.

Design:
- Base currency: EUR; every stored rate is units of currency per 1 EUR.
- `current()` merges the stored table over the built-in defaults, so a fresh
  install still exports (the spreadsheet banner then says defaults are in use).
- `refresh()` pulls a full table from the configured provider and stores it.
- `set_rate()` is a manual override for a single currency.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from expensehub.db.dal import Database
from expensehub.models.constants import BASE_CURRENCY, DEFAULT_RATES
from expensehub.models.rates import RateTable
from .rates.base import RateProvider

logger = logging.getLogger("expensehub.rates")


class RateService:
    def __init__(self, db: Database, provider: RateProvider):
        self._db = db
        self._provider = provider

    def current(self) -> RateTable:
        stored, last_updated, source = self._db.get_rates()
        rates = dict(DEFAULT_RATES)
        rates.update(stored)
        rates[BASE_CURRENCY] = 1.0
        return RateTable(
            rates=rates,
            last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
            source=source or "default",
        )

    def refresh(self) -> RateTable:
        """Fetch and persist the provider's table; RateFetchError propagates."""
        table = self._provider.fetch_rates()
        self._db.store_rates(table)
        logger.info(
            "exchange rates refreshed from %s (%d currencies)",
            table.source,
            len(table.rates),
        )
        return self.current()

    def set_rate(self, currency: str, rate: float) -> RateTable:
        currency = currency.upper()
        if currency == BASE_CURRENCY:
            raise ValueError("base currency rate is fixed at 1.0")
        if rate <= 0:
            raise ValueError("rate must be positive")
        self._db.store_rates(
            RateTable(
                rates={currency: rate},
                last_updated=datetime.now(timezone.utc),
                source="manual",
            )
        )
        return self.current()


def describe_age(last_updated: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Human-readable time since the last rate update."""
    if last_updated is None:
        return "Never updated"
    now = now or datetime.now(timezone.utc)
    if last_updated.tzinfo is None:
        last_updated = last_updated.replace(tzinfo=timezone.utc)
    minutes = int((now - last_updated).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "Just now"
