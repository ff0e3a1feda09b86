from __future__ import annotations

"""Concrete rate providers and factory.

'frankfurter' reads European Central Bank reference rates from the Frankfurter
API (free, no key). 'static' serves the built-in default table.
"""
from datetime import datetime, timezone
from typing import Dict, Sequence
import logging

from .base import RateProvider, RateFetchError
from expensehub.models.constants import DEFAULT_RATES
from expensehub.models.rates import RateTable
from expensehub.services.http_client import get_json, HttpError

logger = logging.getLogger("expensehub.rates")


class StaticRateProvider(RateProvider):
    def fetch_rates(self) -> RateTable:  # type: ignore[override]
        return RateTable(rates=dict(DEFAULT_RATES), last_updated=None, source="static")


class FrankfurterRateProvider(RateProvider):
    def __init__(
        self,
        base_url: str = "https://api.frankfurter.app",
        currencies: Sequence[str] = ("USD", "GBP", "CHF"),
        timeout: float = 5.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._currencies = [c.upper() for c in currencies if c.upper() != "EUR"]
        self._timeout = timeout

    def fetch_rates(self) -> RateTable:  # type: ignore[override]
        url = f"{self._base_url}/latest?from={self.base_currency}&to={','.join(self._currencies)}"
        try:
            data = get_json(url, timeout=self._timeout, retries=2)
        except HttpError as e:
            raise RateFetchError(str(e)) from e
        quoted = data.get("rates")
        if not isinstance(quoted, dict):
            raise RateFetchError("rate API returned invalid response")

        rates: Dict[str, float] = {self.base_currency: 1.0}
        for currency in self._currencies:
            value = quoted.get(currency)
            if isinstance(value, (int, float)) and value > 0:
                rates[currency] = float(value)
            elif currency in DEFAULT_RATES:
                logger.warning("rate API missing %s; keeping default", currency)
                rates[currency] = DEFAULT_RATES[currency]

        try:
            as_of = datetime.fromisoformat(str(data.get("date"))).replace(
                tzinfo=timezone.utc
            )
        except ValueError:
            as_of = datetime.now(timezone.utc)
        return RateTable(rates=rates, last_updated=as_of, source="frankfurter")


def make_rate_provider(
    kind: str,
    *,
    base_url: str = "https://api.frankfurter.app",
    currencies: Sequence[str] = ("USD", "GBP", "CHF"),
    timeout: float = 5.0,
) -> RateProvider:
    if kind == "static":
        return StaticRateProvider()
    if kind == "frankfurter":
        return FrankfurterRateProvider(base_url, currencies, timeout)
    raise ValueError(f"Unknown rate provider kind '{kind}'")
