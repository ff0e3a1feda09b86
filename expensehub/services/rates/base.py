from __future__ import annotations

"""Rate provider abstraction.

A provider yields a full rate table (units per 1 EUR) in one call; the rate
service persists whatever the configured provider returns.
"""
from abc import ABC, abstractmethod

from expensehub.models.rates import RateTable


class RateFetchError(Exception):
    pass


class RateProvider(ABC):
    base_currency: str = "EUR"

    @abstractmethod
    def fetch_rates(self) -> RateTable:
        """Return the latest table; raise RateFetchError when unavailable."""
        raise NotImplementedError
