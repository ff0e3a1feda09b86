from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from expensehub.models.constants import BASE_CURRENCY
from expensehub.services.money import round2, round4

"""Currency conversion through the shared base currency.

Every rate table maps currency -> units per 1 EUR, so any pair converts in two
steps: amount / rate[from] gives EUR, times rate[to] gives the target. The
displayed pair rate (4 decimals) and the applied two-step factor may differ in
the last digits; amounts are rounded once, at the end.

A currency missing from the table converts at 1.0. That keeps exports flowing
but silently mis-prices the line, so every fallback is logged.
"""

logger = logging.getLogger("expensehub.rates")


@dataclass(frozen=True)
class ConversionResult:
    original_amount: float
    currency: str
    target_currency: str
    rate: float
    converted_amount: float


def _rate_of(currency: str, rates: Mapping[str, float]) -> float:
    if currency == BASE_CURRENCY:
        return 1.0
    rate = rates.get(currency)
    if not rate:
        logger.warning("no exchange rate for %s; using 1.0", currency)
        return 1.0
    return rate


def convert(
    amount: float, from_currency: str, to_currency: str, rates: Mapping[str, float]
) -> float:
    if from_currency == to_currency:
        return amount
    base_amount = amount / _rate_of(from_currency, rates)
    return round2(base_amount * _rate_of(to_currency, rates))


def compute_rate(
    from_currency: str, to_currency: str, rates: Mapping[str, float]
) -> float:
    """Display rate: units of `to_currency` per 1 unit of `from_currency`."""
    if from_currency == to_currency:
        return 1.0
    return round4(_rate_of(to_currency, rates) / _rate_of(from_currency, rates))


def convert_line(
    amount: float, from_currency: str, to_currency: str, rates: Mapping[str, float]
) -> ConversionResult:
    from_currency = from_currency.upper()
    to_currency = to_currency.upper()
    return ConversionResult(
        original_amount=amount,
        currency=from_currency,
        target_currency=to_currency,
        rate=compute_rate(from_currency, to_currency, rates),
        converted_amount=convert(amount, from_currency, to_currency, rates),
    )
