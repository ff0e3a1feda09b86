"""
Tests for currency conversion and rounding helpers.

Pure functions, no database.
"""

from __future__ import annotations

import logging
from itertools import permutations

import pytest

from expensehub.services.money import round2, round4, sum_amounts
from expensehub.services.rates.conversion import compute_rate, convert, convert_line


class TestRounding:

    def test_round2_is_half_up(self):
        assert round2(2.675) == 2.68
        assert round2(0.125) == 0.13

    def test_round4(self):
        assert round4(0.772727) == 0.7727
        assert round4(1.23455) == 1.2346

    def test_sum_amounts_has_no_float_drift(self):
        assert sum_amounts([0.1, 0.2]) == 0.3
        assert sum_amounts([]) == 0.0


class TestConvert:

    @pytest.mark.parametrize("amount", [0.001, 1.005, 19.999, 1234.5678])
    def test_same_currency_is_identity(self, amount, rates):
        assert convert(amount, "EUR", "EUR", rates) == amount
        assert convert(amount, "USD", "USD", rates) == amount

    def test_identity_ignores_rate_table(self):
        assert convert(12.345, "EUR", "EUR", {}) == 12.345

    def test_from_base_currency(self, rates):
        assert convert(100, "EUR", "USD", rates) == 110.0

    def test_to_base_currency(self, rates):
        assert convert(110, "USD", "EUR", rates) == 100.0

    def test_cross_rate_goes_through_base(self, rates):
        # 100 USD -> 90.9090.. EUR -> 77.2727.. GBP
        assert convert(100, "USD", "GBP", rates) == 77.27

    def test_base_rate_in_table_is_ignored(self):
        assert convert(10, "EUR", "USD", {"EUR": 2.0, "USD": 1.5}) == 15.0

    def test_unknown_currency_falls_back_to_one(self, rates, caplog):
        with caplog.at_level(logging.WARNING, logger="expensehub.rates"):
            assert convert(10, "EUR", "JPY", rates) == 10.0
        assert "JPY" in caplog.text

    @pytest.mark.parametrize("amount", [0.01, 1.0, 19.99, 123.45, 9999.99])
    def test_round_trip_drift_is_bounded(self, amount, rates):
        for a, b in permutations(rates, 2):
            there = convert(amount, a, b, rates)
            back = convert(there, b, a, rates)
            assert abs(back - amount) <= 0.02 + 1e-9


class TestComputeRate:

    def test_same_currency(self, rates):
        assert compute_rate("GBP", "GBP", rates) == 1.0

    def test_four_decimals(self, rates):
        assert compute_rate("USD", "GBP", rates) == 0.7727
        assert compute_rate("EUR", "USD", rates) == 1.1

    def test_convert_line_bundles_rate_and_amount(self, rates):
        result = convert_line(100, "usd", "gbp", rates)
        assert result.currency == "USD"
        assert result.target_currency == "GBP"
        assert result.rate == 0.7727
        assert result.converted_amount == 77.27
        assert result.original_amount == 100
