"""Expense report tracking service with multi-currency spreadsheet export."""

__version__ = "0.1.0"
