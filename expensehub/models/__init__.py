"""Pydantic and dataclass domain models for expense reports and exports."""

from .constants import (
    BASE_CURRENCY,
    DEFAULT_RATES,
    EXPENSE_TYPES,
    REPORT_STATUSES,
)  # re-export
from .expense import (
    ExpenseLine,
    ExpenseLineIn,
    ExpenseLineUpdate,
    ReportIn,
    ReportOut,
    ReportStatusUpdate,
)
from .export import ExportRequest
from .metadata import FuelMeta, HotelMeta, MealMeta, ParkingMeta, TrainMeta
from .rates import RateTable, RateUpdate

__all__ = [
    "BASE_CURRENCY",
    "DEFAULT_RATES",
    "EXPENSE_TYPES",
    "REPORT_STATUSES",
    "ExpenseLine",
    "ExpenseLineIn",
    "ExpenseLineUpdate",
    "ReportIn",
    "ReportOut",
    "ReportStatusUpdate",
    "ExportRequest",
    "FuelMeta",
    "HotelMeta",
    "MealMeta",
    "ParkingMeta",
    "TrainMeta",
    "RateTable",
    "RateUpdate",
]
