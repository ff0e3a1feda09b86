from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Dict, Optional, Union
import datetime as dt
from .constants import (
    DEFAULT_CURRENCY,
    EXPENSE_TYPES,
    ITALIAN_EXPENSE_TYPES,
    REPORT_STATUSES,
)

Metadata = Union[Dict[str, Any], str]


def _coerce_date(v: Any) -> Any:
    # Storage and older clients send full ISO timestamps; only the day matters.
    if isinstance(v, dt.datetime):
        return v.date()
    if isinstance(v, str) and "T" in v:
        return v.split("T", 1)[0]
    return v


def _coerce_currency(v: Any) -> Any:
    if v is None:
        return DEFAULT_CURRENCY
    if isinstance(v, str):
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("currency must be a 3-letter ISO code")
    return v


def _coerce_type(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip().upper()
        v = ITALIAN_EXPENSE_TYPES.get(v, v)
        if v not in EXPENSE_TYPES:
            raise ValueError("unsupported expense type")
    return v


class ExpenseLineIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: dt.date
    type: str
    description: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0)
    currency: str = DEFAULT_CURRENCY
    metadata: Optional[Metadata] = None
    receipt_id: Optional[str] = Field(None, alias="receiptId")

    @field_validator("date", mode="before")
    @classmethod
    def plain_date(cls, v: Any) -> Any:
        return _coerce_date(v)

    @field_validator("type", mode="before")
    @classmethod
    def valid_type(cls, v: Any) -> Any:
        return _coerce_type(v)

    @field_validator("currency", mode="before")
    @classmethod
    def valid_currency(cls, v: Any) -> Any:
        return _coerce_currency(v)

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("description is required")
        return v

    @field_validator("receipt_id")
    @classmethod
    def blank_receipt_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class ExpenseLine(ExpenseLineIn):
    """Stored expense line as handed to the export pipeline."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    report_id: str
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class ExpenseLineUpdate(BaseModel):
    """Partial update; at least one field must be provided."""

    model_config = ConfigDict(populate_by_name=True)

    date: Optional[dt.date] = None
    type: Optional[str] = None
    description: Optional[str] = Field(None, min_length=1, max_length=200)
    amount: Optional[float] = Field(None, gt=0)
    currency: Optional[str] = None
    metadata: Optional[Metadata] = None
    receipt_id: Optional[str] = Field(None, alias="receiptId")

    @field_validator("date", mode="before")
    @classmethod
    def plain_date(cls, v: Any) -> Any:
        return _coerce_date(v)

    @field_validator("type", mode="before")
    @classmethod
    def valid_type(cls, v: Any) -> Any:
        return _coerce_type(v)

    @field_validator("currency", mode="before")
    @classmethod
    def valid_currency(cls, v: Any) -> Any:
        if v is None:
            return None
        return _coerce_currency(v)

    @model_validator(mode="after")
    def at_least_one(self) -> "ExpenseLineUpdate":
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided for update")
        return self


class ReportIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    description: Optional[str] = None


class ReportStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        if v not in REPORT_STATUSES:
            raise ValueError("unsupported report status")
        return v


class ReportOut(ReportIn):
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    line_count: int = 0
    total_amount: float = 0.0
    created_at: dt.datetime
    updated_at: dt.datetime
