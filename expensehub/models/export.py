from __future__ import annotations
from pydantic import BaseModel, Field, field_validator
from typing import List


class ExportRequest(BaseModel):
    report_ids: List[str] = Field(default_factory=list)
    target_currency: str = "EUR"
    include_receipts: bool = False

    @field_validator("target_currency")
    @classmethod
    def valid_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("target_currency must be a 3-letter ISO code")
        return v
