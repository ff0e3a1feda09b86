"""Export description formatting per expense type.

Each type appends its metadata fields after the free-text description, joined
with " - " and in a fixed order:

    FUEL        description - start - end - vehicle - roundtrip|one way
    PARKING     description - duration
    MEALS       description - customer - colleague, colleague
    HOTEL       description - location - nights
    TRAIN       description - departure - arrival

Missing fields are skipped. Other types keep the description as entered.
"""

from __future__ import annotations

from typing import Any, List, Optional, Union

from expensehub.models.metadata import (
    FuelMeta,
    HotelMeta,
    MealMeta,
    ParkingMeta,
    TrainMeta,
)
from expensehub.services.metadata_normalizer import normalize, normalize_expense_type

SEPARATOR = " - "


def _render_number(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _parts(description: str, meta: Any) -> List[str]:
    parts = [description]
    if isinstance(meta, FuelMeta):
        parts += [meta.start_location, meta.end_location, meta.vehicle_type]
        if meta.roundtrip is not None:
            parts.append("roundtrip" if meta.roundtrip else "one way")
    elif isinstance(meta, ParkingMeta):
        parts.append(meta.duration)
    elif isinstance(meta, MealMeta):
        parts.append(meta.customer)
        if meta.colleagues:
            parts.append(", ".join(meta.colleagues))
    elif isinstance(meta, HotelMeta):
        parts.append(meta.location)
        if meta.nights is not None:
            parts.append(_render_number(meta.nights))
    elif isinstance(meta, TrainMeta):
        parts += [meta.departure, meta.arrival]
    return [p for p in parts if p]


def format_description(expense_type: str, description: str, metadata: Any) -> str:
    meta = normalize(expense_type, metadata)
    if meta is None:
        return description
    return SEPARATOR.join(_parts(description, meta))


def extract_kilometers(expense_type: str, metadata: Any) -> Optional[float]:
    """Trip distance for FUEL lines; None for every other type."""
    if normalize_expense_type(expense_type) != "FUEL":
        return None
    meta = normalize(expense_type, metadata)
    if meta is None:
        return None
    return meta.distance
