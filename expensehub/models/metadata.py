"""Typed per-category metadata records.

Raw expense metadata arrives loosely shaped (voice intake, OCR, manual forms).
The normalizer turns it into one of these frozen records so formatting code
only ever sees canonical field names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Tuple, Union


@dataclass(frozen=True)
class FuelMeta:
    kind: ClassVar[str] = "fuel"
    start_location: Optional[str] = None
    end_location: Optional[str] = None
    vehicle_type: Optional[str] = None
    roundtrip: Optional[bool] = None
    distance: Optional[float] = None


@dataclass(frozen=True)
class ParkingMeta:
    kind: ClassVar[str] = "parking"
    duration: Optional[str] = None


@dataclass(frozen=True)
class MealMeta:
    kind: ClassVar[str] = "meal"
    customer: Optional[str] = None
    colleagues: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class HotelMeta:
    kind: ClassVar[str] = "hotel"
    location: Optional[str] = None
    nights: Optional[float] = None


@dataclass(frozen=True)
class TrainMeta:
    kind: ClassVar[str] = "train"
    departure: Optional[str] = None
    arrival: Optional[str] = None


TypedMetadata = Union[FuelMeta, ParkingMeta, MealMeta, HotelMeta, TrainMeta]
