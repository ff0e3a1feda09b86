"""Expense metadata normalization.

Metadata is stored per expense line as whatever the intake channel produced:

- wrapped: ``{"type": "FUEL", "data": {...}}`` (typed form entries)
- flat: ``{"startLocation": ..., ...}`` (voice intake, OCR)
- serialized JSON text of either of the above (legacy rows)

Key names come in camelCase (``startLocation``) or as space separated labels
(``"start location"``). When both spellings are present the camelCase value
wins. Anything that cannot be read as a mapping is treated as "no metadata".
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from expensehub.models.constants import ITALIAN_EXPENSE_TYPES, MEAL_TYPES
from expensehub.models.metadata import (
    FuelMeta,
    HotelMeta,
    MealMeta,
    ParkingMeta,
    TrainMeta,
    TypedMetadata,
)

logger = logging.getLogger("expensehub.metadata")


def normalize_expense_type(expense_type: str) -> str:
    """Canonical enumeration token for an English or Italian type label."""
    normalized = (expense_type or "").strip().upper()
    return ITALIAN_EXPENSE_TYPES.get(normalized, normalized)


def parse_metadata(raw: Any) -> Optional[Dict[str, Any]]:
    """Return the flat field mapping, unwrapping ``{type, data}`` if present."""
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.debug("ignoring unparseable metadata text")
            return None
    if not isinstance(raw, Mapping):
        return None
    if raw.get("type") and isinstance(raw.get("data"), Mapping):
        raw = raw["data"]
    return dict(raw)


def _pick(fields: Mapping[str, Any], *keys: str) -> Any:
    # First key holding a usable value wins; keys are listed camelCase first.
    for key in keys:
        value = fields.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        return value
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1", "si", "sì", "roundtrip"):
            return True
        if lowered in ("false", "no", "0", "one way"):
            return False
        return None
    return bool(value)


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(str(value).replace(",", "."))
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


def _as_names(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(name).strip() for name in value if str(name).strip())


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _fuel(fields: Mapping[str, Any]) -> FuelMeta:
    return FuelMeta(
        start_location=_as_text(_pick(fields, "startLocation", "start location")),
        end_location=_as_text(_pick(fields, "endLocation", "end location")),
        vehicle_type=_as_text(_pick(fields, "vehicleType", "vehicle type")),
        roundtrip=_as_bool(
            _pick(fields, "isRoundTrip", "roundtrip", "roundTrip", "round trip")
        ),
        distance=_as_number(_pick(fields, "distance")),
    )


def _parking(fields: Mapping[str, Any]) -> ParkingMeta:
    return ParkingMeta(
        duration=_as_text(_pick(fields, "duration", "parking duration")),
    )


def _meal(fields: Mapping[str, Any]) -> MealMeta:
    return MealMeta(
        customer=_as_text(_pick(fields, "customer", "customer name")),
        colleagues=_as_names(_pick(fields, "colleagues", "colleague names")),
    )


def _hotel(fields: Mapping[str, Any]) -> HotelMeta:
    return HotelMeta(
        location=_as_text(_pick(fields, "location", "hotel location")),
        nights=_as_number(_pick(fields, "nights", "number of nights")),
    )


def _train(fields: Mapping[str, Any]) -> TrainMeta:
    return TrainMeta(
        departure=_as_text(_pick(fields, "departure", "departure station")),
        arrival=_as_text(_pick(fields, "arrival", "arrival station")),
    )


_EXTRACTORS: Dict[str, Callable[[Mapping[str, Any]], TypedMetadata]] = {
    "FUEL": _fuel,
    "PARKING": _parking,
    "HOTEL": _hotel,
    "TRAIN": _train,
    **{meal: _meal for meal in MEAL_TYPES},
}


def normalize(expense_type: str, raw_metadata: Any) -> Optional[TypedMetadata]:
    """Typed metadata record for the expense type, or None when there is none."""
    extractor = _EXTRACTORS.get(normalize_expense_type(expense_type))
    if extractor is None:
        return None
    fields = parse_metadata(raw_metadata)
    if not fields:
        return None
    return extractor(fields)
