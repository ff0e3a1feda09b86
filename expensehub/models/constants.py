"""Domain constants and enumerations for validation."""

from typing import Dict, Set

BASE_CURRENCY = "EUR"
DEFAULT_CURRENCY = "EUR"

EXPENSE_TYPES: Set[str] = {
    "PARKING",
    "FUEL",
    "TELEPASS",
    "LUNCH",
    "DINNER",
    "HOTEL",
    "TRAIN",
    "TAXI",
    "BREAKFAST",
    "TOURIST_TAX",
    "OTHER",
}

MEAL_TYPES: Set[str] = {"LUNCH", "DINNER", "BREAKFAST"}

# Italian labels used by voice intake and older form entries
ITALIAN_EXPENSE_TYPES: Dict[str, str] = {
    "CARBURANTE": "FUEL",
    "PARCHEGGIO": "PARKING",
    "PRANZO": "LUNCH",
    "CENA": "DINNER",
    "COLAZIONE": "BREAKFAST",
    "ALBERGO": "HOTEL",
    "TRENO": "TRAIN",
    "TASSA DI SOGGIORNO": "TOURIST_TAX",
    "ALTRO": "OTHER",
}

REPORT_STATUSES: Set[str] = {"draft", "submitted", "approved"}

# Fallback table (units per 1 EUR) used until rates are refreshed
DEFAULT_RATES: Dict[str, float] = {
    "EUR": 1.0,
    "USD": 1.10,
    "GBP": 0.85,
    "CHF": 0.95,
}
