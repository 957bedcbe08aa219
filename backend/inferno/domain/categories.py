from __future__ import annotations

from typing import Optional

from .models import ALL_CATEGORIES, CATEGORIES, Incident

# Series del código de tipo de incidente (NERIS/NFIRS): primer dígito -> categoría
CODE_SERIES = {
    "1": "fire",
    "3": "ems",
    "4": "hazmat",
    "5": "service",
    "7": "false_alarm",
}

DESCRIPTION_KEYWORDS = (
    ("false_alarm", ("false alarm", "false call", "malfunction", "unintentional")),
    ("hazmat", ("hazmat", "hazardous", "spill", "leak", "gas", "chemical")),
    ("ems", ("ems", "medical", "rescue", "injury", "cardiac", "vehicle accident")),
    ("fire", ("fire", "smoke", "burn", "explosion")),
    ("service", ("service", "assist", "lock", "water problem", "animal")),
)

CATEGORY_LABELS = {
    "all": "All",
    "fire": "Fire",
    "ems": "EMS",
    "hazmat": "Hazmat",
    "service": "Service",
    "false_alarm": "False alarm",
    "other": "Other",
}


def category_from_code(code: Optional[object]) -> Optional[str]:
    if code is None:
        return None
    text = str(code).strip()
    if not text or not text[0].isdigit():
        return None
    return CODE_SERIES.get(text[0], "other")


def category_from_description(description: Optional[str]) -> Optional[str]:
    if not description:
        return None
    text = description.lower()
    for category, keywords in DESCRIPTION_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return None


def classify_incident(incident: Incident) -> str:
    return (
        category_from_code(incident.incident_type_code)
        or category_from_description(incident.incident_type_description)
        or "other"
    )


def validate_category(value: Optional[str]) -> str:
    category = (value or ALL_CATEGORIES).strip().lower()
    if category != ALL_CATEGORIES and category not in CATEGORIES:
        raise ValueError(f"Unknown category '{value}'")
    return category


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category)
