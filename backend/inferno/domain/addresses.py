from __future__ import annotations

import re
from typing import Iterable, Optional

from .models import Department, Incident

_SEPARATORS = re.compile(r"\s*,[\s,]*")
_SPACES = re.compile(r"\s+")


def compose_address(parts: Iterable[Optional[str]]) -> str:
    """Join address parts with ", ", dropping blanks and stray commas."""
    cleaned = []
    for part in parts:
        if part is None:
            continue
        text = _SPACES.sub(" ", str(part)).strip(" ,")
        if text:
            cleaned.append(text)
    return _SEPARATORS.sub(", ", ", ".join(cleaned)).strip(" ,")


def incident_address(incident: Incident) -> str:
    return compose_address([incident.address, incident.city, incident.state])


def department_address(department: Department) -> str:
    return compose_address([department.address, department.city, department.state])


def normalize_query(query: str) -> str:
    return _SPACES.sub(" ", (query or "").strip()).lower()
