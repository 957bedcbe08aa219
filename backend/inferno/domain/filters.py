from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .categories import category_label, classify_incident, validate_category
from .models import ALL_CATEGORIES, Incident

TIME_WINDOWS = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "365d": timedelta(days=365),
    "all": None,
}

WINDOW_LABELS = {
    "7d": "last 7 days",
    "30d": "last 30 days",
    "90d": "last 90 days",
    "365d": "last 12 months",
    "all": "all time",
}

DEFAULT_WINDOW = "30d"
NO_PINS_STATUS = "No mappable addresses for the selected filters."


@dataclass(frozen=True)
class HotspotFilters:
    window: str = DEFAULT_WINDOW
    category: str = ALL_CATEGORIES

    def __post_init__(self):
        if self.window not in TIME_WINDOWS:
            raise ValueError(f"Unknown time window '{self.window}'")
        object.__setattr__(self, "category", validate_category(self.category))


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def filter_incidents(
    incidents: Iterable[Incident],
    filters: HotspotFilters,
    *,
    now: Optional[datetime] = None,
) -> List[Incident]:
    """Apply window and category filters; newest first, undated last."""
    span = TIME_WINDOWS[filters.window]
    cutoff = _to_utc(now or datetime.now(timezone.utc)) - span if span else None
    selected: List[Incident] = []
    for incident in incidents:
        if cutoff is not None:
            if incident.occurred_at is None or _to_utc(incident.occurred_at) < cutoff:
                continue
        if filters.category != ALL_CATEGORIES and classify_incident(incident) != filters.category:
            continue
        selected.append(incident)
    dated = [i for i in selected if i.occurred_at is not None]
    undated = [i for i in selected if i.occurred_at is None]
    dated.sort(key=lambda i: _to_utc(i.occurred_at), reverse=True)
    return dated + undated


def cap_incidents(incidents: List[Incident], limit: int) -> List[Incident]:
    if limit < 0:
        raise ValueError("limit must be >= 0")
    return incidents[:limit]


def status_message(pin_count: int, filters: HotspotFilters) -> str:
    if pin_count == 0:
        return NO_PINS_STATUS
    noun = "incident" if pin_count == 1 else "incidents"
    return (
        f"Mapped {pin_count} {noun} · {WINDOW_LABELS[filters.window]}"
        f" · category: {category_label(filters.category)}"
    )
