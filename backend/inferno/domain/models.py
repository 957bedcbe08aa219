from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

CATEGORIES = ("fire", "ems", "hazmat", "service", "false_alarm", "other")
ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float


@dataclass(frozen=True)
class Department:
    id: int
    name: str
    city: Optional[str] = None
    state: Optional[str] = None
    address: Optional[str] = None
    neris_department_id: Optional[str] = None


@dataclass(frozen=True)
class Incident:
    id: int
    department_id: int
    occurred_at: Optional[datetime] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    neris_incident_id: Optional[str] = None
    incident_type_code: Optional[str] = None
    incident_type_description: Optional[str] = None

    @property
    def title(self) -> str:
        if self.neris_incident_id:
            return f"Incident {self.neris_incident_id}"
        return f"Incident #{self.id}"


@dataclass(frozen=True)
class IncidentPin:
    id: int
    label: str
    address: str
    point: GeoPoint
    category: str = "other"
    occurred_at: Optional[datetime] = None

    @property
    def lat(self) -> float:
        return self.point.lat

    @property
    def lon(self) -> float:
        return self.point.lon


@dataclass(frozen=True)
class HotspotCluster:
    id: str
    center: GeoPoint
    radius_m: float
    count: int
    dominant_category: str
    pins: tuple[IncidentPin, ...] = field(default_factory=tuple)
