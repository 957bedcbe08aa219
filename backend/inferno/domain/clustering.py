from __future__ import annotations

from typing import Iterable, List, Optional, Sequence
import math

from .models import GeoPoint, HotspotCluster, IncidentPin

EARTH_RADIUS_M = 6_371_000
DEFAULT_THRESHOLD_M = 250.0
# Radio mínimo visible en el mapa y margen sobre el miembro más lejano
MIN_RADIUS_M = 120.0
RADIUS_PADDING_M = 80.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_m(a.lat, a.lon, b.lat, b.lon)


def stable_order(pins: Iterable[IncidentPin]) -> List[IncidentPin]:
    """Sort pins by id so grouping no longer depends on input order."""
    return sorted(pins, key=lambda p: p.id)


def cluster_pins(
    pins: Sequence[IncidentPin],
    threshold_m: float = DEFAULT_THRESHOLD_M,
) -> List[HotspotCluster]:
    """Greedy single-link grouping of pins into hotspots.

    A group starts from the first remaining pin and keeps absorbing any pin
    within ``threshold_m`` of any current member until a full pass adds
    nothing, so chains of nearby pins end up together. The result is sorted
    by member count, largest first.
    """
    if threshold_m < 0:
        raise ValueError("threshold_m must be >= 0")
    remaining = list(pins)
    clusters: List[HotspotCluster] = []
    while remaining:
        seed = remaining.pop(0)
        group = [seed]
        changed = True
        while changed:
            changed = False
            keep: List[IncidentPin] = []
            for candidate in remaining:
                if any(distance_m(candidate.point, member.point) <= threshold_m for member in group):
                    group.append(candidate)
                    changed = True
                else:
                    keep.append(candidate)
            remaining = keep
        clusters.append(_finalize(seed, group))
    clusters.sort(key=lambda c: c.count, reverse=True)
    return clusters


def _finalize(seed: IncidentPin, group: List[IncidentPin]) -> HotspotCluster:
    count = len(group)
    center = GeoPoint(
        lat=sum(p.lat for p in group) / count,
        lon=sum(p.lon for p in group) / count,
    )
    farthest = max(distance_m(center, p.point) for p in group)
    radius = max(MIN_RADIUS_M, farthest + RADIUS_PADDING_M)
    return HotspotCluster(
        id=f"hs-{seed.id}-{count}-{center.lat:.4f}-{center.lon:.4f}",
        center=center,
        radius_m=radius,
        count=count,
        dominant_category=dominant_category(group),
        pins=tuple(group),
    )


def dominant_category(pins: Iterable[IncidentPin]) -> str:
    counts: dict[str, int] = {}
    for pin in pins:
        counts[pin.category] = counts.get(pin.category, 0) + 1
    best = "other"
    best_count = 0
    # dict conserva el orden de inserción: en empate gana la primera categoría vista
    for category, count in counts.items():
        if count > best_count:
            best, best_count = category, count
    return best


def find_matching_cluster(
    clusters: Sequence[HotspotCluster],
    selected_id: Optional[str],
    pin_ids: Iterable[int] = (),
) -> Optional[HotspotCluster]:
    """Re-match a previous selection against freshly recomputed clusters."""
    if selected_id:
        for cluster in clusters:
            if cluster.id == selected_id:
                return cluster
    wanted = set(pin_ids)
    if wanted:
        for cluster in clusters:
            if any(pin.id in wanted for pin in cluster.pins):
                return cluster
    return None
