from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from inferno import config
from inferno.domain.addresses import department_address, incident_address
from inferno.domain.categories import classify_incident
from inferno.domain.clustering import cluster_pins, stable_order
from inferno.domain.filters import HotspotFilters, cap_incidents, filter_incidents, status_message
from inferno.domain.models import Department, GeoPoint, HotspotCluster, Incident, IncidentPin
from inferno.providers.geocoding.base import Geocoder

from .cancellation import Cancelled, CancellationToken

logger = logging.getLogger(__name__)

UNAVAILABLE_STATUS = "Map preview unavailable."


@dataclass
class PipelineOutcome:
    pins: List[IncidentPin] = field(default_factory=list)
    clusters: List[HotspotCluster] = field(default_factory=list)
    status: str = ""
    department_point: Optional[GeoPoint] = None
    filters: HotspotFilters = field(default_factory=HotspotFilters)
    considered: int = 0
    cancelled: bool = False
    error: Optional[str] = None

    @property
    def center(self) -> Optional[GeoPoint]:
        if self.department_point is not None:
            return self.department_point
        return self.pins[0].point if self.pins else None


class HotspotPipeline:
    """Filters incidents, geocodes them one by one and clusters the pins."""

    def __init__(
        self,
        geocoder: Geocoder,
        *,
        delay_s: Optional[float] = None,
        max_geocode: Optional[int] = None,
        threshold_m: Optional[float] = None,
        stable: bool = False,
    ):
        self.geocoder = geocoder
        self.delay_s = config.GEOCODE_DELAY_MS / 1000.0 if delay_s is None else delay_s
        self.max_geocode = config.MAX_GEOCODE if max_geocode is None else max_geocode
        self.threshold_m = config.HOTSPOT_THRESHOLD_M if threshold_m is None else threshold_m
        self.stable = stable

    async def run(
        self,
        department: Department,
        incidents: Iterable[Incident],
        filters: Optional[HotspotFilters] = None,
        *,
        token: Optional[CancellationToken] = None,
        now: Optional[datetime] = None,
    ) -> PipelineOutcome:
        filters = filters or HotspotFilters()
        token = token or CancellationToken()
        try:
            return await self._run(department, incidents, filters, token, now)
        except Cancelled:
            logger.debug("hotspot run for department %s cancelled", department.id)
            return PipelineOutcome(filters=filters, cancelled=True)
        except Exception:
            logger.exception("hotspot run for department %s failed", department.id)
            return PipelineOutcome(filters=filters, status=UNAVAILABLE_STATUS, error=UNAVAILABLE_STATUS)

    async def _run(
        self,
        department: Department,
        incidents: Iterable[Incident],
        filters: HotspotFilters,
        token: CancellationToken,
        now: Optional[datetime],
    ) -> PipelineOutcome:
        token.raise_if_cancelled()
        selected = cap_incidents(filter_incidents(incidents, filters, now=now), self.max_geocode)

        fetched = False
        department_point = None
        dept_query = department_address(department)
        if dept_query:
            department_point, fetched = await self._lookup(dept_query, token, fetched)

        pins: List[IncidentPin] = []
        for incident in selected:
            token.raise_if_cancelled()
            address = incident_address(incident)
            if not address:
                continue
            point, fetched = await self._lookup(address, token, fetched)
            token.raise_if_cancelled()
            if point is None:
                continue
            pins.append(
                IncidentPin(
                    id=incident.id,
                    label=incident.title,
                    address=address,
                    point=point,
                    category=classify_incident(incident),
                    occurred_at=incident.occurred_at,
                )
            )

        token.raise_if_cancelled()
        ordered = stable_order(pins) if self.stable else pins
        clusters = cluster_pins(ordered, self.threshold_m)
        return PipelineOutcome(
            pins=pins,
            clusters=clusters,
            status=status_message(len(pins), filters),
            department_point=department_point,
            filters=filters,
            considered=len(selected),
        )

    async def _lookup(
        self,
        query: str,
        token: CancellationToken,
        fetched: bool,
    ) -> Tuple[Optional[GeoPoint], bool]:
        # la pausa de cortesía solo separa consultas que salen a la red
        point = await self.geocoder.cached(query)
        if point is not None:
            return point, fetched
        if fetched:
            await token.sleep(self.delay_s)
        return await self.geocoder.geocode(query, token=token), True


class HotspotSupervisor:
    """Owns the single result slot; a new run always supersedes the previous one."""

    def __init__(self, pipeline: HotspotPipeline) -> None:
        self.pipeline = pipeline
        self.result: Optional[PipelineOutcome] = None
        self._generation = 0
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        department: Department,
        incidents: Iterable[Incident],
        filters: Optional[HotspotFilters] = None,
        *,
        now: Optional[datetime] = None,
        pipeline: Optional[HotspotPipeline] = None,
    ) -> asyncio.Task:
        self.cancel()
        self._generation += 1
        token = CancellationToken()
        self._token = token
        self._task = asyncio.ensure_future(
            self._run(self._generation, token, pipeline or self.pipeline, department, list(incidents), filters, now)
        )
        return self._task

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel("superseded")

    async def wait(self) -> Optional[PipelineOutcome]:
        if self._task is None:
            return self.result
        await self._task
        return self.result

    async def _run(
        self,
        generation: int,
        token: CancellationToken,
        pipeline: HotspotPipeline,
        department: Department,
        incidents: List[Incident],
        filters: Optional[HotspotFilters],
        now: Optional[datetime],
    ) -> PipelineOutcome:
        outcome = await pipeline.run(department, incidents, filters, token=token, now=now)
        if outcome.cancelled or generation != self._generation:
            return outcome
        self.result = outcome
        return outcome
