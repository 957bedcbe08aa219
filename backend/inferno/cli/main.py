import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from inferno import config
from inferno.domain.clustering import cluster_pins, stable_order
from inferno.domain.filters import HotspotFilters
from inferno.domain.models import GeoPoint, IncidentPin
from inferno.infra.backend.records_client import BackendError, RecordsClient
from inferno.infra.cache.geocode_cache import InMemoryGeocodeCache
from inferno.infra.database import get_engine
from inferno.infra.db.geocode_cache_repository import SqlGeocodeCache
from inferno.providers.geocoding.nominatim import NominatimGeocoder
from inferno.services.hotspot_pipeline import HotspotPipeline

app = typer.Typer(help="CLI for incident hotspots")

_SAMPLE_POINTS = [
    {"id": 1, "label": "Incident #1", "category": "fire", "lat": 40.0000, "lon": -75.0000},
    {"id": 2, "label": "Incident #2", "category": "fire", "lat": 40.0004, "lon": -75.0003},
    {"id": 3, "label": "Incident #3", "category": "ems", "lat": 40.0450, "lon": -75.0000},
]


def _load_pins(path: Optional[Path]) -> list[IncidentPin]:
    payload = json.loads(path.read_text()) if path else _SAMPLE_POINTS
    pins = []
    for item in payload:
        pins.append(
            IncidentPin(
                id=int(item["id"]),
                label=item.get("label") or f"Incident #{item['id']}",
                address=item.get("address", ""),
                point=GeoPoint(lat=float(item["lat"]), lon=float(item["lon"])),
                category=item.get("category", "other"),
            )
        )
    return pins


def _build_geocoder() -> NominatimGeocoder:
    engine = get_engine()
    cache = SqlGeocodeCache(engine) if engine is not None else InMemoryGeocodeCache()
    return NominatimGeocoder(cache=cache)


@app.command("hotspots")
def cli_hotspots(
    department_id: int = typer.Option(..., help="Department id in the backend"),
    window: str = typer.Option("30d", help="7d, 30d, 90d, 365d or all"),
    category: str = typer.Option("all", help="all, fire, ems, hazmat, service, false_alarm, other"),
    top: int = typer.Option(10, help="Number of hotspots to print"),
    threshold_m: float = typer.Option(config.HOTSPOT_THRESHOLD_M, help="Link distance in meters"),
    backend_url: Optional[str] = typer.Option(None, help="Overrides BACKEND_URL"),
    stable: bool = typer.Option(False, help="Sort pins by id before grouping"),
):
    try:
        filters = HotspotFilters(window=window, category=category)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    try:
        records = RecordsClient(backend_url)
    except RuntimeError as exc:
        typer.echo(f"[hotspots] ERROR: {exc}", err=True)
        raise typer.Exit(code=2)
    pipeline = HotspotPipeline(_build_geocoder(), threshold_m=threshold_m, stable=stable)

    async def _run():
        department = await records.get_department(department_id)
        incidents = await records.list_incidents(department_id)
        return await pipeline.run(department, incidents, filters)

    try:
        outcome = asyncio.run(_run())
    except BackendError as exc:
        typer.echo(f"[hotspots] ERROR: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"[hotspots] department={department_id} {outcome.status}")
    if outcome.error:
        typer.echo(f"[hotspots] ERROR: {outcome.error}", err=True)
        raise typer.Exit(code=1)
    if not outcome.clusters:
        raise typer.Exit(code=0)
    _print_clusters(outcome.clusters[:top])


@app.command("cluster")
def cli_cluster(
    file: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="JSON list of {id, lat, lon, category}"),
    threshold_m: float = typer.Option(config.HOTSPOT_THRESHOLD_M, help="Link distance in meters"),
    stable: bool = typer.Option(False, help="Sort points by id before grouping"),
):
    pins = _load_pins(file)
    if stable:
        pins = stable_order(pins)
    clusters = cluster_pins(pins, threshold_m)
    if not clusters:
        typer.echo("No points to cluster")
        raise typer.Exit(code=0)
    _print_clusters(clusters)


def _print_clusters(clusters):
    typer.echo("id\tlat\tlon\tradius_m\tcount\tcategory")
    for c in clusters:
        typer.echo(
            f"{c.id}\t{c.center.lat:.5f}\t{c.center.lon:.5f}\t{c.radius_m:.0f}\t{c.count}\t{c.dominant_category}"
        )


if __name__ == "__main__":
    app()
