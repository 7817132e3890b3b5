from __future__ import annotations
import logging
from typing import Any, Dict, Iterator, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .config import Settings, configure_logging, get_settings
from .consequences import DensityProviders, UniformPopulationDensity, UniformValueDensity
from .engine import simulate_impact
from .errors import InvalidInputError, ProviderError
from .geo import tiers_as_geojson
from .providers import GeoNamesOceanLookup, WorldPopPopulationProvider, mask_key
from .report import ImpactReport, severity_score

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Impact Consequence Engine", version=__version__)


def get_http_client(settings: Settings = Depends(get_settings)) -> Iterator[httpx.Client]:
    with httpx.Client(timeout=settings.http_timeout_s) as client:
        yield client


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.info("[validation] path=%s fields=%s", request.url.path, [e.field for e in exc.errors])
    return JSONResponse(status_code=400, content={"error": "Validation error", "details": exc.details()})


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    logger.warning("[provider] path=%s status=%d error=%s", request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


# -------------------------------
# Health + small utility endpoint
# -------------------------------
@app.get("/health")
def health():
    return {"status": "ok"}


def _ocean_lookup(settings: Settings, client: httpx.Client) -> GeoNamesOceanLookup:
    if not settings.geonames_username:
        raise HTTPException(status_code=500, detail="GeoNames username not configured.")
    return GeoNamesOceanLookup(client=client, username=settings.geonames_username)


@app.get("/isOcean")
def is_ocean(
    lat: float = Query(..., ge=-90, le=90, description="Latitude in decimal degrees"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude in decimal degrees"),
    settings: Settings = Depends(get_settings),
    client: httpx.Client = Depends(get_http_client),
):
    return _ocean_lookup(settings, client).is_ocean(lat, lon)


# -------------------------------
# Impact simulation endpoints
# -------------------------------

class ImpactRequest(BaseModel):
    # scenario/mitigation stay loose here; the engine's normalizer is the single validator
    scenario: Dict[str, Any]
    mitigation: Optional[Dict[str, Any]] = None
    population_density_per_km2: Optional[float] = Field(None, ge=0, description="Uniform people per km^2")
    economic_density_usd_per_km2: Optional[float] = Field(None, ge=0, description="Uniform asset value per km^2")
    use_worldpop: bool = Field(False, description="Sample population density from WorldPop")
    detect_terrain: bool = Field(False, description="Ask GeoNames whether the target is ocean when terrain is omitted")


def _run(req: ImpactRequest, settings: Settings, client: httpx.Client) -> ImpactReport:
    scenario = dict(req.scenario)
    if req.detect_terrain and not scenario.get("terrain"):
        lookup = _ocean_lookup(settings, client)
        try:
            lat, lng = float(scenario["lat"]), float(scenario["lng"])
        except (KeyError, TypeError, ValueError):
            lat = lng = None
        if lat is not None:
            scenario["terrain"] = lookup.terrain_at(lat, lng)

    population = None
    if req.use_worldpop:
        population = WorldPopPopulationProvider.from_settings(settings, client)
    elif req.population_density_per_km2 is not None:
        population = UniformPopulationDensity(req.population_density_per_km2)
    economic = None
    if req.economic_density_usd_per_km2 is not None:
        economic = UniformValueDensity(req.economic_density_usd_per_km2)

    return simulate_impact(scenario, req.mitigation, DensityProviders(population, economic))


@app.post("/impact/summary")
def impact_summary(req: ImpactRequest,
                   settings: Settings = Depends(get_settings),
                   client: httpx.Client = Depends(get_http_client)):
    report = _run(req, settings, client)
    return {**report.to_dict(), "severity_score": severity_score(report)}


@app.post("/impact/zones")
def impact_zones(req: ImpactRequest,
                 steps: int = Query(64, ge=16, le=512, description="Resolution of circle discretization"),
                 settings: Settings = Depends(get_settings),
                 client: httpx.Client = Depends(get_http_client)):
    report = _run(req, settings, client)
    s = report.scenario
    if report.blast is None:
        gj = {"type": "FeatureCollection", "features": []}
    else:
        tiers = report.blast.tiers() + (("crater", report.crater.radius_m),)
        gj = tiers_as_geojson(s.lng, s.lat, tiers, steps=steps)
    gj["properties"] = {"classification": report.classification, "center": [s.lng, s.lat]}
    return gj


# ---------------------------------
# Endpoint: population only (with tiling)
# ---------------------------------
@app.get("/getPopulation")
def get_population(
    lat: float = Query(..., ge=-90, le=90, description="Latitude in decimal degrees"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude in decimal degrees"),
    radius: float = Query(..., gt=0, description="Radius in kilometers"),
    year: Optional[int] = Query(None, ge=2000, le=2020, description="WorldPop year (2000–2020)"),
    dataset: Optional[str] = Query(None, pattern="^(wpgppop|wpgpas)$", description="Dataset (wpgppop recommended)"),
    api_key: Optional[str] = Query(None, description="Optional WorldPop API key"),
    debug: bool = Query(False, description="Include debug metadata in response"),
    circle_steps: int = Query(64, ge=32, le=512, description="Resolution of circle/arc discretization"),
    settings: Settings = Depends(get_settings),
    client: httpx.Client = Depends(get_http_client),
):
    provider = WorldPopPopulationProvider.from_settings(settings, client)
    provider.circle_steps = circle_steps
    if year is not None:
        provider.year = year
    if dataset is not None:
        provider.dataset = dataset
    if api_key:
        provider.api_key = api_key
    logger.info("[start] lat=%s lon=%s radius_km=%s year=%s dataset=%s key=%s",
                lat, lon, radius, provider.year, provider.dataset, mask_key(provider.api_key))

    q = provider.population_in_disk(lat, lon, radius)
    resp = {"population": q.population, "dataset": q.dataset, "year": q.year, "radius_used_km": q.radius_km}
    if q.tiled:
        resp.update({"tiled": True, "slices": q.slices})
        if debug:
            resp["__debug"] = {"per_slice": list(q.per_slice)}
    return resp
