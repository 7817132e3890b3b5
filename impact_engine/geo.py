from __future__ import annotations
import logging
import math

from .impact_model import R_EARTH

logger = logging.getLogger(__name__)

# Above this radius the planar disk area drifts from the spherical cap
GEODESIC_AREA_THRESHOLD_M = 500_000.0


def area_planar_m2(radius_m: float) -> float:
    return math.pi * radius_m * radius_m


def area_geodesic_m2(radius_m: float) -> float:
    """Spherical cap of great-circle radius r: 2 pi R^2 (1 - cos(r/R))."""
    theta = min(radius_m / R_EARTH, math.pi)
    return 2.0 * math.pi * R_EARTH * R_EARTH * (1.0 - math.cos(theta))


def disk_area_m2(radius_m: float, threshold_m: float = GEODESIC_AREA_THRESHOLD_M) -> float:
    if radius_m <= 0.0:
        return 0.0
    if radius_m < threshold_m:
        return area_planar_m2(radius_m)
    return area_geodesic_m2(radius_m)


def disk_area_km2(radius_m: float) -> float:
    return disk_area_m2(radius_m) / 1e6


def radius_km_from_area(area_km2: float) -> float:
    return math.sqrt(area_km2 / math.pi)


# --- geometry helpers (geodesic-ish) ---

def destination_point(lon_deg: float, lat_deg: float, bearing_rad: float, distance_km: float):
    """Point reached from (lon,lat) going 'distance_km' along 'bearing_rad' on a sphere."""
    R = 6371.0088  # km
    δ = distance_km / R
    φ1 = math.radians(lat_deg)
    λ1 = math.radians(lon_deg)
    θ = bearing_rad

    sinφ2 = math.sin(φ1)*math.cos(δ) + math.cos(φ1)*math.sin(δ)*math.cos(θ)
    φ2 = math.asin(max(-1.0, min(1.0, sinφ2)))
    y = math.sin(θ)*math.sin(δ)*math.cos(φ1)
    x = math.cos(δ) - math.sin(φ1)*math.sin(φ2)
    λ2 = λ1 + math.atan2(y, x)
    # normalize lon to [-180, 180)
    lon2 = math.degrees((λ2 + math.pi) % (2*math.pi) - math.pi)
    lat2 = math.degrees(φ2)
    return lon2, lat2


def circle_ring(lon: float, lat: float, radius_km: float, steps: int = 64) -> list[list[float]]:
    coords = []
    for i in range(steps + 1):  # close ring
        b = 2 * math.pi * (i / steps)
        x, y = destination_point(lon, lat, b, radius_km)
        coords.append([x, y])
    return coords


def _bbox(coords: list[list[float]]) -> list[float]:
    lons = [c[0] for c in coords]
    lats = [c[1] for c in coords]
    return [min(lons), min(lats), max(lons), max(lats)]


def polygon_feature(ring: list[list[float]], properties: dict | None = None) -> dict:
    return {
        "type": "Feature",
        "properties": properties or {},
        "geometry": {"type": "Polygon", "coordinates": [ring]},
    }


def circle_as_geojson(lon: float, lat: float, radius_km: float, steps: int = 64) -> dict:
    """Full-circle polygon approximation."""
    coords = circle_ring(lon, lat, radius_km, steps)
    logger.debug("[geojson.circle] steps=%d radius_km=%s center=[%s,%s] bbox=%s",
                 steps, radius_km, lon, lat, _bbox(coords))
    return {"type": "FeatureCollection", "features": [polygon_feature(coords)]}


def sector_as_geojson(lon: float, lat: float, radius_km: float, b_start: float, b_end: float,
                      circle_steps: int = 64) -> dict:
    """
    Pie-slice sector polygon from bearing b_start to b_end (radians), with center at (lon,lat) and arc at 'radius_km'.
    The ring is [center] + arc points + [center]; last coord equals first to close.
    """
    two_pi = 2 * math.pi
    b_start = b_start % two_pi
    b_end = b_end % two_pi
    if b_end <= b_start:
        b_end += two_pi
    arc = b_end - b_start

    # allocate steps along the arc proportionally to full circle resolution
    steps = max(2, math.ceil(circle_steps * (arc / two_pi)))
    arc_points = []
    for i in range(steps + 1):  # include endpoint
        b = b_start + arc * (i / steps)
        x, y = destination_point(lon, lat, b, radius_km)
        arc_points.append([x, y])

    center = [lon, lat]
    ring = [center] + arc_points + [center]
    logger.debug("[geojson.sector] arc_deg=%.2f steps=%d radius_km=%s bbox=%s",
                 math.degrees(arc), steps, radius_km, _bbox(ring))
    return {"type": "FeatureCollection", "features": [polygon_feature(ring)]}


def tiers_as_geojson(lon: float, lat: float, tiers: tuple[tuple[str, float], ...], steps: int = 64) -> dict:
    """One circle feature per (name, radius_m) tier, outermost first so inner rings draw on top."""
    features = []
    for name, radius_m in sorted(tiers, key=lambda t: t[1], reverse=True):
        if radius_m <= 0.0:
            continue
        ring = circle_ring(lon, lat, radius_m / 1000.0, steps)
        features.append(polygon_feature(ring, {"tier": name, "radius_m": radius_m}))
    return {"type": "FeatureCollection", "features": features}
