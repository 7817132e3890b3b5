from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

from .errors import MissingDataError
from .geo import disk_area_km2
from .impact_model import BlastRadii

logger = logging.getLogger(__name__)

AVAILABLE = "available"
UNAVAILABLE = "unavailable"

# Fraction of people killed (and of value destroyed) inside each tier's annulus
TIER_LETHALITY = {
    "no_survivors": 1.0,
    "heavy_damage": 0.5,
    "moderate_damage": 0.1,
    "light_damage": 0.01,
}
TIER_DESTRUCTION = dict(TIER_LETHALITY)

# Heavy-damage radius (m) above which each infrastructure class is considered hit
INFRASTRUCTURE_THRESHOLDS = (
    (1_000.0, ("Buildings", "Roads")),
    (5_000.0, ("Power Grid", "Water Supply")),
    (10_000.0, ("Airports", "Hospitals")),
    (50_000.0, ("Regional Infrastructure",)),
)


@runtime_checkable
class PopulationDensityProvider(Protocol):
    def population_density(self, lat: float, lng: float, radius_m: float) -> Optional[float]:
        """Mean people per km^2 over the disk; None or MissingDataError when unknown."""


@runtime_checkable
class EconomicDensityProvider(Protocol):
    def value_density(self, lat: float, lng: float, radius_m: float) -> Optional[float]:
        """Mean asset value in USD per km^2 over the disk; None or MissingDataError when unknown."""


@dataclass(frozen=True)
class UniformPopulationDensity:
    people_per_km2: float

    def population_density(self, lat: float, lng: float, radius_m: float) -> float:
        return self.people_per_km2


@dataclass(frozen=True)
class UniformValueDensity:
    usd_per_km2: float

    def value_density(self, lat: float, lng: float, radius_m: float) -> float:
        return self.usd_per_km2


@dataclass(frozen=True)
class DensityProviders:
    population: Optional[PopulationDensityProvider] = None
    economic: Optional[EconomicDensityProvider] = None


@dataclass(frozen=True)
class PopulationEffects:
    status: str
    affected_population: float | None
    estimated_casualties: float | None
    evacuation_radius_m: float | None
    casualties_avoided_by_evacuation: float = 0.0
    reason: str | None = None

    @classmethod
    def unavailable(cls, reason: str, evacuation_radius_m: float | None = None) -> PopulationEffects:
        return cls(UNAVAILABLE, None, None, evacuation_radius_m, reason=reason)


@dataclass(frozen=True)
class EconomicImpact:
    status: str
    estimated_damage_usd: float | None
    affected_infrastructure: tuple[str, ...] = ()
    reason: str | None = None

    @classmethod
    def unavailable(cls, reason: str, affected_infrastructure: tuple[str, ...] = ()) -> EconomicImpact:
        return cls(UNAVAILABLE, None, affected_infrastructure, reason=reason)


def affected_infrastructure(heavy_damage_radius_m: float) -> tuple[str, ...]:
    out: list[str] = []
    for threshold_m, names in INFRASTRUCTURE_THRESHOLDS:
        if heavy_damage_radius_m > threshold_m:
            out.extend(names)
    return tuple(out)


def _disk_totals(sample: Callable[[float, float, float], Optional[float]],
                 lat: float, lng: float, blast: BlastRadii) -> list[tuple[str, float]]:
    """(tier, density * disk area) for each tier disk, innermost first."""
    out = []
    for name, radius_m in sorted(blast.tiers(), key=lambda t: t[1]):
        density = sample(lat, lng, radius_m)
        if density is None:
            raise MissingDataError(f"no density data for tier '{name}' (r={radius_m:.0f} m)")
        density = float(density)
        if not math.isfinite(density) or density < 0.0:
            raise MissingDataError(f"provider returned invalid density {density!r} for tier '{name}'")
        out.append((name, density * disk_area_km2(radius_m)))
    return out


def _annuli(totals: list[tuple[str, float]]) -> dict[str, float]:
    """Disk totals -> per-tier ring totals; a ring never goes negative when density thins outward."""
    rings = {}
    inner = 0.0
    for name, total in totals:
        rings[name] = max(total - inner, 0.0)
        inner = max(inner, total)
    return rings


def estimate_population(blast: BlastRadii, lat: float, lng: float,
                        provider: Optional[PopulationDensityProvider]) -> PopulationEffects:
    evacuation_radius_m = blast.light_damage_m
    if provider is None:
        return PopulationEffects.unavailable("no population density provider", evacuation_radius_m)
    try:
        totals = _disk_totals(provider.population_density, lat, lng, blast)
    except MissingDataError as exc:
        logger.warning("[consequences] population unavailable: %s", exc)
        return PopulationEffects.unavailable(str(exc), evacuation_radius_m)

    rings = _annuli(totals)
    casualties = sum(rings[name] * TIER_LETHALITY[name] for name in rings)
    affected = max(total for _, total in totals)
    return PopulationEffects(
        status=AVAILABLE,
        affected_population=affected,
        estimated_casualties=casualties,
        evacuation_radius_m=evacuation_radius_m,
    )


def estimate_economic(blast: BlastRadii, lat: float, lng: float,
                      provider: Optional[EconomicDensityProvider]) -> EconomicImpact:
    infra = affected_infrastructure(blast.heavy_damage_m)
    if provider is None:
        return EconomicImpact.unavailable("no economic density provider", infra)
    try:
        totals = _disk_totals(provider.value_density, lat, lng, blast)
    except MissingDataError as exc:
        logger.warning("[consequences] economic impact unavailable: %s", exc)
        return EconomicImpact.unavailable(str(exc), infra)

    rings = _annuli(totals)
    damage = sum(rings[name] * TIER_DESTRUCTION[name] for name in rings)
    return EconomicImpact(status=AVAILABLE, estimated_damage_usd=damage, affected_infrastructure=infra)


def assess_consequences(blast: BlastRadii, lat: float, lng: float,
                        providers: DensityProviders | None) -> tuple[PopulationEffects, EconomicImpact]:
    providers = providers or DensityProviders()
    return (
        estimate_population(blast, lat, lng, providers.population),
        estimate_economic(blast, lat, lng, providers.economic),
    )
