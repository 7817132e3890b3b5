from __future__ import annotations
import logging
from dataclasses import dataclass
from math import pi, radians
from typing import Any, Literal, Mapping, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import FieldError, InvalidInputError

logger = logging.getLogger(__name__)

# -----------------------------
# Defaults
# -----------------------------
DEFAULT_IMPACTOR_DENSITY = 3000.0   # kg/m^3, rocky body
DEFAULT_ANGLE_DEG = 45.0            # most probable entry angle
DEFAULT_TERRAIN = "rock"

# Physical upper bounds on raw input
MAX_DIAMETER_M = 12_742_000.0         # Earth's diameter
MAX_DENSITY_KGPM3 = 25_000.0          # above the densest natural solids
MAX_SPEED_MPS = 299_792_458.0         # speed of light
MAX_WATER_DEPTH_M = 11_000.0          # deepest ocean trench


@dataclass(frozen=True)
class Terrain:
    name: str
    density_kgpm3: float
    strength_pa: float


TERRAINS = {
    "water":    Terrain("water", 1000.0, 5e5),
    "sediment": Terrain("sediment", 2000.0, 5e5),
    "rock":     Terrain("rock", 2650.0, 1e7),
}

# Names used by older clients
TERRAIN_ALIASES = {
    "crystalline": "rock",
    "sedimentary": "sediment",
    "land": "rock",
    "ocean": "water",
}

MitigationMethod = Literal[
    "kinetic_impactor",
    "nuclear_device",
    "gravity_tractor",
    "solar_sail",
    "mass_driver",
    "ion_beam",
    "evacuation_only",
    "none",
]
MITIGATION_METHODS = get_args(MitigationMethod)


@dataclass(frozen=True)
class ImpactScenario:
    diameter_m: float
    approach_speed_mps: float
    angle_deg: float                 # to HORIZONTAL; 0 = grazing, 90 = vertical
    lat: float
    lng: float
    density_kgpm3: float = DEFAULT_IMPACTOR_DENSITY
    terrain: Terrain = TERRAINS[DEFAULT_TERRAIN]
    water_depth_m: float | None = None
    assumptions: tuple[str, ...] = ()

    @property
    def radius_m(self) -> float:
        return 0.5 * self.diameter_m

    @property
    def mass_kg(self) -> float:
        return (pi / 6.0) * self.density_kgpm3 * self.diameter_m**3

    @property
    def angle_rad(self) -> float:
        return radians(self.angle_deg)

    @property
    def is_water(self) -> bool:
        return self.terrain.name == "water"

    def as_input(self) -> dict:
        return {
            "diameter_m": self.diameter_m,
            "density_kgpm3": self.density_kgpm3,
            "approach_speed_mps": self.approach_speed_mps,
            "angle_deg": self.angle_deg,
            "terrain": self.terrain.name,
            "lat": self.lat,
            "lng": self.lng,
            "water_depth_m": self.water_depth_m,
        }


@dataclass(frozen=True)
class MitigationStrategy:
    method: str = "none"
    effectiveness_reduction: float = 0.0   # fraction of severity removed if the mission works
    success_probability: float = 1.0       # fraction
    lead_time_years: float | None = None
    estimated_cost_usd: float | None = None
    description: str | None = None

    @property
    def attenuation(self) -> float:
        if self.method == "none":
            return 0.0
        return self.success_probability * self.effectiveness_reduction

    def as_dict(self) -> dict:
        return {
            "method": self.method,
            "effectiveness_reduction": self.effectiveness_reduction,
            "success_probability": self.success_probability,
            "lead_time_years": self.lead_time_years,
            "estimated_cost_usd": self.estimated_cost_usd,
            "description": self.description,
        }


# -----------------------------
# Boundary models (raw -> typed)
# -----------------------------

class ScenarioIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    diameter_m: float = Field(..., gt=0, le=MAX_DIAMETER_M, allow_inf_nan=False,
                              description="Impactor diameter in meters")
    density_kgpm3: Optional[float] = Field(None, gt=0, le=MAX_DENSITY_KGPM3, allow_inf_nan=False,
                                           description="Bulk density in kg/m^3")
    approach_speed_mps: Optional[float] = Field(None, gt=0, lt=MAX_SPEED_MPS, allow_inf_nan=False,
                                                description="Approach speed in m/s")
    velocity_kms: Optional[float] = Field(None, gt=0, lt=MAX_SPEED_MPS / 1000.0, allow_inf_nan=False,
                                          description="Approach speed in km/s")
    angle_deg: Optional[float] = Field(None, ge=0, le=90, allow_inf_nan=False, description="Entry angle to horizontal")
    terrain: Optional[str] = Field(None, description="water | sediment | rock")
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    water_depth_m: Optional[float] = Field(None, gt=0, le=MAX_WATER_DEPTH_M, allow_inf_nan=False)


class MitigationIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    method: MitigationMethod = "none"
    effectiveness_reduction: float = Field(0.0, ge=0, le=1, allow_inf_nan=False)
    success_probability: float = Field(1.0, ge=0, le=1, allow_inf_nan=False)
    lead_time_years: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    estimated_cost_usd: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    description: Optional[str] = Field(None, max_length=1000)


def _field_errors(exc: ValidationError) -> list[FieldError]:
    out = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        out.append(FieldError(loc, err.get("msg", "invalid value")))
    return out


def resolve_terrain(name: str | None) -> tuple[Terrain, str | None]:
    """Terrain for a class name, plus an assumption note when we had to fall back to rock."""
    if name is None or not str(name).strip():
        return TERRAINS[DEFAULT_TERRAIN], f"terrain not given; assumed '{DEFAULT_TERRAIN}'"
    key = str(name).strip().lower()
    key = TERRAIN_ALIASES.get(key, key)
    if key in TERRAINS:
        return TERRAINS[key], None
    return TERRAINS[DEFAULT_TERRAIN], f"unknown terrain '{name}'; assumed '{DEFAULT_TERRAIN}'"


def normalize_scenario(raw: ImpactScenario | Mapping[str, Any]) -> ImpactScenario:
    """
    Validate raw scenario fields and return an SI-unit ImpactScenario.
    Every failing field is reported at once via InvalidInputError.
    """
    prior: tuple[str, ...] = ()
    if isinstance(raw, ImpactScenario):
        prior = raw.assumptions
        raw = raw.as_input()
    if not isinstance(raw, Mapping):
        raise InvalidInputError([FieldError("<root>", "scenario must be a mapping of fields")])

    errors: list[FieldError] = []
    if raw.get("approach_speed_mps") is None and raw.get("velocity_kms") is None:
        errors.append(FieldError("approach_speed_mps", "Field required"))

    parsed = None
    try:
        parsed = ScenarioIn.model_validate(dict(raw))
    except ValidationError as exc:
        errors.extend(_field_errors(exc))

    if errors or parsed is None:
        logger.info("[normalize] rejected fields=%s", [e.field for e in errors])
        raise InvalidInputError(errors)

    assumptions = list(prior)

    def note(msg: str) -> None:
        if msg not in assumptions:
            logger.warning("[normalize] assumption=%s", msg)
            assumptions.append(msg)

    if parsed.approach_speed_mps is not None:
        speed = parsed.approach_speed_mps
    else:
        speed = parsed.velocity_kms * 1000.0

    density = parsed.density_kgpm3
    if density is None:
        density = DEFAULT_IMPACTOR_DENSITY
        note(f"impactor density not given; assumed {DEFAULT_IMPACTOR_DENSITY:g} kg/m^3")

    angle = parsed.angle_deg
    if angle is None:
        angle = DEFAULT_ANGLE_DEG
        note(f"impact angle not given; assumed {DEFAULT_ANGLE_DEG:g} deg")

    terrain, terrain_note = resolve_terrain(parsed.terrain)
    if terrain_note:
        note(terrain_note)

    return ImpactScenario(
        diameter_m=parsed.diameter_m,
        approach_speed_mps=speed,
        angle_deg=angle,
        lat=parsed.lat,
        lng=parsed.lng,
        density_kgpm3=density,
        terrain=terrain,
        water_depth_m=parsed.water_depth_m,
        assumptions=tuple(assumptions),
    )


def normalize_mitigation(raw: MitigationStrategy | Mapping[str, Any] | None) -> MitigationStrategy | None:
    if raw is None:
        return None
    if isinstance(raw, MitigationStrategy):
        raw = raw.as_dict()
    if not isinstance(raw, Mapping):
        raise InvalidInputError([FieldError("mitigation", "mitigation must be a mapping of fields")])
    try:
        parsed = MitigationIn.model_validate({k: v for k, v in raw.items() if v is not None})
    except ValidationError as exc:
        raise InvalidInputError(
            [FieldError(f"mitigation.{e.field}", e.message) for e in _field_errors(exc)]
        ) from exc
    return MitigationStrategy(
        method=parsed.method,
        effectiveness_reduction=parsed.effectiveness_reduction,
        success_probability=parsed.success_probability,
        lead_time_years=parsed.lead_time_years,
        estimated_cost_usd=parsed.estimated_cost_usd,
        description=parsed.description,
    )
