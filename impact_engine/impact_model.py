from __future__ import annotations
import logging
from dataclasses import dataclass
from math import pi, sin, sqrt, log10

from .errors import NumericDomainError
from .scenario import ImpactScenario

logger = logging.getLogger(__name__)

# -----------------------------
# Physical constants & defaults
# -----------------------------
G_EARTH = 9.80665                # m/s^2
R_EARTH = 6_371_000.0            # m
V_ESCAPE = 11_186.0              # m/s, Earth surface escape velocity
J_PER_TON_TNT = 4.184e9          # J in 1 ton TNT
J_PER_MT_TNT = 4.184e15          # J in 1 megaton TNT

# Simple/complex transition (transient diameter) and final-rim growth factors
D_COMPLEX_TRANSIENT_M = 3200.0
FINAL_FACTOR_SIMPLE = 1.25
FINAL_FACTOR_COMPLEX = 1.3

# Calibrated depth/diameter ratios (simple bowls are deeper than complex craters)
DEPTH_RATIO_SIMPLE = 1.0 / 5.0
DEPTH_RATIO_COMPLEX = 1.0 / 7.0

SEISMIC_EFFICIENCY = 1e-4        # fraction of kinetic energy radiated as seismic waves
SEISMIC_MAG_MIN = 0.0
SEISMIC_MAG_MAX = 10.0

DEFAULT_WATER_DEPTH_M = 3682.0   # mean ocean depth
TSUNAMI_MIN_DEPTH_M = 100.0      # shallower water does not carry a significant wave

# Coarse environmental scaling
DUST_RADIUS_MIN_M = 1000.0
MAX_TEMPERATURE_DROP_C = 10.0
MAX_EFFECT_DURATION_DAYS = 365.0


@dataclass(frozen=True)
class BlastTierConfig:
    """
    Calibrated (not physical) multipliers turning crater radius into damage tiers.
    The affected radius is `affected_radius_multiplier` crater radii; the three outer
    tiers are fractions of it, the no-survivors tier is a multiple of the crater radius.
    """
    affected_radius_multiplier: float = 15.0
    light_fraction: float = 1.0
    moderate_fraction: float = 0.7
    heavy_fraction: float = 0.4
    no_survivors_crater_multiple: float = 1.0


DEFAULT_BLAST_TIERS = BlastTierConfig()

# Ordered from most to least severe: (class, min TNT tons, min final crater diameter m).
# The first row matched by either threshold wins.
CLASSIFICATION_TABLE = (
    ("catastrophic", 1e12, 100_000.0),
    ("severe",       1e9,   10_000.0),
    ("high",         1e8,    5_000.0),
    ("moderate",     1e6,    1_000.0),
    ("low",          1e3,      100.0),
)
CLASSIFICATIONS = ("grazing", "minimal", "low", "moderate", "high", "severe", "catastrophic")


# -----------------------------
# Result blocks
# -----------------------------

@dataclass(frozen=True)
class EnergyResult:
    mass_kg: float
    impact_speed_mps: float
    normal_speed_mps: float
    energy_J: float
    tnt_tons: float

    @property
    def tnt_megatons(self) -> float:
        return self.tnt_tons / 1e6


@dataclass(frozen=True)
class CraterResult:
    transient_diameter_m: float
    diameter_m: float
    radius_m: float
    depth_m: float
    morphology: str      # simple | complex
    regime: str          # gravity | strength

    def scaled(self, factor: float) -> CraterResult:
        return CraterResult(
            transient_diameter_m=self.transient_diameter_m * factor,
            diameter_m=self.diameter_m * factor,
            radius_m=self.radius_m * factor,
            depth_m=self.depth_m * factor,
            morphology=self.morphology,
            regime=self.regime,
        )


@dataclass(frozen=True)
class BlastRadii:
    no_survivors_m: float
    heavy_damage_m: float
    moderate_damage_m: float
    light_damage_m: float

    def tiers(self) -> tuple[tuple[str, float], ...]:
        """Innermost first."""
        return (
            ("no_survivors", self.no_survivors_m),
            ("heavy_damage", self.heavy_damage_m),
            ("moderate_damage", self.moderate_damage_m),
            ("light_damage", self.light_damage_m),
        )

    def scaled(self, factor: float) -> BlastRadii:
        return BlastRadii(*(r * factor for _, r in self.tiers()))


@dataclass(frozen=True)
class EnvironmentalEffects:
    dust_cloud_radius_m: float
    temperature_drop_c: float
    duration_days: float

    def scaled(self, factor: float) -> EnvironmentalEffects:
        return EnvironmentalEffects(
            dust_cloud_radius_m=self.dust_cloud_radius_m * factor,
            temperature_drop_c=self.temperature_drop_c * factor,
            duration_days=self.duration_days * factor,
        )


@dataclass(frozen=True)
class EffectsResult:
    blast: BlastRadii
    seismic_magnitude: float
    mmi_band: str
    tsunami_height_m: float | None
    environmental: EnvironmentalEffects
    recurrence_years: float | None


def classify(tnt_tons: float, crater_diameter_m: float | None, grazing: bool = False) -> str:
    """Severity class from the ordered threshold table. The only place classification is derived."""
    if grazing:
        return "grazing"
    d = crater_diameter_m or 0.0
    for label, min_tons, min_diameter_m in CLASSIFICATION_TABLE:
        if tnt_tons >= min_tons or d >= min_diameter_m:
            return label
    return "minimal"


class ImpactModel:
    """
    Energy + pi-scaled crater + blast tiers + seismic + tsunami + environmental effects.
    Pure: every method is a function of the scenario (and optional energy override).
    """

    def __init__(self, scenario: ImpactScenario, blast_tiers: BlastTierConfig = DEFAULT_BLAST_TIERS):
        self.s = scenario
        self.tiers = blast_tiers

    # ---------- Energetics ----------
    def impact_speed_mps(self) -> float:
        """Approach speed plus gravitational acceleration: v = sqrt(v_inf^2 + v_esc^2)."""
        return sqrt(self.s.approach_speed_mps**2 + V_ESCAPE**2)

    def normal_speed_mps(self) -> float:
        return self.impact_speed_mps() * sin(self.s.angle_rad)

    def kinetic_energy_J(self) -> float:
        # total speed: only crater formation depends on the normal component
        return 0.5 * self.s.mass_kg * self.impact_speed_mps()**2

    def energy(self) -> EnergyResult:
        E = self.kinetic_energy_J()
        return EnergyResult(
            mass_kg=self.s.mass_kg,
            impact_speed_mps=self.impact_speed_mps(),
            normal_speed_mps=max(self.normal_speed_mps(), 0.0),
            energy_J=E,
            tnt_tons=E / J_PER_TON_TNT,
        )

    def require_normal_speed(self) -> float:
        vn = self.normal_speed_mps()
        if not vn > 0.0:
            raise NumericDomainError(f"normal impact speed is {vn!r} m/s at angle {self.s.angle_deg} deg")
        return vn

    # ---------- Crater scaling ----------
    def gravity_regime_diameter_m(self) -> float:
        rho_i = self.s.density_kgpm3
        rho_t = self.s.terrain.density_kgpm3
        vn = self.require_normal_speed()
        return (rho_i / rho_t) ** (1.0 / 3.0) * G_EARTH ** -0.17 * vn ** 0.44 * self.s.diameter_m ** 0.78

    def strength_regime_diameter_m(self) -> float:
        rho_i = self.s.density_kgpm3
        rho_t = self.s.terrain.density_kgpm3
        Y = self.s.terrain.strength_pa
        vn = self.require_normal_speed()
        return (rho_i / rho_t) ** 0.4 * Y ** -0.22 * vn ** 0.79 * self.s.diameter_m ** 0.26

    def transient_diameter_m(self) -> tuple[float, str]:
        """Larger of the two regimes governs; returns (diameter, regime)."""
        Dg = self.gravity_regime_diameter_m()
        Ds = self.strength_regime_diameter_m()
        return (Dg, "gravity") if Dg >= Ds else (Ds, "strength")

    @staticmethod
    def _final_from_transient(Dtc_m: float) -> tuple[float, float, str]:
        """Final diameter, depth and morphology from transient diameter."""
        if Dtc_m < D_COMPLEX_TRANSIENT_M:
            Dfr_m = FINAL_FACTOR_SIMPLE * Dtc_m
            return Dfr_m, DEPTH_RATIO_SIMPLE * Dfr_m, "simple"
        Dfr_m = FINAL_FACTOR_COMPLEX * Dtc_m
        return Dfr_m, DEPTH_RATIO_COMPLEX * Dfr_m, "complex"

    def crater(self) -> CraterResult:
        Dtc, regime = self.transient_diameter_m()
        Dfr, dfr, morphology = self._final_from_transient(Dtc)
        return CraterResult(
            transient_diameter_m=Dtc,
            diameter_m=Dfr,
            radius_m=0.5 * Dfr,
            depth_m=dfr,
            morphology=morphology,
            regime=regime,
        )

    # ---------- Blast tiers ----------
    def blast_radii(self, crater: CraterResult) -> BlastRadii:
        affected = crater.radius_m * self.tiers.affected_radius_multiplier
        return BlastRadii(
            no_survivors_m=crater.radius_m * self.tiers.no_survivors_crater_multiple,
            heavy_damage_m=affected * self.tiers.heavy_fraction,
            moderate_damage_m=affected * self.tiers.moderate_fraction,
            light_damage_m=affected * self.tiers.light_fraction,
        )

    # ---------- Seismic ----------
    def seismic_magnitude(self, seismic_efficiency: float = SEISMIC_EFFICIENCY,
                          energy_J: float | None = None) -> float:
        E = self.kinetic_energy_J() if energy_J is None else energy_J
        if E <= 0.0:
            return SEISMIC_MAG_MIN
        M = 0.67 * log10(seismic_efficiency * E) - 5.87
        return min(max(M, SEISMIC_MAG_MIN), SEISMIC_MAG_MAX)

    # ---------- Tsunami (water targets) ----------
    def water_depth_m(self) -> float:
        return self.s.water_depth_m if self.s.water_depth_m is not None else DEFAULT_WATER_DEPTH_M

    def tsunami_height_m(self, energy_J: float | None = None) -> float | None:
        """Source wave height; None for land targets, capped at the water depth."""
        if not self.s.is_water:
            return None
        E = self.kinetic_energy_J() if energy_J is None else energy_J
        H = self.water_depth_m()
        if H < TSUNAMI_MIN_DEPTH_M or E <= 0.0:
            return 0.0
        tons = E / J_PER_TON_TNT
        height = 0.1 * tons ** 0.25 * min(H / 1000.0, 5.0)
        return min(height, H)

    # ---------- Environment ----------
    @staticmethod
    def ejecta_volume_m3(transient_diameter_m: float) -> float:
        """Excavated volume V_ex = pi * D_tc^3 / (16 sqrt 2)."""
        return pi * transient_diameter_m**3 / (16.0 * sqrt(2.0))

    def environmental_effects(self, crater: CraterResult, energy_J: float | None = None) -> EnvironmentalEffects:
        E = self.kinetic_energy_J() if energy_J is None else energy_J
        tons = E / J_PER_TON_TNT
        ejecta_mass = self.ejecta_volume_m3(crater.transient_diameter_m) * self.s.terrain.density_kgpm3
        return EnvironmentalEffects(
            dust_cloud_radius_m=max(DUST_RADIUS_MIN_M, 5000.0 * tons ** 0.2),
            temperature_drop_c=min(MAX_TEMPERATURE_DROP_C, 2.0 * ejecta_mass / 1e15),
            duration_days=min(MAX_EFFECT_DURATION_DAYS, max(1.0, 30.0 * sqrt(E / J_PER_MT_TNT))),
        )

    # ---------- Recurrence ----------
    def global_recurrence_years(self, energy_J: float | None = None) -> float | None:
        E = self.kinetic_energy_J() if energy_J is None else energy_J
        E_mt = E / J_PER_MT_TNT
        return None if E_mt <= 0.0 else 109.0 * (E_mt ** 0.78)

    # ---------- Convenience ----------
    def effects(self, crater: CraterResult) -> EffectsResult:
        E = self.kinetic_energy_J()
        M = self.seismic_magnitude(energy_J=E)
        out = EffectsResult(
            blast=self.blast_radii(crater),
            seismic_magnitude=M,
            mmi_band=mmi_band_from_meff(M),
            tsunami_height_m=self.tsunami_height_m(energy_J=E),
            environmental=self.environmental_effects(crater, energy_J=E),
            recurrence_years=self.global_recurrence_years(energy_J=E),
        )
        logger.debug("[effects] M=%.2f light_m=%.1f tsunami_m=%s",
                     M, out.blast.light_damage_m, out.tsunami_height_m)
        return out


def mmi_band_from_meff(meff: float) -> str:
    if meff < 1.0:   return "-"
    if meff < 2.0:   return "I"
    if meff < 3.0:   return "I–II"
    if meff < 4.0:   return "III–IV"
    if meff < 5.0:   return "IV–V"
    if meff < 6.0:   return "VI–VII"
    if meff < 7.0:   return "VII–VIII"
    if meff < 8.0:   return "IX–X"
    if meff < 9.0:   return "X–XI"
    return "XII"
