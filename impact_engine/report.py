from __future__ import annotations
from dataclasses import asdict, dataclass
from math import log10

from .consequences import EconomicImpact, PopulationEffects
from .impact_model import BlastRadii, CraterResult, EnergyResult, EnvironmentalEffects
from .scenario import ImpactScenario, MitigationStrategy


@dataclass(frozen=True)
class MitigationOutcome:
    strategy: MitigationStrategy
    attenuation_factor: float
    unmitigated_energy_J: float
    unmitigated_casualties: float | None

    def as_dict(self) -> dict:
        return {
            "strategy": self.strategy.as_dict(),
            "attenuation_factor": self.attenuation_factor,
            "unmitigated_energy_J": self.unmitigated_energy_J,
            "unmitigated_casualties": self.unmitigated_casualties,
        }


@dataclass(frozen=True)
class ImpactReport:
    """
    Immutable consequence report. Distances in meters, energy in joules,
    fractions in [0,1]. Physical blocks are None for grazing impacts.
    """
    scenario: ImpactScenario
    energy: EnergyResult
    classification: str
    crater: CraterResult | None
    blast: BlastRadii | None
    seismic_magnitude: float | None
    mmi_band: str | None
    tsunami_height_m: float | None
    environmental: EnvironmentalEffects | None
    recurrence_years: float | None
    population: PopulationEffects
    economic: EconomicImpact
    recommended_actions: tuple[str, ...] = ()
    mitigation: MitigationOutcome | None = None
    assumptions: tuple[str, ...] = ()

    @property
    def is_grazing(self) -> bool:
        return self.classification == "grazing"

    @property
    def energy_J(self) -> float:
        return self.energy.energy_J

    @property
    def tnt_tons(self) -> float:
        return self.energy.tnt_tons

    @property
    def crater_diameter_m(self) -> float | None:
        return None if self.crater is None else self.crater.diameter_m

    @property
    def crater_radius_m(self) -> float | None:
        return None if self.crater is None else self.crater.radius_m

    @property
    def crater_depth_m(self) -> float | None:
        return None if self.crater is None else self.crater.depth_m

    def to_dict(self) -> dict:
        s = self.scenario
        return {
            "classification": self.classification,
            "scenario": {**s.as_input(), "mass_kg": s.mass_kg},
            "energy": {
                "kinetic_J": self.energy.energy_J,
                "tnt_tons": self.energy.tnt_tons,
                "tnt_megatons": self.energy.tnt_megatons,
                "impact_speed_mps": self.energy.impact_speed_mps,
                "normal_speed_mps": self.energy.normal_speed_mps,
            },
            "crater": None if self.crater is None else asdict(self.crater),
            "blast_radii_m": None if self.blast is None else asdict(self.blast),
            "seismic": None if self.seismic_magnitude is None else {
                "magnitude": self.seismic_magnitude,
                "mmi_band": self.mmi_band,
            },
            "tsunami_height_m": self.tsunami_height_m,
            "environmental": None if self.environmental is None else asdict(self.environmental),
            "population": asdict(self.population),
            "economic": {
                **asdict(self.economic),
                "affected_infrastructure": list(self.economic.affected_infrastructure),
            },
            "frequency": {"global_recurrence_years": self.recurrence_years},
            "recommended_actions": list(self.recommended_actions),
            "mitigation": None if self.mitigation is None else self.mitigation.as_dict(),
            "assumptions": list(self.assumptions),
        }


def severity_score(report: ImpactReport) -> int:
    """0..100 headline score: ten times the mean log10 of the main damage figures."""
    blast = report.blast
    factors = [
        log10(max(report.crater_diameter_m or 1.0, 1.0)),
        log10(max(report.population.estimated_casualties or 1.0, 1.0)),
        log10(max(report.economic.estimated_damage_usd or 1.0, 1.0)),
        log10(max(blast.heavy_damage_m if blast else 1.0, 1.0)),
    ]
    average = sum(factors) / len(factors)
    return max(0, min(100, round(average * 10)))
