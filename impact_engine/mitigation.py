from __future__ import annotations
import logging
from dataclasses import replace

from .consequences import AVAILABLE, affected_infrastructure
from .impact_model import EnergyResult, ImpactModel, classify, mmi_band_from_meff
from .report import ImpactReport, MitigationOutcome
from .scenario import MitigationStrategy

logger = logging.getLogger(__name__)

# Response actions by severity class; terrain and energy add to these
_ACTIONS_BY_CLASS = {
    "grazing": (
        "Track the grazing body and publish its exit trajectory",
    ),
    "minimal": (
        "Deploy local emergency response teams to the impact site",
    ),
    "low": (
        "Deploy emergency response teams to affected areas",
        "Establish temporary shelters and medical facilities",
    ),
    "moderate": (
        "Deploy emergency response teams to affected areas",
        "Establish temporary shelters and medical facilities",
        "Coordinate international humanitarian aid",
    ),
    "high": (
        "Activate national emergency protocols",
        "Establish temporary shelters and medical facilities",
        "Coordinate international humanitarian aid",
    ),
    "severe": (
        "Activate national emergency protocols",
        "Deploy military resources for search and rescue operations",
        "Set up backup regional communication networks",
        "Coordinate with space agencies for debris tracking",
    ),
    "catastrophic": (
        "Activate global emergency response protocols",
        "Coordinate worldwide resource allocation",
        "Establish alternative global communication networks",
        "Protect agriculture and monitor climate",
    ),
}
ATMOSPHERIC_MONITORING_TONS = 1e6


def recommend_actions(classification: str, terrain: str, tnt_tons: float) -> tuple[str, ...]:
    """Deterministic response checklist for a report's class, terrain and yield."""
    if classification == "grazing":
        return _ACTIONS_BY_CLASS["grazing"]
    actions = ["Evacuate the impact zone and surrounding areas"]
    actions.extend(_ACTIONS_BY_CLASS.get(classification, ()))
    if terrain == "water":
        actions.append("Issue tsunami warnings for coastal areas")
        actions.append("Evacuate low-lying coastal regions")
    else:
        actions.append("Monitor seismic activity and potential landslides")
        actions.append("Protect critical infrastructure")
    if tnt_tons > ATMOSPHERIC_MONITORING_TONS:
        actions.append("Monitor atmospheric dust and temperature changes")
        actions.append("Secure food and water supplies for extended periods")
    return tuple(actions)


def _evacuate(report: ImpactReport, strategy: MitigationStrategy, a: float) -> ImpactReport:
    pop = report.population
    casualties = pop.estimated_casualties
    if pop.status == AVAILABLE and casualties is not None:
        casualties = casualties * (1.0 - a)
    outcome = MitigationOutcome(
        strategy=strategy,
        attenuation_factor=a,
        unmitigated_energy_J=report.energy.energy_J,
        unmitigated_casualties=pop.estimated_casualties,
    )
    return replace(
        report,
        population=replace(pop, estimated_casualties=casualties, casualties_avoided_by_evacuation=a),
        mitigation=outcome,
    )


def _attenuate(report: ImpactReport, strategy: MitigationStrategy, a: float) -> ImpactReport:
    f = 1.0 - a
    e = report.energy
    E = e.energy_J * f
    energy = EnergyResult(
        mass_kg=e.mass_kg,
        impact_speed_mps=e.impact_speed_mps,
        normal_speed_mps=e.normal_speed_mps,
        energy_J=E,
        tnt_tons=e.tnt_tons * f,
    )
    outcome = MitigationOutcome(
        strategy=strategy,
        attenuation_factor=a,
        unmitigated_energy_J=e.energy_J,
        unmitigated_casualties=report.population.estimated_casualties,
    )
    model = ImpactModel(report.scenario)
    if report.is_grazing:
        return replace(report, energy=energy, recurrence_years=model.global_recurrence_years(energy_J=E),
                       mitigation=outcome)

    crater = report.crater.scaled(f)
    blast = report.blast.scaled(f)
    M = model.seismic_magnitude(energy_J=E)

    pop = report.population
    population = replace(
        pop,
        affected_population=None if pop.affected_population is None else pop.affected_population * f,
        estimated_casualties=None if pop.estimated_casualties is None else pop.estimated_casualties * f,
        evacuation_radius_m=None if pop.evacuation_radius_m is None else pop.evacuation_radius_m * f,
    )
    eco = report.economic
    economic = replace(
        eco,
        estimated_damage_usd=None if eco.estimated_damage_usd is None else eco.estimated_damage_usd * f,
        affected_infrastructure=affected_infrastructure(blast.heavy_damage_m),
    )
    classification = classify(energy.tnt_tons, crater.diameter_m)
    return replace(
        report,
        energy=energy,
        classification=classification,
        crater=crater,
        blast=blast,
        seismic_magnitude=M,
        mmi_band=mmi_band_from_meff(M),
        tsunami_height_m=model.tsunami_height_m(energy_J=E),
        environmental=report.environmental.scaled(f),
        recurrence_years=model.global_recurrence_years(energy_J=E),
        population=population,
        economic=economic,
        recommended_actions=recommend_actions(classification, report.scenario.terrain.name, energy.tnt_tons),
        mitigation=outcome,
    )


def apply_mitigation(report: ImpactReport, strategy: MitigationStrategy | None) -> ImpactReport:
    """
    Expected-value attenuation a = success_probability * effectiveness_reduction.
    'none' returns the report untouched; 'evacuation_only' only lowers casualties.
    """
    if strategy is None or strategy.method == "none":
        return report
    a = strategy.attenuation
    logger.info("[mitigation] method=%s attenuation=%.4f", strategy.method, a)
    if strategy.method == "evacuation_only":
        return _evacuate(report, strategy, a)
    return _attenuate(report, strategy, a)
