from __future__ import annotations
import logging
from typing import Any, Mapping

from .consequences import DensityProviders, EconomicImpact, PopulationEffects, assess_consequences
from .errors import NumericDomainError
from .impact_model import DEFAULT_BLAST_TIERS, DEFAULT_WATER_DEPTH_M, BlastTierConfig, ImpactModel, classify
from .mitigation import apply_mitigation, recommend_actions
from .report import ImpactReport
from .scenario import ImpactScenario, MitigationStrategy, normalize_mitigation, normalize_scenario

logger = logging.getLogger(__name__)

GRAZING_REASON = "grazing impact; no ground effects"


def simulate_impact(scenario: ImpactScenario | Mapping[str, Any],
                    mitigation: MitigationStrategy | Mapping[str, Any] | None = None,
                    providers: DensityProviders | None = None,
                    blast_tiers: BlastTierConfig = DEFAULT_BLAST_TIERS) -> ImpactReport:
    """
    Scenario (+ optional mitigation and density providers) -> ImpactReport.
    Raises InvalidInputError on bad input; never raises for grazing impacts or missing data.
    """
    s = normalize_scenario(scenario)
    strategy = normalize_mitigation(mitigation)

    model = ImpactModel(s, blast_tiers)
    energy = model.energy()
    assumptions = list(s.assumptions)

    try:
        crater = model.crater()
    except NumericDomainError as exc:
        logger.info("[simulate] grazing: %s", exc)
        report = ImpactReport(
            scenario=s,
            energy=energy,
            classification=classify(energy.tnt_tons, None, grazing=True),
            crater=None,
            blast=None,
            seismic_magnitude=None,
            mmi_band=None,
            tsunami_height_m=None,
            environmental=None,
            recurrence_years=model.global_recurrence_years(),
            population=PopulationEffects.unavailable(GRAZING_REASON),
            economic=EconomicImpact.unavailable(GRAZING_REASON),
            recommended_actions=recommend_actions("grazing", s.terrain.name, energy.tnt_tons),
            assumptions=tuple(assumptions),
        )
        return apply_mitigation(report, strategy)

    if s.is_water and s.water_depth_m is None:
        assumptions.append(f"water depth unavailable; assumed {DEFAULT_WATER_DEPTH_M:g} m")

    effects = model.effects(crater)
    population, economic = assess_consequences(effects.blast, s.lat, s.lng, providers)
    classification = classify(energy.tnt_tons, crater.diameter_m)

    report = ImpactReport(
        scenario=s,
        energy=energy,
        classification=classification,
        crater=crater,
        blast=effects.blast,
        seismic_magnitude=effects.seismic_magnitude,
        mmi_band=effects.mmi_band,
        tsunami_height_m=effects.tsunami_height_m,
        environmental=effects.environmental,
        recurrence_years=effects.recurrence_years,
        population=population,
        economic=economic,
        recommended_actions=recommend_actions(classification, s.terrain.name, energy.tnt_tons),
        assumptions=tuple(assumptions),
    )
    logger.info("[simulate] d_m=%g v_mps=%g angle_deg=%g terrain=%s E_J=%.3e crater_m=%.1f class=%s",
                s.diameter_m, s.approach_speed_mps, s.angle_deg, s.terrain.name,
                energy.energy_J, crater.diameter_m, classification)
    return apply_mitigation(report, strategy)
