__version__ = "1.0.0"

from .consequences import (  # noqa: E402
    DensityProviders,
    EconomicDensityProvider,
    PopulationDensityProvider,
    UniformPopulationDensity,
    UniformValueDensity,
)
from .engine import simulate_impact  # noqa: E402
from .errors import (  # noqa: E402
    FieldError,
    ImpactEngineError,
    InvalidInputError,
    MissingDataError,
    NumericDomainError,
    ProviderError,
)
from .report import ImpactReport, severity_score  # noqa: E402
from .scenario import ImpactScenario, MitigationStrategy  # noqa: E402

__all__ = [
    "DensityProviders",
    "EconomicDensityProvider",
    "FieldError",
    "ImpactEngineError",
    "ImpactReport",
    "ImpactScenario",
    "InvalidInputError",
    "MissingDataError",
    "MitigationStrategy",
    "NumericDomainError",
    "PopulationDensityProvider",
    "ProviderError",
    "UniformPopulationDensity",
    "UniformValueDensity",
    "severity_score",
    "simulate_impact",
]
