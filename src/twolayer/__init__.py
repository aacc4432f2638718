"""
twolayer - Two-Layer Energy Balance Climate Model

A zero-dimensional model of a fast atmosphere / mixed-layer coupled to a
slow deep ocean, driven by greenhouse, volcanic, solar and stochastic
forcing with albedo, water vapor and cloud feedbacks.
"""

__version__ = "0.1.0"

from twolayer.core.parameters import (
    ClimateParameters,
    ClimateState,
    FeedbackSettings,
    ForcingSettings,
    VolcanicEruption,
    DEFAULT_PARAMETERS,
    DEFAULT_INITIAL_STATE,
    DEFAULT_T_SPAN,
)
from twolayer.core.dynamics import (
    two_layer_climate_model,
    forcing_components,
    equilibrium_climate_sensitivity,
)
from twolayer.core.solver import (
    integrate,
    get_scheme,
    Trajectory,
    IntegrationError,
    SolverStatus,
    Tsit5,
    DormandPrince45,
    BogackiShampine32,
)
from twolayer.core.model import ClimateModel
from twolayer.core.results import SimulationResults

__all__ = [
    "__version__",
    "ClimateParameters",
    "ClimateState",
    "FeedbackSettings",
    "ForcingSettings",
    "VolcanicEruption",
    "DEFAULT_PARAMETERS",
    "DEFAULT_INITIAL_STATE",
    "DEFAULT_T_SPAN",
    "two_layer_climate_model",
    "forcing_components",
    "equilibrium_climate_sensitivity",
    "integrate",
    "get_scheme",
    "Trajectory",
    "IntegrationError",
    "SolverStatus",
    "Tsit5",
    "DormandPrince45",
    "BogackiShampine32",
    "ClimateModel",
    "SimulationResults",
]
