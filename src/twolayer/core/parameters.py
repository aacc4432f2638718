"""
Immutable parameter records and the model state type.

The physical parameter set mirrors the reference run of the two-layer
energy-balance model:

    S0   = 1361.0      Solar constant (W/m²)
    C_a  = 1.0e8       Atmosphere + mixed layer heat capacity
    C_o  = 1.0e10      Deep ocean heat capacity
    A    = -337.825    OLR intercept (W/m²)
    B0   = 2.0         Base OLR slope (W/m²/K)
    Fmax = 3.7         Max radiative forcing (W/m²), ~ CO₂ doubling
    k    = 1.0e7       Coupling strength between layers

Feedback and forcing coefficients are kept in separate records so that
they can be switched off independently of the physical parameters.
"""

from typing import NamedTuple, Tuple
from dataclasses import dataclass, field, replace, asdict


class ClimateState(NamedTuple):
    """Temperatures of the two layers in Kelvin."""

    atmosphere: float
    ocean: float

    @property
    def difference(self) -> float:
        """Atmosphere minus deep ocean temperature."""
        return self.atmosphere - self.ocean


class VolcanicEruption(NamedTuple):
    """Rectangular forcing pulse active on the closed interval [start, end]."""

    start: float
    end: float
    forcing: float


@dataclass(frozen=True)
class ClimateParameters:
    """
    Physical parameters of the two-layer model.

    Attributes
    ----------
    S0 : float
        Solar constant (W/m²).
    C_a : float
        Heat capacity of the atmosphere / mixed layer.
    C_o : float
        Heat capacity of the deep ocean.
    A : float
        Outgoing longwave radiation intercept (W/m²).
    B0 : float
        Base OLR slope (W/m²/K).
    Fmax : float
        Maximum radiative forcing reached at the end of the ramp (W/m²).
    k : float
        Heat exchange coefficient between the two layers.
    """

    S0: float = 1361.0
    C_a: float = 1.0e8
    C_o: float = 1.0e10
    A: float = -337.825
    B0: float = 2.0
    Fmax: float = 3.7
    k: float = 1.0e7

    def replace(self, **changes: float) -> "ClimateParameters":
        """Return a copy with the given fields changed."""
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return asdict(self)

    def as_tuple(self) -> Tuple[float, ...]:
        """Parameters in canonical order (S0, C_a, C_o, A, B0, Fmax, k)."""
        return (self.S0, self.C_a, self.C_o, self.A, self.B0, self.Fmax, self.k)


# Units used by the parameter listing and exported metadata
PARAMETER_UNITS = {
    "S0": "W/m²",
    "C_a": "J/m²/K",
    "C_o": "J/m²/K",
    "A": "W/m²",
    "B0": "W/m²/K",
    "Fmax": "W/m²",
    "k": "W/m²/K",
}

PARAMETER_DESCRIPTIONS = {
    "S0": "Solar constant",
    "C_a": "Atmosphere + mixed layer heat capacity",
    "C_o": "Deep ocean heat capacity",
    "A": "OLR intercept",
    "B0": "Base OLR slope",
    "Fmax": "Max radiative forcing (~ CO₂ doubling)",
    "k": "Coupling strength between layers",
}


@dataclass(frozen=True)
class FeedbackSettings:
    """
    Coefficients of the temperature-dependent feedbacks.

    All feedbacks are linear in the anomaly T_a - reference_temperature.
    Setting the three slopes to zero (see :meth:`disabled`) leaves a
    constant albedo, a constant OLR slope B0 and a constant intercept A.
    """

    reference_temperature: float = 288.0
    albedo_base: float = 0.3
    albedo_slope: float = 0.01
    albedo_min: float = 0.1
    albedo_max: float = 0.7
    water_vapor_slope: float = 0.01
    olr_slope_floor: float = 0.5
    cloud_slope: float = 0.5

    @classmethod
    def disabled(cls) -> "FeedbackSettings":
        """Feedback settings with all temperature dependence switched off."""
        return cls(albedo_slope=0.0, water_vapor_slope=0.0, cloud_slope=0.0)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ForcingSettings:
    """
    Shape of the external radiative forcing.

    Attributes
    ----------
    ramp_years : float
        Length of the linear ramp from 0 to Fmax (years).
    volcanic_events : tuple of VolcanicEruption
        Cooling pulses, summed where they overlap.
    solar_amplitude, solar_period : float
        Solar cycle amplitude (W/m²) and period (years).
    seasonal_amplitude, seasonal_period : float
        Relative modulation of the absorbed shortwave and its period.
    noise_amplitude : float
        Standard deviation of the white-noise forcing (W/m²).
    """

    ramp_years: float = 200.0
    volcanic_events: Tuple[VolcanicEruption, ...] = field(
        default=(
            VolcanicEruption(100.0, 105.0, -2.0),
            VolcanicEruption(600.0, 605.0, -3.0),
        )
    )
    solar_amplitude: float = 0.5
    solar_period: float = 11.0
    seasonal_amplitude: float = 0.02
    seasonal_period: float = 1.0
    noise_amplitude: float = 0.3

    def deterministic(self) -> "ForcingSettings":
        """Copy of these settings without the stochastic term."""
        return replace(self, noise_amplitude=0.0)

    def replace(self, **changes) -> "ForcingSettings":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["volcanic_events"] = [list(event) for event in self.volcanic_events]
        return data


DEFAULT_PARAMETERS = ClimateParameters()
DEFAULT_FEEDBACKS = FeedbackSettings()
DEFAULT_FORCING = ForcingSettings()
DEFAULT_INITIAL_STATE = ClimateState(288.0, 288.0)
DEFAULT_T_SPAN = (0.0, 1000.0)
