"""
Core equations of the two-layer energy-balance climate model.

Physical Model:
    dT_a/dt = (ASR(t, T_a) + F(t) - OLR(T_a)) / C_a - k (T_a - T_o) / C_a
    dT_o/dt = k (T_a - T_o) / C_o

with the feedback-adjusted radiation terms

    albedo = clamp(0.3 - 0.01 (T_a - 288), 0.1, 0.7)     ice-albedo
    B      = max(B0 - 0.01 (T_a - 288), 0.5)             water vapor
    A_eff  = A + 0.5 (T_a - 288)                         cloud
    ASR    = S0 (1 - albedo) / 4 · (1 + 0.02 sin(2πt))
    OLR    = A_eff + B T_a

and the forcing F(t) = ramp + volcanic + solar cycle + white noise.

Each term is exposed as its own function so that it can be inspected and
tested in isolation. The derivative function draws one standard normal
number from the supplied generator per call; nothing else is random.
"""

from typing import NamedTuple, Optional, Sequence
import math
import numpy as np

from twolayer.core.parameters import (
    ClimateParameters,
    ClimateState,
    FeedbackSettings,
    ForcingSettings,
    DEFAULT_FEEDBACKS,
    DEFAULT_FORCING,
)


class ForcingComponents(NamedTuple):
    """Radiative forcing terms (W/m²) at a single time."""

    ramp: float
    volcanic: float
    solar: float
    noise: float

    @property
    def total(self) -> float:
        return self.ramp + self.volcanic + self.solar + self.noise


# =============================================================================
# Feedbacks
# =============================================================================

def albedo(T_a: float, feedbacks: FeedbackSettings = DEFAULT_FEEDBACKS) -> float:
    """Ice-albedo feedback: colder atmosphere reflects more sunlight."""
    value = feedbacks.albedo_base - feedbacks.albedo_slope * (
        T_a - feedbacks.reference_temperature
    )
    return np.clip(value, feedbacks.albedo_min, feedbacks.albedo_max)


def olr_slope(
    T_a: float,
    B0: float,
    feedbacks: FeedbackSettings = DEFAULT_FEEDBACKS,
) -> float:
    """Water vapor feedback: warmer air lowers the effective OLR slope."""
    B = B0 - feedbacks.water_vapor_slope * (T_a - feedbacks.reference_temperature)
    return max(B, feedbacks.olr_slope_floor)


def olr_intercept(
    T_a: float,
    A: float,
    feedbacks: FeedbackSettings = DEFAULT_FEEDBACKS,
) -> float:
    """Cloud feedback (simplified): shifts the OLR intercept."""
    return A + feedbacks.cloud_slope * (T_a - feedbacks.reference_temperature)


def outgoing_longwave(
    T_a: float,
    params: ClimateParameters,
    feedbacks: FeedbackSettings = DEFAULT_FEEDBACKS,
) -> float:
    """Outgoing longwave radiation OLR = A_eff + B T_a (W/m²)."""
    return olr_intercept(T_a, params.A, feedbacks) + olr_slope(T_a, params.B0, feedbacks) * T_a


def absorbed_shortwave(
    t: float,
    T_a: float,
    S0: float,
    feedbacks: FeedbackSettings = DEFAULT_FEEDBACKS,
    forcing: ForcingSettings = DEFAULT_FORCING,
) -> float:
    """
    Absorbed shortwave radiation with a seasonal modulation.

    The geometric mean insolation S0/4 is reduced by the albedo and
    modulated by ±seasonal_amplitude over one seasonal period.
    """
    seasonal = 1.0 + forcing.seasonal_amplitude * math.sin(
        2.0 * math.pi * t / forcing.seasonal_period
    )
    return (S0 * (1.0 - albedo(T_a, feedbacks)) / 4.0) * seasonal


# =============================================================================
# Forcing terms
# =============================================================================

def ramp_forcing(t: float, Fmax: float, ramp_years: float = 200.0) -> float:
    """Linear ramp from 0 to Fmax over ``ramp_years``, constant afterwards."""
    if t <= ramp_years:
        return Fmax * (t / ramp_years)
    return Fmax


def volcanic_forcing(t: float, forcing: ForcingSettings = DEFAULT_FORCING) -> float:
    """Sum of all eruption pulses active at t (window bounds inclusive)."""
    total = 0.0
    for eruption in forcing.volcanic_events:
        if eruption.start <= t <= eruption.end:
            total += eruption.forcing
    return total


def solar_forcing(t: float, forcing: ForcingSettings = DEFAULT_FORCING) -> float:
    """Solar cycle, by default 11 years with ±0.5 W/m²."""
    return forcing.solar_amplitude * math.sin(2.0 * math.pi * t / forcing.solar_period)


def stochastic_forcing(
    rng: Optional[np.random.Generator],
    amplitude: float = 0.3,
) -> float:
    """
    White-noise forcing, a fresh draw on every call.

    No number is drawn when ``amplitude`` is zero, so deterministic runs
    do not need a generator at all.
    """
    if amplitude == 0.0:
        return 0.0
    if rng is None:
        raise ValueError("A random generator is required for stochastic forcing")
    return amplitude * rng.standard_normal()


def forcing_components(
    t: float,
    params: ClimateParameters,
    rng: Optional[np.random.Generator],
    forcing: ForcingSettings = DEFAULT_FORCING,
) -> ForcingComponents:
    """Evaluate every forcing term at t. Never cached: the noise changes per call."""
    return ForcingComponents(
        ramp=ramp_forcing(t, params.Fmax, forcing.ramp_years),
        volcanic=volcanic_forcing(t, forcing),
        solar=solar_forcing(t, forcing),
        noise=stochastic_forcing(rng, forcing.noise_amplitude),
    )


def deterministic_forcing(
    t: float,
    params: ClimateParameters,
    forcing: ForcingSettings = DEFAULT_FORCING,
) -> float:
    """Ramp + volcanic + solar forcing, i.e. the total without noise."""
    return forcing_components(t, params, None, forcing.deterministic()).total


# =============================================================================
# Derivative function
# =============================================================================

def two_layer_climate_model(
    t: float,
    state: Sequence[float],
    params: ClimateParameters,
    rng: Optional[np.random.Generator],
    feedbacks: FeedbackSettings = DEFAULT_FEEDBACKS,
    forcing: ForcingSettings = DEFAULT_FORCING,
) -> ClimateState:
    """
    Time derivatives of the two-layer climate model.

    Parameters
    ----------
    t : float
        Simulation time in years.
    state : sequence of float
        Current (T_atmosphere, T_ocean) in K. Any 2-sequence is accepted,
        including a ``ClimateState`` or a numpy array.
    params : ClimateParameters
        Fixed physical parameters.
    rng : numpy.random.Generator or None
        Source of the stochastic forcing. May be None only when the
        noise amplitude is zero.
    feedbacks : FeedbackSettings, optional
        Feedback coefficients.
    forcing : ForcingSettings, optional
        Forcing shape.

    Returns
    -------
    ClimateState
        (dT_a/dt, dT_o/dt) in K/year.

    Notes
    -----
    Zero or negative heat capacities are not rejected; the resulting
    inf/NaN values propagate into the caller's state.
    """
    # numpy scalars: division by a zero heat capacity yields inf, not an exception
    T_a, T_o = np.asarray(state, dtype=np.float64)

    ASR = absorbed_shortwave(t, T_a, params.S0, feedbacks, forcing)
    F = forcing_components(t, params, rng, forcing).total
    OLR = outgoing_longwave(T_a, params, feedbacks)

    exchange = params.k * (T_a - T_o)

    dT_a = (ASR + F - OLR) / params.C_a - exchange / params.C_a
    dT_o = exchange / params.C_o

    return ClimateState(dT_a, dT_o)


def equilibrium_climate_sensitivity(params: ClimateParameters) -> float:
    """
    Equilibrium Climate Sensitivity in K per forcing doubling.

    ECS = Fmax / B0, independent of any trajectory.
    """
    return params.Fmax / params.B0
