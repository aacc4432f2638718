"""Tests for the derivative function and its feedback / forcing terms."""

import math

import numpy as np
import pytest

from twolayer import (
    ClimateParameters,
    ClimateState,
    FeedbackSettings,
    ForcingSettings,
    VolcanicEruption,
    DEFAULT_PARAMETERS,
    two_layer_climate_model,
    forcing_components,
    equilibrium_climate_sensitivity,
)
from twolayer.core.dynamics import (
    albedo,
    olr_slope,
    olr_intercept,
    absorbed_shortwave,
    ramp_forcing,
    volcanic_forcing,
    solar_forcing,
    stochastic_forcing,
    deterministic_forcing,
)

EXTREME_TEMPERATURES = [0.0, 1.0, 150.0, 287.9, 288.0, 300.0, 1000.0, 1e6, -1e6]


class TestFeedbacks:
    @pytest.mark.parametrize("T_a", EXTREME_TEMPERATURES)
    def test_albedo_stays_in_band(self, T_a):
        assert 0.1 <= albedo(T_a) <= 0.7

    def test_albedo_reference_and_clamps(self):
        assert albedo(288.0) == pytest.approx(0.3)
        assert albedo(278.0) == pytest.approx(0.4)
        assert albedo(0.0) == 0.7
        assert albedo(1e6) == 0.1

    @pytest.mark.parametrize("T_a", EXTREME_TEMPERATURES)
    def test_water_vapor_slope_floor(self, T_a):
        assert olr_slope(T_a, 2.0) >= 0.5

    def test_water_vapor_slope_values(self):
        assert olr_slope(288.0, 2.0) == 2.0
        assert olr_slope(298.0, 2.0) == pytest.approx(1.9)
        assert olr_slope(1e6, 2.0) == 0.5

    def test_cloud_intercept(self):
        assert olr_intercept(288.0, -337.825) == -337.825
        assert olr_intercept(290.0, -337.825) == pytest.approx(-336.825)

    def test_disabled_feedbacks_are_constant(self):
        off = FeedbackSettings.disabled()
        for T_a in (200.0, 288.0, 400.0):
            assert albedo(T_a, off) == pytest.approx(0.3)
            assert olr_slope(T_a, 2.0, off) == 2.0
            assert olr_intercept(T_a, -337.825, off) == -337.825

    def test_absorbed_shortwave_seasonal_cycle(self):
        mean = 1361.0 * 0.7 / 4
        assert absorbed_shortwave(0.0, 288.0, 1361.0) == pytest.approx(mean)
        assert absorbed_shortwave(0.25, 288.0, 1361.0) == pytest.approx(mean * 1.02)
        assert absorbed_shortwave(0.75, 288.0, 1361.0) == pytest.approx(mean * 0.98)


class TestForcing:
    def test_ramp_endpoints(self):
        assert ramp_forcing(0.0, 3.7) == 0.0
        assert ramp_forcing(200.0, 3.7) == 3.7

    def test_ramp_monotonic_then_constant(self):
        times = np.linspace(0.0, 200.0, 2001)
        values = [ramp_forcing(t, 3.7) for t in times]
        assert np.all(np.diff(values) >= 0)
        for t in (200.0001, 250.0, 999.0, 1e5):
            assert ramp_forcing(t, 3.7) == 3.7

    @pytest.mark.parametrize(
        "t, expected",
        [
            (99.999, 0.0),
            (100.0, -2.0),
            (102.5, -2.0),
            (105.0, -2.0),
            (105.001, 0.0),
            (300.0, 0.0),
            (600.0, -3.0),
            (605.0, -3.0),
            (605.5, 0.0),
            (0.0, 0.0),
            (1000.0, 0.0),
        ],
    )
    def test_volcanic_windows(self, t, expected):
        assert volcanic_forcing(t) == expected

    def test_overlapping_eruptions_stack(self):
        settings = ForcingSettings(
            volcanic_events=(
                VolcanicEruption(10.0, 20.0, -1.0),
                VolcanicEruption(15.0, 25.0, -2.5),
            )
        )
        assert volcanic_forcing(12.0, settings) == -1.0
        assert volcanic_forcing(17.0, settings) == -3.5
        assert volcanic_forcing(22.0, settings) == -2.5

    def test_solar_cycle(self):
        assert solar_forcing(0.0) == 0.0
        assert solar_forcing(11.0 / 4) == pytest.approx(0.5)
        assert solar_forcing(11.0 * 3 / 4) == pytest.approx(-0.5)

    def test_noise_needs_no_generator_when_off(self):
        assert stochastic_forcing(None, 0.0) == 0.0

    def test_noise_requires_generator(self):
        with pytest.raises(ValueError):
            stochastic_forcing(None, 0.3)

    def test_noise_fresh_draw_each_call(self, rng):
        draws = [stochastic_forcing(rng, 0.3) for _ in range(5)]
        assert len(set(draws)) == 5

    def test_noise_reproducible_with_seed(self):
        a = [stochastic_forcing(np.random.default_rng(7), 0.3) for _ in range(3)]
        b = [stochastic_forcing(np.random.default_rng(7), 0.3) for _ in range(3)]
        assert a == b

    def test_components_sum(self, rng):
        components = forcing_components(102.0, DEFAULT_PARAMETERS, rng)
        assert components.ramp == pytest.approx(3.7 * 102.0 / 200.0)
        assert components.volcanic == -2.0
        assert components.total == pytest.approx(
            components.ramp + components.volcanic + components.solar + components.noise
        )

    def test_deterministic_forcing_excludes_noise(self):
        expected = ramp_forcing(50.0, 3.7) + solar_forcing(50.0)
        assert deterministic_forcing(50.0, DEFAULT_PARAMETERS) == pytest.approx(expected)


class TestDerivatives:
    def test_returns_named_state(self, rng):
        d = two_layer_climate_model(0.0, ClimateState(288.0, 288.0), DEFAULT_PARAMETERS, rng)
        assert isinstance(d, ClimateState)
        assert np.isfinite(d.atmosphere) and np.isfinite(d.ocean)

    def test_accepts_arrays(self):
        quiet = ForcingSettings().deterministic()
        a = two_layer_climate_model(
            30.0, np.array([289.0, 288.5]), DEFAULT_PARAMETERS, None, forcing=quiet
        )
        b = two_layer_climate_model(
            30.0, ClimateState(289.0, 288.5), DEFAULT_PARAMETERS, None, forcing=quiet
        )
        assert a == b

    def test_noise_makes_calls_differ(self, rng):
        state = ClimateState(288.0, 288.0)
        d1 = two_layer_climate_model(10.0, state, DEFAULT_PARAMETERS, rng)
        d2 = two_layer_climate_model(10.0, state, DEFAULT_PARAMETERS, rng)
        assert d1.atmosphere != d2.atmosphere
        assert d1.ocean == d2.ocean

    def test_equilibrium_without_forcing_or_feedbacks(self):
        params = DEFAULT_PARAMETERS.replace(Fmax=0.0)
        quiet = ForcingSettings(noise_amplitude=0.0)
        d = two_layer_climate_model(
            0.0, ClimateState(288.0, 288.0), params, None,
            feedbacks=FeedbackSettings.disabled(), forcing=quiet,
        )
        assert d.atmosphere == pytest.approx(0.0, abs=1e-15)
        assert d.ocean == 0.0

    def test_hand_computed_derivative(self):
        params = ClimateParameters(C_a=10.0, C_o=100.0, k=2.0)
        quiet = ForcingSettings().deterministic()
        t, T_a, T_o = 50.0, 290.0, 288.0

        alb = 0.3 - 0.01 * 2.0
        B = 2.0 - 0.01 * 2.0
        A_eff = -337.825 + 0.5 * 2.0
        ASR = 1361.0 * (1 - alb) / 4 * (1 + 0.02 * math.sin(2 * math.pi * t))
        F = 3.7 * t / 200 + 0.5 * math.sin(2 * math.pi * t / 11.0)
        OLR = A_eff + B * T_a
        expected_a = (ASR + F - OLR) / 10.0 - 2.0 * (T_a - T_o) / 10.0
        expected_o = 2.0 * (T_a - T_o) / 100.0

        d = two_layer_climate_model(t, (T_a, T_o), params, None, forcing=quiet)
        assert d.atmosphere == pytest.approx(expected_a)
        assert d.ocean == pytest.approx(expected_o)

    def test_zero_heat_capacity_propagates_non_finite(self):
        params = DEFAULT_PARAMETERS.replace(C_a=0.0, C_o=0.0)
        quiet = ForcingSettings().deterministic()
        with np.errstate(divide="ignore", invalid="ignore"):
            d = two_layer_climate_model(10.0, (289.0, 288.0), params, None, forcing=quiet)
        assert not np.isfinite(d.atmosphere)
        assert not np.isfinite(d.ocean)


class TestClimateSensitivity:
    def test_reference_value(self):
        assert equilibrium_climate_sensitivity(DEFAULT_PARAMETERS) == 1.85

    def test_scales_with_forcing(self):
        params = DEFAULT_PARAMETERS.replace(Fmax=7.4)
        assert equilibrium_climate_sensitivity(params) == pytest.approx(3.7)
