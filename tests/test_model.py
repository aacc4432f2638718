"""Tests for core model functionality."""

import pytest
import numpy as np

from twolayer import ClimateModel, ClimateParameters, ForcingSettings, IntegrationError
from twolayer.core.dynamics import two_layer_climate_model
from twolayer.utils.config import load_config


class TestClimateModel:
    def test_initialization(self):
        model = ClimateModel()
        assert model.params.S0 == 1361.0
        assert model.params.C_o == 1e10
        assert model.forcing.noise_amplitude == 0.3
        assert model.ecs == pytest.approx(1.85)
        assert "ClimateModel(" in repr(model)

    def test_derivatives_match_dynamics(self):
        model = ClimateModel(forcing=ForcingSettings().deterministic())
        expected = two_layer_climate_model(37.0, (289.0, 287.5), model.params, None,
                                           model.feedbacks, model.forcing)
        assert model.derivatives(37.0, (289.0, 287.5)) == expected

    def test_derivatives_on_default_model(self):
        model = ClimateModel()
        d1 = model.derivatives(10.0, (288.0, 288.0))
        d2 = model.derivatives(10.0, (288.0, 288.0))
        assert np.all(np.isfinite(d1))
        assert d1.ocean == 0.0
        assert d1.atmosphere != d2.atmosphere

    def test_derivatives_with_explicit_generator(self):
        model = ClimateModel()
        d1 = model.derivatives(10.0, (289.0, 288.0), np.random.default_rng(3))
        d2 = model.derivatives(10.0, (289.0, 288.0), np.random.default_rng(3))
        assert d1 == d2

    def test_from_config_without_noise(self, tmp_path):
        config = load_config(tmp_path / "config.yaml")
        config["simulation"]["add_noise"] = False
        config["parameters"]["B0"] = 1.0
        model = ClimateModel.from_config(config)
        assert model.forcing.noise_amplitude == 0.0
        assert model.ecs == pytest.approx(3.7)

    def test_degenerate_parameters_only_warn(self, caplog):
        with caplog.at_level("WARNING", logger="twolayer"):
            ClimateModel(params=ClimateParameters(C_a=0.0))
        assert "not positive" in caplog.text


class TestRun:
    def test_default_run(self):
        results = ClimateModel().run(seed=42)
        assert results.t[0] == 0.0
        assert results.t[-1] == 1000.0
        assert np.all(np.diff(results.t) > 0)
        assert results.is_finite
        assert results.T_atmosphere[0] == 288.0
        assert results.T_ocean[0] == 288.0
        assert results.simulation_params["method"] == "Tsit5"
        assert results.diagnostics["ecs"] == pytest.approx(1.85)

    def test_same_seed_same_trajectory(self):
        model = ClimateModel()
        r1 = model.run(seed=123)
        r2 = model.run(seed=123)
        np.testing.assert_array_equal(r1.t, r2.t)
        np.testing.assert_array_equal(r1.T_atmosphere, r2.T_atmosphere)

    def test_injected_generator_matches_seed(self):
        model = ClimateModel()
        r1 = model.run(seed=7)
        r2 = model.run(rng=np.random.default_rng(7))
        np.testing.assert_array_equal(r1.T_atmosphere, r2.T_atmosphere)
        np.testing.assert_array_equal(r1.T_ocean, r2.T_ocean)

    def test_global_random_state_untouched(self):
        before = np.random.get_state()[1].copy()
        ClimateModel().run(seed=1, t_span=(0.0, 50.0))
        np.testing.assert_array_equal(np.random.get_state()[1], before)

    def test_deterministic_run_is_reproducible(self, deterministic_model):
        r1 = deterministic_model.run(t_span=(0.0, 300.0))
        r2 = deterministic_model.run(t_span=(0.0, 300.0))
        np.testing.assert_array_equal(r1.T_atmosphere, r2.T_atmosphere)

    def test_difference_is_projection(self, deterministic_model):
        results = deterministic_model.run(t_span=(0.0, 300.0))
        np.testing.assert_array_equal(
            results.temperature_difference, results.T_atmosphere - results.T_ocean
        )

    def test_resampled_output(self, deterministic_model):
        results = deterministic_model.run(t_span=(0.0, 500.0), n_points=101)
        assert len(results.t) == 101
        assert results.t[0] == 0.0
        assert results.t[-1] == 500.0
        assert results.forcing[-1] == pytest.approx(3.7 + 0.5 * np.sin(2 * np.pi * 500.0 / 11.0))

    @pytest.mark.parametrize("method", ["Tsit5", "DormandPrince45", "BogackiShampine32"])
    def test_relaxes_to_equilibrium_warming(self, fast_linear_model, method):
        results = fast_linear_model.run(method=method, rtol=1e-6, atol=1e-8)
        ecs = fast_linear_model.ecs
        assert results.T_atmosphere[-1] == pytest.approx(288.0 + ecs, abs=0.05)
        assert results.T_ocean[-1] == pytest.approx(288.0 + ecs, abs=0.05)
        assert abs(results.temperature_difference[-1]) < 0.05

    def test_warming_lags_in_deep_ocean(self, fast_linear_model):
        results = fast_linear_model.run(t_span=(0.0, 200.0), rtol=1e-6, atol=1e-8)
        assert results.T_atmosphere[-1] > results.T_ocean[-1] > 288.0

    def test_progress_bar(self, fast_linear_model):
        results = fast_linear_model.run(t_span=(0.0, 20.0), show_progress=True)
        assert results.t[-1] == 20.0

    def test_stiff_parameters_fail(self):
        model = ClimateModel(params=ClimateParameters(C_a=1e-12))
        with np.errstate(all="ignore"):
            with pytest.raises(IntegrationError):
                model.run(seed=0, max_steps=5000)

    def test_unknown_method(self, deterministic_model):
        with pytest.raises(KeyError):
            deterministic_model.run(method="Euler")
