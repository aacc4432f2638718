"""Tests for YAML configuration handling."""

import pytest
import yaml

from twolayer.core.parameters import ClimateState, VolcanicEruption
from twolayer.utils.config import (
    DEFAULT_CONFIG,
    feedbacks_from_config,
    forcing_from_config,
    initial_state_from_config,
    load_config,
    parameters_from_config,
    save_config,
)


def test_missing_file_creates_default(tmp_path):
    path = tmp_path / "sub" / "config.yaml"
    config = load_config(path)
    assert path.exists()
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_missing_file_without_creation(tmp_path):
    path = tmp_path / "config.yaml"
    load_config(path, create_default=False)
    assert not path.exists()


def test_user_values_are_merged(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"parameters": {"B0": 1.5}, "simulation": {"seed": 3}}))
    config = load_config(path)
    assert config["parameters"]["B0"] == 1.5
    assert config["parameters"]["S0"] == 1361.0
    assert config["simulation"]["seed"] == 3
    assert config["simulation"]["method"] == "Tsit5"


def test_defaults_not_mutated(tmp_path):
    config = load_config(tmp_path / "config.yaml")
    config["parameters"]["B0"] = 99.0
    config["forcing"]["volcanic_events"].append([1.0, 2.0, -1.0])
    assert DEFAULT_CONFIG["parameters"]["B0"] == 2.0
    assert len(DEFAULT_CONFIG["forcing"]["volcanic_events"]) == 2


def test_save_roundtrip(tmp_path):
    path = tmp_path / "config.yaml"
    save_config(DEFAULT_CONFIG, path)
    assert load_config(path) == DEFAULT_CONFIG


def test_non_mapping_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_config(path)


def test_string_numbers_coerced():
    # PyYAML reads 1.0e8 without a signed exponent as a string
    config = {"parameters": {"C_a": "1.0e8", "k": "1e7"}}
    params = parameters_from_config(config)
    assert params.C_a == 1.0e8
    assert params.k == 1.0e7


def test_unknown_parameter_rejected():
    with pytest.raises(ValueError, match="Unknown config keys"):
        parameters_from_config({"parameters": {"gamma": 1.0}})


def test_records_from_defaults():
    config = DEFAULT_CONFIG
    params = parameters_from_config(config)
    assert params.Fmax == 3.7
    assert feedbacks_from_config(config).albedo_max == 0.7
    forcing = forcing_from_config(config)
    assert forcing.volcanic_events[1] == VolcanicEruption(600.0, 605.0, -3.0)
    assert forcing.noise_amplitude == 0.3
    assert initial_state_from_config(config) == ClimateState(288.0, 288.0)


def test_add_noise_false_drops_noise():
    config = {"forcing": {"noise_amplitude": 0.5}, "simulation": {"add_noise": False}}
    assert forcing_from_config(config).noise_amplitude == 0.0
