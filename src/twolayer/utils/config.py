"""Configuration management for twolayer."""

from typing import Dict, Any, Optional
from pathlib import Path
import copy
import logging
import yaml

from twolayer.core.parameters import (
    ClimateParameters,
    ClimateState,
    FeedbackSettings,
    ForcingSettings,
    VolcanicEruption,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".twolayer" / "config.yaml"


# =============================================================================
# DEFAULT CONFIGURATION
# =============================================================================
# Plain lists only: yaml.safe_load cannot read back tuples.

DEFAULT_CONFIG: Dict[str, Any] = {
    "parameters": {
        "S0": 1361.0,
        "C_a": 1.0e8,
        "C_o": 1.0e10,
        "A": -337.825,
        "B0": 2.0,
        "Fmax": 3.7,
        "k": 1.0e7,
    },
    "feedbacks": {
        "reference_temperature": 288.0,
        "albedo_base": 0.3,
        "albedo_slope": 0.01,
        "albedo_min": 0.1,
        "albedo_max": 0.7,
        "water_vapor_slope": 0.01,
        "olr_slope_floor": 0.5,
        "cloud_slope": 0.5,
    },
    "forcing": {
        "ramp_years": 200.0,
        # [start, end, forcing W/m²], bounds inclusive
        "volcanic_events": [[100.0, 105.0, -2.0], [600.0, 605.0, -3.0]],
        "solar_amplitude": 0.5,
        "solar_period": 11.0,
        "seasonal_amplitude": 0.02,
        "seasonal_period": 1.0,
        "noise_amplitude": 0.3,
    },
    "simulation": {
        "t_start": 0.0,
        "t_end": 1000.0,
        "initial_state": [288.0, 288.0],
        "add_noise": True,
        "seed": None,
        "method": "Tsit5",
        "rtol": 1e-3,
        "atol": 1e-6,
        "max_step": None,
        "max_steps": 100000,
        "n_points": None,
    },
    "outputs": {
        "formats": ["csv", "png"],
        "base_dir": "./outputs",
    },
    "logging": {
        "level": "INFO",
        "log_dir": "./logs",
        "format_style": "detailed",
    },
    "visualization": {
        "timeseries_dpi": 150,
    },
}


def load_config(
    config_path: Optional[str | Path] = None,
    create_default: bool = True,
) -> Dict[str, Any]:
    """
    Load configuration from a YAML file, merged over the defaults.

    Parameters
    ----------
    config_path : str or Path, optional
        Path to config file. Defaults to ~/.twolayer/config.yaml
    create_default : bool, optional
        Write the default config when the file does not exist.

    Returns
    -------
    dict
        Configuration dictionary.
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if config_path.exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            user_config = yaml.safe_load(f) or {}

        if not isinstance(user_config, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

        return _deep_merge(DEFAULT_CONFIG, user_config)

    if create_default:
        save_config(DEFAULT_CONFIG, config_path)

    return copy.deepcopy(DEFAULT_CONFIG)


def save_config(
    config: Dict[str, Any],
    config_path: Optional[str | Path] = None,
) -> None:
    """
    Save configuration to a YAML file.

    Parameters
    ----------
    config : dict
        Configuration dictionary.
    config_path : str or Path, optional
        Path to config file. Defaults to ~/.twolayer/config.yaml
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    logger.info(f"Config saved to: {config_path}")


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries without touching either."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _floats(section: Dict[str, Any], allowed) -> Dict[str, float]:
    unknown = set(section) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")
    # YAML 1.1 reads "1.0e8" as a string
    return {key: float(value) for key, value in section.items()}


def parameters_from_config(config: Dict[str, Any]) -> ClimateParameters:
    """Build the physical parameter record from the ``parameters`` section."""
    section = config.get("parameters", {})
    return ClimateParameters(**_floats(section, ClimateParameters.__dataclass_fields__))


def feedbacks_from_config(config: Dict[str, Any]) -> FeedbackSettings:
    """Build feedback settings from the ``feedbacks`` section."""
    section = config.get("feedbacks", {})
    return FeedbackSettings(**_floats(section, FeedbackSettings.__dataclass_fields__))


def forcing_from_config(config: Dict[str, Any]) -> ForcingSettings:
    """
    Build forcing settings from the ``forcing`` section.

    The stochastic term is dropped when ``simulation.add_noise`` is false.
    """
    section = dict(config.get("forcing", {}))
    events = section.pop("volcanic_events", None)

    kwargs: Dict[str, Any] = _floats(section, ForcingSettings.__dataclass_fields__)
    if events is not None:
        kwargs["volcanic_events"] = tuple(
            VolcanicEruption(*(float(v) for v in event)) for event in events
        )

    settings = ForcingSettings(**kwargs)
    if not config.get("simulation", {}).get("add_noise", True):
        settings = settings.deterministic()
    return settings


def initial_state_from_config(config: Dict[str, Any]) -> ClimateState:
    """Initial (T_atmosphere, T_ocean) from the ``simulation`` section."""
    T_a, T_o = config.get("simulation", {}).get("initial_state", [288.0, 288.0])
    return ClimateState(float(T_a), float(T_o))
