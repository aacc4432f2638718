"""Pytest configuration."""
import logging

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

from twolayer import ClimateModel, ClimateParameters, FeedbackSettings, ForcingSettings


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger("twolayer")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def deterministic_model():
    """Reference parameters without the stochastic forcing."""
    return ClimateModel(forcing=ForcingSettings().deterministic())


@pytest.fixture
def fast_linear_model():
    """
    Small heat capacities, feedbacks and periodic forcing switched off.

    The equilibrium warming of this model is exactly Fmax / B0.
    """
    return ClimateModel(
        params=ClimateParameters(C_a=10.0, C_o=100.0, k=1.0),
        feedbacks=FeedbackSettings.disabled(),
        forcing=ForcingSettings(
            volcanic_events=(),
            solar_amplitude=0.0,
            seasonal_amplitude=0.0,
            noise_amplitude=0.0,
        ),
    )
