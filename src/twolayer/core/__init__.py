"""Core simulation components."""

from twolayer.core.model import ClimateModel
from twolayer.core.results import SimulationResults
from twolayer.core.solver import IntegrationError, Trajectory, integrate

__all__ = ["ClimateModel", "SimulationResults", "IntegrationError", "Trajectory", "integrate"]
