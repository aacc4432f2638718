"""
Temperature time series plots.
"""

from typing import TYPE_CHECKING, Optional
from pathlib import Path
import logging
import matplotlib.pyplot as plt

if TYPE_CHECKING:
    from matplotlib.axes import Axes
    from twolayer.core.results import SimulationResults

logger = logging.getLogger(__name__)

COLOR_ATMOSPHERE = "#D1495B"
COLOR_OCEAN = "#00798C"
COLOR_DIFFERENCE = "#30638E"


def _style_axis(ax: "Axes") -> None:
    ax.grid(True, alpha=0.3, linestyle="-", linewidth=0.4)
    for spine in ("top", "right"):
        ax.spines[spine].set_visible(False)


def plot_temperatures(
    results: "SimulationResults",
    ax: Optional["Axes"] = None,
) -> "Axes":
    """
    Atmosphere and deep ocean temperatures on shared axes, with legend.

    Parameters
    ----------
    results : SimulationResults
        Simulation results to draw.
    ax : matplotlib Axes, optional
        Target axes. A new figure is created when omitted.

    Returns
    -------
    matplotlib Axes
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 4))
    _style_axis(ax)

    ax.plot(results.t, results.T_atmosphere, color=COLOR_ATMOSPHERE, lw=1.2,
            label="Atmosphere/Mixed Layer")
    ax.plot(results.t, results.T_ocean, color=COLOR_OCEAN, lw=1.2,
            label="Deep Ocean")

    ax.set_xlabel("Time (Years)")
    ax.set_ylabel("Temperature (K)")
    ax.set_title("Atmosphere vs Deep Ocean Temperatures")
    ax.set_xlim(results.t[0], results.t[-1])
    ax.legend(loc="best")
    return ax


def plot_temperature_difference(
    results: "SimulationResults",
    ax: Optional["Axes"] = None,
) -> "Axes":
    """
    Atmosphere minus deep ocean temperature, without legend.

    Parameters
    ----------
    results : SimulationResults
        Simulation results to draw.
    ax : matplotlib Axes, optional
        Target axes. A new figure is created when omitted.

    Returns
    -------
    matplotlib Axes
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 4))
    _style_axis(ax)

    ax.plot(results.t, results.temperature_difference, color=COLOR_DIFFERENCE, lw=1.2)
    ax.axhline(0, color="black", alpha=0.3, linestyle="--", lw=0.6)

    ax.set_xlabel("Time (Years)")
    ax.set_ylabel("ΔT (K)")
    ax.set_title("Atmosphere–Ocean Temperature Difference")
    ax.set_xlim(results.t[0], results.t[-1])
    return ax


def create_timeseries_plot(
    results: "SimulationResults",
    filepath: str | Path,
    dpi: int = 150,
) -> None:
    """
    Save both temperature panels to one PNG.

    Top: T_atmosphere and T_ocean versus time.
    Bottom: T_atmosphere - T_ocean versus time.

    Parameters
    ----------
    results : SimulationResults
        Simulation results to visualize.
    filepath : str or Path
        Output PNG file path.
    dpi : int, optional
        Resolution. Default is 150.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Creating time series plot: {filepath}")

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(11, 8), sharex=True)
    plot_temperatures(results, ax1)
    plot_temperature_difference(results, ax2)
    ax1.set_xlabel("")

    fig.suptitle(f"Two-Layer Climate Model  (ECS = {results.ecs:.2f} K)", fontsize=13)
    fig.tight_layout()
    fig.savefig(filepath, dpi=dpi, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Time series plot saved: {filepath}")
