"""Visualization functions for twolayer."""

from twolayer.visualization.timeseries import (
    create_timeseries_plot,
    plot_temperatures,
    plot_temperature_difference,
)

__all__ = [
    "create_timeseries_plot",
    "plot_temperatures",
    "plot_temperature_difference",
]
