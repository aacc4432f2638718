"""
Simulation results container with export functionality.
"""

from typing import Dict, Any
from dataclasses import dataclass, field
from pathlib import Path
import logging
import numpy as np
from numpy.typing import NDArray

from twolayer.core.parameters import ClimateParameters, ClimateState

logger = logging.getLogger(__name__)


@dataclass
class SimulationResults:
    """
    Container for two-layer climate simulation results.

    Attributes
    ----------
    t : NDArray
        Time in years (solver nodes, or a uniform grid when resampled).
    T_atmosphere : NDArray
        Atmosphere / mixed layer temperature (K).
    T_ocean : NDArray
        Deep ocean temperature (K).
    temperature_difference : NDArray
        T_atmosphere - T_ocean (K).
    forcing : NDArray
        Deterministic forcing (ramp + volcanic + solar) at each time (W/m²).
    parameters : ClimateParameters
        Physical parameters of the run.
    simulation_params : dict
        Integration settings used.
    diagnostics : dict
        ECS, solver counters and validation flags.
    """

    t: NDArray[np.float64]
    T_atmosphere: NDArray[np.float64]
    T_ocean: NDArray[np.float64]
    temperature_difference: NDArray[np.float64]
    forcing: NDArray[np.float64]
    parameters: ClimateParameters
    simulation_params: Dict[str, Any] = field(default_factory=dict)
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def ecs(self) -> float:
        """Equilibrium Climate Sensitivity (K per forcing doubling)."""
        return self.diagnostics.get("ecs", self.parameters.Fmax / self.parameters.B0)

    @property
    def final_state(self) -> ClimateState:
        return ClimateState(float(self.T_atmosphere[-1]), float(self.T_ocean[-1]))

    @property
    def is_finite(self) -> bool:
        """False when any temperature is NaN or infinite."""
        return bool(np.all(np.isfinite(self.T_atmosphere)) and np.all(np.isfinite(self.T_ocean)))

    @property
    def warming(self) -> NDArray[np.float64]:
        """Atmospheric temperature change since the start of the run (K)."""
        return self.T_atmosphere - self.T_atmosphere[0]

    def summary(self) -> Dict[str, Any]:
        """Generate summary statistics."""
        return {
            "ecs": self.ecs,
            "t_start": float(self.t[0]),
            "t_end": float(self.t[-1]),
            "n_points": len(self.t),
            "initial_T_atmosphere": float(self.T_atmosphere[0]),
            "initial_T_ocean": float(self.T_ocean[0]),
            "final_T_atmosphere": float(self.T_atmosphere[-1]),
            "final_T_ocean": float(self.T_ocean[-1]),
            "final_difference": float(self.temperature_difference[-1]),
            "max_warming": float(np.nanmax(self.warming)),
            "min_warming": float(np.nanmin(self.warming)),
            "max_forcing": float(np.nanmax(self.forcing)),
            "is_finite": self.is_finite,
            "method": self.simulation_params.get("method"),
            "n_evaluations": self.diagnostics.get("n_evaluations"),
            "n_accepted": self.diagnostics.get("n_accepted"),
            "n_rejected": self.diagnostics.get("n_rejected"),
        }

    def to_dataframe(self):
        """Convert results to a pandas DataFrame, one row per time."""
        import pandas as pd

        return pd.DataFrame({
            "time_years": self.t,
            "T_atmosphere_K": self.T_atmosphere,
            "T_ocean_K": self.T_ocean,
            "temperature_difference_K": self.temperature_difference,
            "warming_K": self.warming,
            "forcing_Wm2": self.forcing,
        })

    def to_csv(
        self,
        filepath: str | Path,
        include_header: bool = True,
        float_format: str = "%.8f",
    ) -> None:
        """
        Export results to CSV file.

        Parameters
        ----------
        filepath : str or Path
            Output file path.
        include_header : bool, optional
            Include column header. Default is True.
        float_format : str, optional
            Float format string. Default is "%.8f".
        """
        from twolayer.io.csv_writer import write_csv
        write_csv(self, filepath, include_header, float_format)

    def to_netcdf(
        self,
        filepath: str | Path,
        compression: bool = True,
        compression_level: int = 4,
    ) -> None:
        """
        Export results to NetCDF file.

        Parameters
        ----------
        filepath : str or Path
            Output file path.
        compression : bool, optional
            Enable compression. Default is True.
        compression_level : int, optional
            Compression level (1-9). Default is 4.
        """
        from twolayer.io.netcdf_writer import write_netcdf
        write_netcdf(self, filepath, compression, compression_level)

    def to_png(
        self,
        filepath: str | Path,
        dpi: int = 150,
    ) -> None:
        """
        Create the temperature time series figure.

        Parameters
        ----------
        filepath : str or Path
            Output file path.
        dpi : int, optional
            Output resolution. Default is 150.
        """
        from twolayer.visualization.timeseries import create_timeseries_plot
        create_timeseries_plot(self, filepath, dpi)

    def __repr__(self) -> str:
        return (
            f"SimulationResults(years={self.t[0]:g}-{self.t[-1]:g}, "
            f"n_points={len(self.t)}, "
            f"final_T_atmosphere={self.T_atmosphere[-1]:.4f} K, "
            f"final_T_ocean={self.T_ocean[-1]:.4f} K, "
            f"ECS={self.ecs:.2f} K)"
        )
