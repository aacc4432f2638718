"""NetCDF output writer (CF-style metadata)."""

from typing import TYPE_CHECKING
from pathlib import Path
from datetime import datetime
import logging

from twolayer.core.parameters import PARAMETER_DESCRIPTIONS, PARAMETER_UNITS

if TYPE_CHECKING:
    from twolayer.core.results import SimulationResults

logger = logging.getLogger(__name__)


def write_netcdf(
    results: "SimulationResults",
    filepath: str | Path,
    compression: bool = True,
    compression_level: int = 4,
) -> None:
    """
    Write simulation results to NetCDF file.

    Creates a NetCDF4 file with one ``time`` dimension. The physical
    parameters, the integration settings and the ECS are stored as global
    attributes so the file is self-describing.

    Parameters
    ----------
    results : SimulationResults
        Simulation results to export.
    filepath : str or Path
        Output file path.
    compression : bool, optional
        Enable zlib compression. Default is True.
    compression_level : int, optional
        Compression level (1-9). Default is 4.
    """
    import netCDF4 as nc
    from twolayer import __version__

    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Writing NetCDF to: {filepath}")

    comp_kwargs = {}
    if compression:
        comp_kwargs = {"zlib": True, "complevel": compression_level}

    with nc.Dataset(filepath, "w", format="NETCDF4") as ds:
        # =====================================================================
        # Global attributes
        # =====================================================================
        ds.title = "Two-layer energy balance climate model simulation"
        ds.institution = "twolayer"
        ds.source = f"twolayer two-layer climate model v{__version__}"
        ds.history = f"Created {datetime.now().isoformat()} by twolayer"
        ds.Conventions = "CF-1.8"

        for name, value in results.parameters.to_dict().items():
            ds.setncattr(f"parameter_{name}", value)
            ds.setncattr(f"parameter_{name}_units", PARAMETER_UNITS[name])
            ds.setncattr(f"parameter_{name}_description", PARAMETER_DESCRIPTIONS[name])

        for name, value in results.simulation_params.items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                value = [float(v) for v in value]
            ds.setncattr(f"simulation_{name}", value)

        ds.equilibrium_climate_sensitivity = results.ecs
        ds.equilibrium_climate_sensitivity_units = "K"
        for name in ("n_evaluations", "n_accepted", "n_rejected"):
            if results.diagnostics.get(name) is not None:
                ds.setncattr(f"solver_{name}", int(results.diagnostics[name]))
        ds.all_values_finite = int(results.is_finite)

        # =====================================================================
        # Dimensions and variables
        # =====================================================================
        n_time = len(results.t)
        ds.createDimension("time", n_time)

        time_var = ds.createVariable("time", "f8", ("time",), **comp_kwargs)
        time_var.units = "years since simulation start"
        time_var.long_name = "Simulation time"
        time_var.axis = "T"
        time_var[:] = results.t

        ta_var = ds.createVariable("T_atmosphere", "f8", ("time",), **comp_kwargs)
        ta_var.units = "K"
        ta_var.long_name = "Atmosphere / mixed layer temperature"
        ta_var.standard_name = "air_temperature"
        ta_var[:] = results.T_atmosphere

        to_var = ds.createVariable("T_ocean", "f8", ("time",), **comp_kwargs)
        to_var.units = "K"
        to_var.long_name = "Deep ocean temperature"
        to_var.standard_name = "sea_water_temperature"
        to_var[:] = results.T_ocean

        diff_var = ds.createVariable("temperature_difference", "f8", ("time",), **comp_kwargs)
        diff_var.units = "K"
        diff_var.long_name = "Atmosphere minus deep ocean temperature"
        diff_var[:] = results.temperature_difference

        forcing_var = ds.createVariable("forcing", "f8", ("time",), **comp_kwargs)
        forcing_var.units = "W m-2"
        forcing_var.long_name = "Deterministic radiative forcing"
        forcing_var.comment = "ramp + volcanic + solar cycle; excludes the stochastic term"
        forcing_var[:] = results.forcing

    logger.info(f"NetCDF written: {n_time} time steps, t={results.t[0]:g}-{results.t[-1]:g}")
