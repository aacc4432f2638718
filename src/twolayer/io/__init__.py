"""Input/Output operations for twolayer."""

from twolayer.io.csv_writer import write_csv
from twolayer.io.netcdf_writer import write_netcdf

__all__ = [
    "write_csv",
    "write_netcdf",
]
