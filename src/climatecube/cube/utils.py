# src/climatecube/cube/utils.py

"""
This module provides shared utility functions for cube operations.

Functions include attribute name normalisation, decoding of time
coordinates from file metadata, and construction of the timestamp
sequences used to relabel time axes.
"""
import logging
import re
from pathlib import Path
from typing import Union, Optional, Sequence

import numpy as np
import pandas as pd

from climatecube.exceptions import CubeValidationError

log = logging.getLogger(__name__)

__all__ = [
    "normalize_name",
    "parse_time_descriptions",
    "decode_cf_time",
    "hourly_sequence",
    "daily_sequence",
    "regular_step",
    "truncate_times"
]

RASTER_SUFFIXES = {
    ".nc", ".nc4", ".cdf", ".tif", ".tiff", ".grib", ".grb", ".grib2", ".grb2",
    ".h5", ".hdf", ".he5", ".vrt", ".img", ".zarr"
}

_CF_UNITS = {
    "seconds": "s", "second": "s", "secs": "s", "sec": "s", "s": "s",
    "minutes": "m", "minute": "m", "mins": "m", "min": "m",
    "hours": "h", "hour": "h", "hrs": "h", "hr": "h", "h": "h",
    "days": "D", "day": "D", "d": "D"
}

_TRUNCATION_UNITS = {
    "hour": "h",
    "day": "D",
    "month": "M",
    "year": "Y"
}

def normalize_name(name: Union[str, Path]) -> str:
    """
    Strip file-extension derived suffixes from an attribute name.
    'era5_t2m.nc' -> 'era5_t2m', 'tp.grib2' -> 'tp'. Unknown suffixes are kept.
    """
    name = Path(str(name)).name
    while True:
        stem, suffix = Path(name).stem, Path(name).suffix
        if suffix.lower() not in RASTER_SUFFIXES or not stem:
            return name
        name = stem

def parse_time_descriptions(descriptions: Sequence[Optional[str]]) -> Optional[np.ndarray]:
    """
    Interpret band descriptions as timestamps.

    Returns:
        np.ndarray of datetime64 values, or None unless every description parses.
    """
    if not descriptions or any(not d for d in descriptions):
        return None
    try:
        return np.array([np.datetime64(d.strip()) for d in descriptions])
    except ValueError:
        return None

def decode_cf_time(values: Sequence[float], units: str) -> np.ndarray:
    """
    Decode CF-convention offsets such as 'hours since 1900-01-01 00:00:00.0'.

    Args:
        values: Numeric offsets, one per time step.
        units: The CF units attribute.

    Returns:
        np.ndarray: datetime64[s] timestamps.
    """
    match = re.match(r"\s*(\w+)\s+since\s+(.+?)\s*$", units, re.IGNORECASE)
    if not match:
        raise CubeValidationError(f"Unsupported time units: '{units}'")

    unit = _CF_UNITS.get(match.group(1).lower())
    if unit is None:
        raise CubeValidationError(f"Unsupported time unit '{match.group(1)}'")

    reference = pd.Timestamp(match.group(2).replace("T", " ").rstrip("Z")).to_datetime64()
    offsets = pd.to_timedelta(np.asarray(values, dtype="float64"), unit=unit)
    return (reference + offsets.to_numpy()).astype("datetime64[s]")

def hourly_sequence(start: Union[str, np.datetime64], end: Union[str, np.datetime64]) -> np.ndarray:
    """Hourly timestamps from start to end, both inclusive."""
    return pd.date_range(start, end, freq="h").to_numpy().astype("datetime64[s]")

def daily_sequence(start: Union[str, np.datetime64], end: Union[str, np.datetime64]) -> np.ndarray:
    """Calendar dates from start to end, both inclusive."""
    return pd.date_range(start, end, freq="D").to_numpy().astype("datetime64[D]")

def regular_step(values: np.ndarray, label: str = "axis") -> float:
    """
    Return the constant spacing of a coordinate sequence.

    Raises:
        CubeValidationError: If fewer than two values or spacing is irregular.
    """
    values = np.asarray(values, dtype="float64")
    if values.size < 2:
        raise CubeValidationError(f"{label} needs at least two values to infer spacing")

    steps = np.diff(values)
    if not np.allclose(steps, steps[0], rtol=1e-6, atol=0):
        raise CubeValidationError(f"{label} values must be regularly spaced")
    return float(steps[0])

def truncate_times(values: np.ndarray, by: str) -> np.ndarray:
    """
    Truncate timestamps to a calendar granularity ('hour', 'day', 'month', 'year').
    """
    if by not in _TRUNCATION_UNITS:
        raise CubeValidationError(
            f"Unknown granularity '{by}', expected one of {list(_TRUNCATION_UNITS)}"
        )
    values = np.asarray(values)
    if not np.issubdtype(values.dtype, np.datetime64):
        raise CubeValidationError(
            "Time values are not timestamps; relabel the time dimension first"
        )
    return values.astype(f"datetime64[{_TRUNCATION_UNITS[by]}]")