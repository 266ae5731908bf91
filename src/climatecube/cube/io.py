# src/climatecube/cube/io.py

"""
This module handles all disk-based operations for gridded data.
"""

import logging
from pathlib import Path
from typing import Union, Optional, List, Dict, Any, Sequence

import numpy as np
import rasterio
from rasterio.crs import CRS

from climatecube.exceptions import CubeIOError, CubeValidationError
from .layer import Cube, Dimension
from .resources import estimate_memory
from .utils import parse_time_descriptions, decode_cf_time

log = logging.getLogger(__name__)

__all__ = [
    "load",
    "load_many",
    "save",
    "read_info"
]

def _extract_time_values(src: rasterio.DatasetReader) -> np.ndarray:
    """
    Recover the time coordinate from band metadata when the file carries it.

    Band descriptions written by save() hold ISO timestamps; netCDF files
    expose CF offsets through the NETCDF_DIM_time band tags. Anything else
    falls back to placeholder steps 1..N.
    """
    parsed = parse_time_descriptions(src.descriptions)
    if parsed is not None:
        return parsed

    units = src.tags().get("time#units")
    offsets = [src.tags(i).get("NETCDF_DIM_time") for i in src.indexes]
    if units and all(o is not None for o in offsets):
        try:
            return decode_cf_time([float(o) for o in offsets], units)
        except (CubeValidationError, ValueError) as e:
            log.warning(f"Could not decode time units '{units}': {e}")

    log.debug(f"No time metadata in {src.name}; using placeholder steps")
    return np.arange(1, src.count + 1)

def load(
    path: Union[str, Path],
    name: Optional[str] = None,
    crs: Optional[Union[str, CRS]] = None,
    check_memory: bool = True
) -> Cube:
    """
    Load a gridded file from disk into a single-attribute Cube.

    Every band of the file becomes one step of the time dimension. Packed
    values are unpacked with the band scales/offsets and nodata becomes NaN.

    Args:
        path: Path to the file. All GDAL formats (netCDF, GRIB, GeoTIFF, ...) are accepted.
        name: Attribute name. Defaults to the file name, extension included.
        crs: CRS to assign when the file does not declare one.
        check_memory: Estimate required RAM first and refuse files that do not fit.

    Returns:
        Cube: In-memory Cube with one attribute.

    Raises:
        FileNotFoundError: If the path does not exist.
        MemoryError: If check_memory is set and the file is too large.
        CubeIOError: If the file cannot be read.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Gridded file not found: {path}")

    log.debug(f"Loading cube: {path.name}")

    try:
        if check_memory:
            estimate = estimate_memory(path)
            if not estimate.is_safe:
                log.error(estimate.reason)
                raise MemoryError(estimate.reason)
            log.debug(estimate.reason)

        with rasterio.open(path) as src:
            dtype = np.result_type(src.dtypes[0], np.float32)
            masked = src.read(masked=True)
            data = np.ma.filled(masked.astype(dtype), np.nan)

            scales = np.asarray(src.scales, dtype=dtype)[:, np.newaxis, np.newaxis]
            offsets = np.asarray(src.offsets, dtype=dtype)[:, np.newaxis, np.newaxis]
            if np.any(scales != 1) or np.any(offsets != 0):
                data = data * scales + offsets

            src_crs = src.crs
            if src_crs is None:
                if crs is None:
                    log.warning(f"{path.name} declares no CRS")
                else:
                    src_crs = CRS.from_user_input(crs)

            time = Dimension("time", _extract_time_values(src))

            return Cube(
                attributes={name or path.name: data},
                transform=src.transform,
                crs=src_crs,
                time=time
            )

    except rasterio.RasterioIOError as e:
        raise CubeIOError(f"Failed to read gridded file {path}: {e}") from e

def load_many(paths: Sequence[Union[str, Path]], **kwargs) -> List[Cube]:
    """Load several files, one Cube per path, in the given order."""
    return [load(path, **kwargs) for path in paths]

def save(
    cube: Cube,
    directory: Union[str, Path],
    **profile_kwargs
) -> List[Path]:
    """
    Write a Cube to disk, one GeoTIFF per attribute.

    Each time step becomes a band whose description holds the time value, so
    load() restores the time coordinate.

    Args:
        cube: Cube to save.
        directory: Output directory; files are named '<attribute>.tif'.
        **profile_kwargs: Override default rasterio profile settings.

    Returns:
        List[Path]: The written files, in attribute order.
    """
    if cube.ntime == 0:
        raise CubeValidationError("Cannot save a cube with an empty time dimension")

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    written = []
    for name, data in cube.attributes.items():
        path = directory / f"{name}.tif"
        profile = {
            'driver': 'GTiff',
            'dtype': data.dtype,
            'nodata': np.nan,
            'width': cube.width,
            'height': cube.height,
            'count': cube.ntime,
            'crs': cube.crs,
            'transform': cube.transform,
            'compress': 'lzw',
            'tiled': True
        }
        profile.update(profile_kwargs)

        log.info(f"Saving attribute '{name}' {data.shape} → {path}")

        try:
            with rasterio.open(path, 'w', **profile) as dst:
                dst.write(data)
                for idx, value in enumerate(cube.time.values, start=1):
                    dst.set_band_description(idx, str(value))
        except rasterio.RasterioIOError as e:
            raise CubeIOError(f"Failed to save cube to {path}: {e}") from e

        written.append(path)

    return written

def read_info(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Inspect a gridded file's metadata without reading pixels.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    try:
        with rasterio.open(path) as src:
            return {
                'crs': src.crs,
                'transform': src.transform,
                'bounds': src.bounds,
                'width': src.width,
                'height': src.height,
                'count': src.count,
                'driver': src.driver,
                'nodata': src.nodata,
                'descriptions': list(src.descriptions),
                'time': _extract_time_values(src)
            }
    except rasterio.RasterioIOError as e:
        raise CubeIOError(f"Failed to read metadata from {path}: {e}") from e
