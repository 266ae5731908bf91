# src/climatecube/cube/geom.py

import logging
import math
from dataclasses import dataclass
from typing import Union, Optional, List, Any

import numpy as np
import geopandas as gpd
from rasterio.crs import CRS
from rasterio.features import geometry_mask
from rasterio.transform import Affine
from rasterio.warp import Resampling, calculate_default_transform, reproject as rio_reproject
from rasterio.windows import Window, transform as window_transform
from shapely.geometry.base import BaseGeometry

from climatecube.exceptions import CubeValidationError, CRSMismatchError
from climatecube.vector.layer import Vector
from .layer import Cube, Dimension, resolve_cube

log = logging.getLogger(__name__)

__all__ = ["GridTemplate", "as_crs", "build_template", "reproject", "crop"]

def as_crs(value: Any) -> Optional[CRS]:
    """
    Normalise CRS-like input (EPSG string, rasterio CRS, pyproj CRS, Vector,
    GeoDataFrame) to a rasterio CRS.
    """
    if value is None:
        return None
    if isinstance(value, (Vector, gpd.GeoDataFrame, gpd.GeoSeries)):
        value = value.crs
        if value is None:
            return None
    if isinstance(value, CRS):
        return value
    if hasattr(value, "to_wkt"):
        return CRS.from_wkt(value.to_wkt())
    return CRS.from_user_input(value)

@dataclass
class GridTemplate:
    """
    Target grid of a reprojection.

    Attributes:
        crs: Destination CRS.
        transform: Destination affine transform.
        width: Number of columns.
        height: Number of rows.
        preview: Nearest-neighbour warp of the first attribute's first step,
                 for inspection only.
    """
    crs: CRS
    transform: Affine
    width: int
    height: int
    preview: Optional[np.ndarray] = None

    @property
    def shape(self):
        return (self.height, self.width)

@resolve_cube
def build_template(
    cube: Cube,
    target_crs: Any,
    resolution: Optional[Union[float, tuple]] = None
) -> GridTemplate:
    """
    Compute the grid a Cube occupies once warped to a new CRS.

    Args:
        cube: Source Cube.
        target_crs: Destination CRS (EPSG code, CRS object, or a Vector whose CRS is used).
        resolution: Force a cell size in destination units. If None, keeps
                    roughly the source cell count.

    Returns:
        GridTemplate: The destination grid definition.
    """
    if cube.crs is None:
        raise CRSMismatchError("Cube has no CRS; cannot build a reprojection template")

    dst_crs = as_crs(target_crs)
    if dst_crs is None:
        raise CRSMismatchError("Target has no CRS")

    dst_transform, dst_width, dst_height = calculate_default_transform(
        cube.crs,
        dst_crs,
        cube.width,
        cube.height,
        *cube.bounds,
        resolution=resolution
    )

    preview = None
    if cube.ntime > 0:
        preview = np.full((dst_height, dst_width), np.nan, dtype="float64")
        rio_reproject(
            source=cube.attributes[cube.names[0]][0].astype("float64"),
            destination=preview,
            src_transform=cube.transform,
            src_crs=cube.crs,
            src_nodata=np.nan,
            dst_transform=dst_transform,
            dst_crs=dst_crs,
            dst_nodata=np.nan,
            resampling=Resampling.nearest
        )

    log.info(f"Template grid in {dst_crs}: {dst_width}x{dst_height}")
    return GridTemplate(dst_crs, dst_transform, dst_width, dst_height, preview)

def _warp_attribute(
    data: np.ndarray,
    cube: Cube,
    template: GridTemplate,
    resampling: Resampling
) -> np.ndarray:
    """Warp one (Time, Height, Width) array onto the template; returns a bare array."""
    destination = np.full((data.shape[0], template.height, template.width), np.nan, dtype=data.dtype)
    if data.shape[0] == 0:
        return destination

    rio_reproject(
        source=data,
        destination=destination,
        src_transform=cube.transform,
        src_crs=cube.crs,
        src_nodata=np.nan,
        dst_transform=template.transform,
        dst_crs=template.crs,
        dst_nodata=np.nan,
        resampling=resampling
    )
    return destination

@resolve_cube
def reproject(
    cube: Cube,
    target: Union[GridTemplate, Any],
    resampling: Resampling = Resampling.bilinear
) -> Cube:
    """
    Warps every attribute of a Cube onto one destination grid.

    Each attribute is resampled independently onto the same template so that
    they stay aligned. The warp only returns pixel arrays, so the attribute
    names and the time dimension (label and values) are re-attached from the
    source Cube afterwards.

    Args:
        cube (Cube): The input cube.
        target (GridTemplate | CRS-like): Destination grid, or a CRS from which
                                          a template is built.
        resampling (Resampling): Interpolation method (default: Bilinear).

    Returns:
        Cube: A new Cube on the template grid.
    """
    if cube.crs is None:
        raise CRSMismatchError("Cube has no CRS; cannot reproject")

    template = target if isinstance(target, GridTemplate) else build_template(cube, target)

    log.info(f"Reprojecting {len(cube)} attribute(s) to {template.crs} (Resampling: {resampling.name})")

    warped = [_warp_attribute(data, cube, template, resampling) for data in cube.attributes.values()]

    return Cube(
        attributes=dict(zip(cube.names, warped)),
        transform=template.transform,
        crs=template.crs,
        time=Dimension(cube.time.name, cube.time.values.copy())
    )

def _resolve_geometries(geometry: Any, cube: Cube) -> List[BaseGeometry]:
    if isinstance(geometry, Vector):
        geometry = geometry.data

    if isinstance(geometry, (gpd.GeoDataFrame, gpd.GeoSeries)):
        geom_crs = as_crs(geometry.crs)
        if geom_crs is not None and cube.crs is not None and geom_crs != cube.crs:
            raise CRSMismatchError(
                f"Geometry CRS {geom_crs} does not match cube CRS {cube.crs}; "
                f"transform it first (vector.to_crs)"
            )
        geoms = list(geometry.geometry) if isinstance(geometry, gpd.GeoDataFrame) else list(geometry)
    elif isinstance(geometry, BaseGeometry):
        geoms = [geometry]
    else:
        raise TypeError(f"Expected Vector, GeoDataFrame or shapely geometry, got {type(geometry).__name__}")

    geoms = [g for g in geoms if g is not None and not g.is_empty]
    if not geoms:
        raise CubeValidationError("No non-empty geometry to crop with")
    return geoms

@resolve_cube
def crop(cube: Cube, geometry: Any, mask: bool = True) -> Cube:
    """
    Crop a Cube to a vector boundary.

    The Cube is first windowed to the cells lying entirely inside the
    geometry's bounding box, so the output extent never exceeds it. With
    mask=True, cells whose centres fall outside the polygon(s) are then set
    to NaN.

    Args:
        cube (Cube): Input cube.
        geometry: Vector, GeoDataFrame/GeoSeries (must share the cube's CRS),
                  or a shapely geometry expressed in the cube's CRS.
        mask (bool): Apply polygon masking; False crops to the bounding box only.

    Returns:
        Cube: A new cropped Cube.

    Raises:
        CRSMismatchError: If the geometry CRS differs from the cube CRS.
        CubeValidationError: If no whole cell fits inside the geometry bounds.
    """
    geoms = _resolve_geometries(geometry, cube)

    bounds = np.array([g.bounds for g in geoms])
    minx, miny = bounds[:, 0].min(), bounds[:, 1].min()
    maxx, maxy = bounds[:, 2].max(), bounds[:, 3].max()
    log.info(f"Cropping cube to bounds: {(minx, miny, maxx, maxy)}")

    inverse = ~cube.transform
    col_a, row_a = inverse * (minx, maxy)
    col_b, row_b = inverse * (maxx, miny)
    col_lo, col_hi = sorted((col_a, col_b))
    row_lo, row_hi = sorted((row_a, row_b))

    # keep only cells whose edges lie inside the bounding box
    eps = 1e-9
    col_start = max(0, math.ceil(col_lo - eps))
    col_stop = min(cube.width, math.floor(col_hi + eps))
    row_start = max(0, math.ceil(row_lo - eps))
    row_stop = min(cube.height, math.floor(row_hi + eps))

    if col_stop <= col_start or row_stop <= row_start:
        raise CubeValidationError(
            f"No whole cell of the cube extent {cube.bounds} fits inside the geometry bounds "
            f"{(minx, miny, maxx, maxy)}"
        )

    window = Window(col_start, row_start, col_stop - col_start, row_stop - row_start)
    new_transform = window_transform(window, cube.transform)
    row_slice, col_slice = window.toslices()

    attributes = {n: data[:, row_slice, col_slice].copy() for n, data in cube.attributes.items()}

    if mask:
        out_shape = (int(window.height), int(window.width))
        inside = geometry_mask(geoms, out_shape=out_shape, transform=new_transform, invert=True)

        # Fallback for geometries thinner than a cell
        if not np.any(inside):
            inside = geometry_mask(
                geoms, out_shape=out_shape, transform=new_transform, invert=True, all_touched=True
            )

        for data in attributes.values():
            data[:, ~inside] = np.nan

    return cube.replace(attributes=attributes, transform=new_transform)
