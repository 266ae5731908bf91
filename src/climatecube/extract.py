# src/climatecube/extract.py

"""
This module extracts cube values for vector features.

It manages interactions between cubes and vector data: sampling attribute
values at points and reducing the cells covered by polygons. Both return a
flat Polars table with one row per (feature, time step) and one column per
attribute.
"""

import logging
import warnings
from typing import Union, Optional, Literal, Dict
from pathlib import Path

import numpy as np
import polars as pl
import geopandas as gpd
from rasterio.features import geometry_mask
from tqdm import tqdm

from climatecube.cube.layer import Cube, resolve_cube
from climatecube.cube.geom import as_crs
from climatecube.cube.temporal import Reducer, resolve_reducer
from climatecube.exceptions import CubeValidationError, CRSMismatchError
from climatecube.vector.layer import Vector
from climatecube.vector.io import load_vector
from climatecube.vector.geom import validate, to_crs

log = logging.getLogger(__name__)

__all__ = [
    "extract_points",
    "zonal_statistics"
]

FEATURE_ID = "feature_id"

def _prepare_vector(vector_input: Union[str, Path, gpd.GeoDataFrame, Vector], cube: Cube) -> Vector:
    """Resolve the vector input and bring it into the cube's CRS."""
    if isinstance(vector_input, (str, Path)):
        vector_obj = load_vector(vector_input)
    elif isinstance(vector_input, gpd.GeoDataFrame):
        vector_obj = Vector(vector_input)
    elif isinstance(vector_input, Vector):
        vector_obj = vector_input
    else:
        raise TypeError("vector_input must be a path, GeoDataFrame or Vector object")

    vector_crs = as_crs(vector_obj.crs)
    if vector_crs is not None and cube.crs is not None and vector_crs != cube.crs:
        log.warning(f"Reprojecting features from {vector_crs} to match cube CRS {cube.crs}")
        vector_obj = to_crs(vector_obj, cube.crs.to_wkt())
    elif vector_crs is None or cube.crs is None:
        if vector_crs != cube.crs:
            raise CRSMismatchError("Only one of the cube and the features declares a CRS")

    return vector_obj

def _feature_ids(gdf: gpd.GeoDataFrame, id_column: Optional[str]) -> np.ndarray:
    if id_column is None:
        return gdf.index.to_numpy()
    if id_column not in gdf.columns:
        raise KeyError(f"Column '{id_column}' not found in {gdf.columns.tolist()}")
    return gdf[id_column].to_numpy()

def _assemble(
    cube: Cube,
    ids: np.ndarray,
    values: Dict[str, np.ndarray],
    extra: Optional[Dict[str, np.ndarray]] = None
) -> pl.DataFrame:
    """
    Flatten (time, feature) value grids into one row per (feature, time step).
    """
    n_features = len(ids)
    columns = {
        FEATURE_ID: np.repeat(ids, cube.ntime),
        cube.time.name: np.tile(cube.time.values, n_features)
    }
    for key, column in (extra or {}).items():
        columns[key] = np.repeat(column, cube.ntime)
    for name, grid in values.items():
        # grid is (time, feature); transpose for feature-major rows
        columns[name] = grid.T.ravel()

    return pl.DataFrame({key: pl.Series(key, column) for key, column in columns.items()})

def _sample_nearest(data: np.ndarray, cols: np.ndarray, rows: np.ndarray, inside: np.ndarray) -> np.ndarray:
    out = np.full((data.shape[0], cols.size), np.nan, dtype=data.dtype)
    c = np.floor(cols[inside]).astype(int)
    r = np.floor(rows[inside]).astype(int)
    out[:, inside] = data[:, r, c]
    return out

def _sample_bilinear(data: np.ndarray, cols: np.ndarray, rows: np.ndarray, inside: np.ndarray) -> np.ndarray:
    height, width = data.shape[1], data.shape[2]
    out = np.full((data.shape[0], cols.size), np.nan, dtype=data.dtype)

    # fractional positions relative to cell centres, clamped at the edges
    c = np.clip(cols[inside] - 0.5, 0, width - 1)
    r = np.clip(rows[inside] - 0.5, 0, height - 1)
    c0 = np.minimum(np.floor(c).astype(int), max(width - 2, 0))
    r0 = np.minimum(np.floor(r).astype(int), max(height - 2, 0))
    c1 = np.minimum(c0 + 1, width - 1)
    r1 = np.minimum(r0 + 1, height - 1)
    fc = c - c0
    fr = r - r0

    out[:, inside] = (
        data[:, r0, c0] * (1 - fc) * (1 - fr) +
        data[:, r0, c1] * fc * (1 - fr) +
        data[:, r1, c0] * (1 - fc) * fr +
        data[:, r1, c1] * fc * fr
    )
    return out

@resolve_cube
def extract_points(
    cube: Cube,
    points: Union[str, Path, gpd.GeoDataFrame, Vector],
    method: Literal["nearest", "bilinear"] = "nearest",
    id_column: Optional[str] = None
) -> pl.DataFrame:
    """
    Sample every attribute of a Cube at point locations.

    Args:
        cube (Cube): Source cube.
        points: Point features (path, GeoDataFrame or Vector). Features in
                another CRS are reprojected to the cube's CRS.
        method: 'nearest' reads the containing cell; 'bilinear' interpolates
                between the four surrounding cell centres (NaN if one is missing).
        id_column: Column identifying features. Defaults to the frame index.

    Returns:
        pl.DataFrame: Columns feature_id, <time dimension>, x, y and one per
        attribute. Points outside the cube extent get NaN values.
    """
    if method not in ("nearest", "bilinear"):
        raise CubeValidationError(f"Unknown sampling method '{method}'")

    vector_obj = _prepare_vector(points, cube)
    gdf = vector_obj.data

    if not all(geom is not None and geom.geom_type == "Point" for geom in gdf.geometry):
        raise CubeValidationError("extract_points expects Point geometries; use vector.centroids first")

    xs = gdf.geometry.x.to_numpy(dtype="float64")
    ys = gdf.geometry.y.to_numpy(dtype="float64")

    cols, rows = ~cube.transform * (xs, ys)
    cols = np.asarray(cols, dtype="float64")
    rows = np.asarray(rows, dtype="float64")
    inside = (cols >= 0) & (cols < cube.width) & (rows >= 0) & (rows < cube.height)

    if not inside.all():
        log.debug(f"{int((~inside).sum())} point(s) fall outside the cube extent")

    sampler = _sample_nearest if method == "nearest" else _sample_bilinear
    values = {name: sampler(data, cols, rows, inside) for name, data in cube.attributes.items()}

    log.info(f"Extracted {len(gdf)} point(s) x {cube.ntime} step(s) ({method})")

    return _assemble(cube, _feature_ids(gdf, id_column), values, extra={"x": xs, "y": ys})

@resolve_cube
def zonal_statistics(
    cube: Cube,
    polygons: Union[str, Path, gpd.GeoDataFrame, Vector],
    reducer: Reducer = "mean",
    skip_missing: bool = False,
    id_column: Optional[str] = None,
    all_touched: bool = False,
    progress: bool = False
) -> pl.DataFrame:
    """
    Reduce the cells covered by each polygon, per time step and attribute.

    By default cells are selected when their centre lies inside the polygon;
    a polygon thinner than a cell falls back to every touched cell. Pass
    all_touched=True to reduce over all cells intersecting the polygon. A
    polygon covering no cell yields NaN.

    Args:
        cube (Cube): Source cube.
        polygons: Polygon features (path, GeoDataFrame or Vector). Features in
                  another CRS are reprojected to the cube's CRS.
        reducer: Reducer name ('mean', 'median', 'min', 'max', 'sum', 'std') or callable.
        skip_missing: Exclude NaN cells from the reduction.
        id_column: Column identifying features. Defaults to the frame index.
        all_touched: Use every cell intersecting the polygon instead of the
                     centre-inside selection.
        progress: Display a progress bar over the polygons.

    Returns:
        pl.DataFrame: Columns feature_id, <time dimension> and one per attribute.
    """
    vector_obj = _prepare_vector(polygons, cube)
    vector_obj = validate(vector_obj, fix_invalid=True, drop_invalid=False)
    gdf = vector_obj.data

    func = resolve_reducer(reducer, skip_missing)
    out_shape = (cube.height, cube.width)

    values = {
        name: np.full((cube.ntime, len(gdf)), np.nan, dtype=data.dtype)
        for name, data in cube.attributes.items()
    }

    for position, geom in enumerate(tqdm(gdf.geometry, total=len(gdf), desc="Zonal statistics", disable=not progress)):
        if geom is None or geom.is_empty:
            continue

        mask = geometry_mask([geom], out_shape=out_shape, transform=cube.transform,
                             invert=True, all_touched=all_touched)
        if not all_touched and not np.any(mask):
            mask = geometry_mask([geom], out_shape=out_shape, transform=cube.transform,
                                 invert=True, all_touched=True)
        if not np.any(mask) or cube.ntime == 0:
            continue

        for name, data in cube.attributes.items():
            pixels = data[:, mask]
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", category=RuntimeWarning)
                values[name][:, position] = func(pixels, axis=1)

    log.info(f"Zonal statistics for {len(gdf)} polygon(s) x {cube.ntime} step(s)")

    return _assemble(cube, _feature_ids(gdf, id_column), values)
