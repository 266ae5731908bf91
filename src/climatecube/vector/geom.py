# src/climatecube/vector/geom.py

"""
This module provides geometric operations on vector data: reprojection,
validation, centroids and bounding-box areas of interest.
"""

from typing import Sequence
import logging
import warnings

import geopandas as gpd
from shapely.geometry import box

from climatecube.vector.layer import Vector
from climatecube.vector.io import resolve_vector

log = logging.getLogger(__name__)

__all__ = [
    "to_crs",
    "validate",
    "centroids",
    "from_bounds"
]

@resolve_vector
def to_crs(vector: Vector, target_crs, inplace: bool = False) -> Vector:
    if vector.crs is None:
        raise ValueError("Vector has no CRS. Cannot reproject.")

    new_gdf = vector.data.to_crs(target_crs)

    if inplace:
        vector.data = new_gdf
        return vector
    return Vector(new_gdf)

@resolve_vector
def validate(vector: Vector, fix_invalid: bool = True, drop_invalid: bool = True, inplace: bool = False) -> Vector:
    gdf = vector.data if inplace else vector.data.copy()
    invalid_mask = ~gdf.is_valid

    if not invalid_mask.any():
        return vector if inplace else Vector(gdf)

    log.warning(f"{int(invalid_mask.sum())} invalid geometries found")

    if fix_invalid:
        gdf.loc[invalid_mask, 'geometry'] = gdf.loc[invalid_mask, 'geometry'].buffer(0)
        still_invalid = ~gdf.is_valid

        if still_invalid.any() and drop_invalid:
            gdf = gdf[gdf.is_valid]
    elif drop_invalid:
        gdf = gdf[gdf.is_valid]

    if inplace:
        vector.data = gdf
        return vector
    return Vector(gdf)

@resolve_vector
def centroids(vector: Vector) -> Vector:
    """
    Replace every geometry by its centroid, keeping the attribute columns.

    Centroids are computed in the vector's own CRS.
    """
    gdf = vector.data.copy()
    with warnings.catch_warnings():
        # geopandas warns about centroids in geographic CRSs
        warnings.simplefilter("ignore", category=UserWarning)
        gdf["geometry"] = gdf.geometry.centroid
    return Vector(gdf.set_geometry("geometry"))

def from_bounds(bounds: Sequence[float], crs, **attributes) -> Vector:
    """
    Build a single-polygon area of interest from (minx, miny, maxx, maxy).
    """
    columns = {key: [value] for key, value in attributes.items()}
    gdf = gpd.GeoDataFrame(columns, geometry=[box(*bounds)], crs=crs)
    return Vector(gdf)
