# src/climatecube/vector/io.py

"""
This module provides functions for reading and writing vector data (points, polygons) using GeoPandas.
"""

from pathlib import Path
from typing import Union, Callable, Any
from functools import wraps
import logging

import geopandas as gpd

from climatecube.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = [
    "load_vector",
    "save_vector",
    "resolve_vector"
]

def load_vector(path: Union[str, Path], engine: str = "pyogrio", **kwargs) -> Vector:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Vector file not found: {path}")

    gdf = gpd.read_file(path, engine=engine, **kwargs)
    log.debug(f"Loaded {len(gdf)} features from {path.name} (crs={gdf.crs})")
    return Vector(gdf)

def save_vector(vector: Vector, path: Union[str, Path], driver: str = None, engine: str = "pyogrio", **kwargs):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    vector.data.to_file(path, driver=driver, engine=engine, **kwargs)

def resolve_vector(func: Callable):
    """
    Decorator: accepts a path, a GeoDataFrame or a Vector as first argument
    and hands the wrapped function a Vector.
    """
    @wraps(func)
    def wrapper(input_obj: Union[str, Path, gpd.GeoDataFrame, Vector], *args: Any, **kwargs: Any):
        if isinstance(input_obj, (str, Path)):
            vector_obj = load_vector(input_obj)
        elif isinstance(input_obj, gpd.GeoDataFrame):
            vector_obj = Vector(input_obj)
        elif isinstance(input_obj, Vector):
            vector_obj = input_obj
        else:
            raise TypeError(f"Expected file path, GeoDataFrame or Vector object, got {type(input_obj)}")

        return func(vector_obj, *args, **kwargs)
    return wrapper
