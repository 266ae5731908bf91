# tests/conftest.py

import matplotlib
matplotlib.use("Agg")

import pytest
import numpy as np
import geopandas as gpd
from shapely.geometry import box
import rasterio
from rasterio.transform import Affine
from rasterio.crs import CRS

from climatecube.cube import Cube, Dimension

# 10 x 8 cells of 0.25 degrees covering lon 10..12.5, lat 48..50
GRID_TRANSFORM = Affine(0.25, 0.0, 10.0, 0.0, -0.25, 50.0)
GRID_WIDTH = 10
GRID_HEIGHT = 8

@pytest.fixture
def grid_transform():
    return GRID_TRANSFORM

@pytest.fixture
def grid_factory(tmp_path):
    """
    Fixture: Returns a function writing synthetic multi-band GeoTIFFs where
    every band is one time step.
    """
    def _factory(
        filename,
        data=None,
        count=3,
        crs="EPSG:4326",
        nodata=None,
        descriptions=None,
        transform=GRID_TRANSFORM,
        dtype="float32"
    ):
        if data is None:
            data = np.arange(count * GRID_HEIGHT * GRID_WIDTH, dtype=dtype).reshape(
                count, GRID_HEIGHT, GRID_WIDTH
            )
        data = np.asarray(data, dtype=dtype)

        profile = {
            'driver': 'GTiff',
            'height': data.shape[1],
            'width': data.shape[2],
            'count': data.shape[0],
            'dtype': dtype,
            'transform': transform,
            'nodata': nodata
        }
        if crs is not None:
            profile['crs'] = CRS.from_user_input(crs)

        path = tmp_path / filename
        with rasterio.open(path, 'w', **profile) as dst:
            dst.write(data)
            if descriptions:
                for idx, desc in enumerate(descriptions, start=1):
                    dst.set_band_description(idx, desc)
        return path

    return _factory

@pytest.fixture
def make_cube():
    """
    Fixture: Returns a function building in-memory Cubes on the test grid.
    """
    def _factory(attributes=None, times=None, crs="EPSG:4326", transform=GRID_TRANSFORM, time_name="time"):
        if attributes is None:
            attributes = {
                "a": np.arange(2 * GRID_HEIGHT * GRID_WIDTH, dtype="float32").reshape(2, GRID_HEIGHT, GRID_WIDTH)
            }
        ntime = next(iter(attributes.values())).shape[0]
        if times is None:
            times = np.arange(1, ntime + 1)
        return Cube(
            attributes=attributes,
            transform=transform,
            crs=CRS.from_user_input(crs) if crs else None,
            time=Dimension(time_name, times)
        )

    return _factory

@pytest.fixture
def hourly_times():
    """Two days of hourly timestamps."""
    return np.arange(
        np.datetime64("2020-01-01T00:00:00"),
        np.datetime64("2020-01-03T00:00:00"),
        np.timedelta64(1, "h")
    )

@pytest.fixture
def aoi_gdf():
    """Grid-aligned square area of interest in the grid CRS (4x4 cells)."""
    return gpd.GeoDataFrame(
        {'name': ['core'], 'geometry': [box(10.5, 48.5, 11.5, 49.5)]},
        crs="EPSG:4326"
    )
