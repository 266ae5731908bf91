# tests/unit/test_vector.py

import pytest
import geopandas as gpd
from shapely.geometry import Point, Polygon

from climatecube.vector import (
    Vector, load_vector, save_vector, to_crs, validate, centroids, from_bounds
)

def test_vector_wraps_geodataframe(aoi_gdf):
    vector = Vector(aoi_gdf)
    assert len(vector) == 1
    assert vector.crs == aoi_gdf.crs
    assert list(vector.bounds) == [10.5, 48.5, 11.5, 49.5]
    assert "name" in vector.columns

    with pytest.raises(TypeError):
        Vector("not a frame")

def test_save_and_load(tmp_path, aoi_gdf):
    path = tmp_path / "aoi" / "aoi.gpkg"
    save_vector(Vector(aoi_gdf), path)

    loaded = load_vector(path)

    assert len(loaded) == 1
    assert loaded.crs.to_epsg() == 4326
    assert loaded.data["name"].iloc[0] == "core"

def test_load_missing():
    with pytest.raises(FileNotFoundError):
        load_vector("nowhere.gpkg")

def test_to_crs(aoi_gdf):
    projected = to_crs(aoi_gdf, "EPSG:3857")
    assert projected.crs.to_epsg() == 3857
    assert aoi_gdf.crs.to_epsg() == 4326

    with pytest.raises(ValueError):
        to_crs(gpd.GeoDataFrame(geometry=[Point(0, 0)]), "EPSG:3857")

def test_validate_fixes_bowtie():
    bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1), (0, 0)])
    gdf = gpd.GeoDataFrame(geometry=[bowtie], crs="EPSG:4326")

    fixed = validate(gdf, fix_invalid=True, drop_invalid=True)

    assert fixed.data.is_valid.all()
    assert not gdf.is_valid.all()

def test_centroids_keep_attributes(aoi_gdf):
    points = centroids(aoi_gdf)
    geom = points.geometry.iloc[0]

    assert geom.geom_type == "Point"
    assert (geom.x, geom.y) == pytest.approx((11.0, 49.0))
    assert points.data["name"].iloc[0] == "core"
    assert points.crs == aoi_gdf.crs

def test_from_bounds():
    aoi = from_bounds((10.5, 48.5, 11.5, 49.5), "EPSG:4326", name="core")
    assert len(aoi) == 1
    assert aoi.data["name"].iloc[0] == "core"
    assert aoi.geometry.iloc[0].area == pytest.approx(1.0)

def test_resolve_rejects_unknown_input():
    with pytest.raises(TypeError):
        centroids(42)
