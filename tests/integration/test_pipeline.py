# tests/integration/test_pipeline.py

import pytest
import numpy as np
import geopandas as gpd
import matplotlib.pyplot as plt
from shapely.geometry import box

from climatecube import cube, vector, extract
from climatecube.cli import main
from climatecube.config import PipelineConfig
from climatecube.pipeline import run_pipeline
from helpers import assert_bounds_within

HOURS = 72

@pytest.fixture
def inputs(tmp_path, grid_factory):
    """
    Two 3-day hourly grids without time metadata plus a projected area of interest.
    """
    t2m = np.full((HOURS, 8, 10), 4.0, dtype="float32")
    d2m = np.full((HOURS, 8, 10), 2.0, dtype="float32")
    first = grid_factory("t2m.tif", data=t2m)
    second = grid_factory("d2m.tif", data=d2m)

    aoi = gpd.GeoDataFrame(
        {'name': ['core']},
        geometry=[box(10.5, 48.5, 11.5, 49.5)],
        crs="EPSG:4326"
    ).to_crs("EPSG:3857")
    aoi_path = tmp_path / "aoi.gpkg"
    aoi.to_file(aoi_path, driver="GPKG")

    return first, second, aoi_path

@pytest.fixture
def config(inputs):
    first, second, aoi_path = inputs
    return PipelineConfig(
        first_path=first,
        second_path=second,
        aoi_path=aoi_path,
        start="2020-01-01T00:00:00",
        end="2020-01-03T23:00:00",
        until="2020-01-02"
    )

def test_walkthrough_step_by_step(inputs):
    """
    Mirrors run_pipeline() with the public API:
    load -> merge -> relabel -> ratio -> daily mean -> filter -> warp -> crop -> extract.
    """
    first, second, aoi_path = inputs

    loaded = cube.load_many([first, second])
    assert [c.names for c in loaded] == [["t2m.tif"], ["d2m.tif"]]
    assert loaded[0].time.values[-1] == HOURS

    merged = cube.merge(loaded)
    assert merged.names == ["t2m", "d2m"]

    hourly = cube.hourly_sequence("2020-01-01T00:00", "2020-01-03T23:00")
    dated = cube.set_dimension(merged, "time", values=hourly)
    assert dated.time.is_temporal

    derived = cube.ratio(dated, "t2m", "d2m")
    daily = cube.aggregate_time(derived, by="day")
    assert daily.ntime == 3
    assert np.allclose(daily.get("ratio"), 2.0)

    threshold = np.datetime64("2020-01-02")
    week = cube.filter_dimension(daily, "date", lambda d: d <= threshold)
    assert week.ntime == 2

    aoi = vector.load_vector(aoi_path)
    warped = cube.reproject(week, cube.build_template(week, aoi.crs))
    assert warped.crs.to_epsg() == 3857

    cropped = cube.crop(warped, aoi)
    # only floating-point slack, far below one cell
    assert_bounds_within(cropped.bounds, aoi.bounds, tolerance=1e-6)

    table = extract.zonal_statistics(cropped, aoi, skip_missing=True)
    assert table["ratio"].to_list() == pytest.approx([2.0, 2.0], rel=1e-4)

def test_run_pipeline_keeps_metadata(config):
    result = run_pipeline(config)

    assert result.merged.names == ["t2m", "d2m"]
    assert result.dated.ntime == HOURS
    assert result.derived.names == ["t2m", "d2m", "ratio"]

    assert result.aggregated.time.name == "date"
    assert list(result.aggregated.time.values) == [
        np.datetime64("2020-01-01"), np.datetime64("2020-01-02"), np.datetime64("2020-01-03")
    ]
    assert result.filtered.ntime == 2

    for step in (result.reprojected, result.cropped):
        assert step.names == ["t2m", "d2m", "ratio"]
        assert step.time.name == "date"
        assert np.array_equal(step.time.values, result.filtered.time.values)
        assert step.crs == result.template.crs

    assert result.cropped.width < result.reprojected.width
    assert_bounds_within(result.cropped.bounds, result.aoi.bounds, tolerance=1e-6)

def test_run_pipeline_tables(config):
    result = run_pipeline(config)

    points, zonal = result.points, result.zonal
    assert points.columns == ["feature_id", "date", "x", "y", "t2m", "d2m", "ratio"]
    assert zonal.columns == ["feature_id", "date", "t2m", "d2m", "ratio"]
    assert points.height == zonal.height == 2

    assert points["t2m"].to_list() == pytest.approx([4.0, 4.0], rel=1e-4)
    assert points["ratio"].to_list() == pytest.approx([2.0, 2.0], rel=1e-4)
    assert zonal["d2m"].to_list() == pytest.approx([2.0, 2.0], rel=1e-4)

def test_run_pipeline_writes_outputs(inputs, tmp_path):
    first, second, aoi_path = inputs
    out_dir = tmp_path / "out"
    config = PipelineConfig(
        first_path=first,
        second_path=second,
        aoi_path=aoi_path,
        names=("temp", "dew"),
        end="2020-01-03T23:00:00",
        until="2020-01-03",
        output_dir=out_dir,
        plot=True
    )

    result = run_pipeline(config)

    names = sorted(p.name for p in result.written)
    assert names == sorted([
        "temp.tif", "dew.tif", "ratio.tif", "points.csv", "zonal.csv",
        "temp_cropped.png", "dew_cropped.png", "ratio_cropped.png",
        "temp_reprojected.png", "dew_reprojected.png", "ratio_reprojected.png"
    ])
    assert all(p.exists() for p in result.written)
    # saved figures are released from pyplot
    assert not any(plt.fignum_exists(fig.number) for fig in result.figures.values())

    reloaded = cube.load(out_dir / "cropped" / "ratio.tif")
    assert reloaded.ntime == 3
    assert reloaded.time.is_temporal
    assert reloaded.crs.to_epsg() == 3857

def test_cli_prints_tables(inputs, capsys):
    first, second, aoi_path = inputs

    code = main([
        str(first), str(second), str(aoi_path),
        "--end", "2020-01-03T23:00:00",
        "--until", "2020-01-02"
    ])

    assert code == 0
    out = capsys.readouterr().out
    assert "Point extraction" in out
    assert "Zonal statistics" in out

def test_cli_reports_wrong_hour_count(inputs):
    first, second, aoi_path = inputs

    # January has 744 hours, the files only 72
    code = main([str(first), str(second), str(aoi_path)])

    assert code == 1

def test_cli_missing_input(inputs, tmp_path):
    _, second, aoi_path = inputs
    assert main([str(tmp_path / "ghost.nc"), str(second), str(aoi_path)]) == 1

def test_cli_corrupt_input(inputs, tmp_path):
    _, second, aoi_path = inputs
    bogus = tmp_path / "broken.nc"
    bogus.write_bytes(b"not a grid")

    assert main([str(bogus), str(second), str(aoi_path)]) == 1
