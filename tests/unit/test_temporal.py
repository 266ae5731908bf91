# tests/unit/test_temporal.py

import pytest
import numpy as np

from climatecube.cube import aggregate_time, resolve_reducer, truncate_times
from climatecube.exceptions import CubeValidationError

@pytest.fixture
def hourly_cube(make_cube, hourly_times):
    # day one holds 0..23, day two holds 100..123
    values = np.concatenate([np.arange(24), 100 + np.arange(24)]).astype("float32")
    data = values[:, None, None] * np.ones((48, 8, 10), dtype="float32")
    return make_cube({"a": data}, times=hourly_times)

def test_daily_mean(hourly_cube):
    daily = aggregate_time(hourly_cube, by="day", reducer="mean")

    assert daily.ntime == 2
    assert daily.time.name == "date"
    assert list(daily.time.values) == [np.datetime64("2020-01-01"), np.datetime64("2020-01-02")]
    assert np.allclose(daily.get("a")[0], 11.5)
    assert np.allclose(daily.get("a")[1], 111.5)

@pytest.mark.parametrize("reducer, expected", [
    ("min", (0.0, 100.0)),
    ("max", (23.0, 123.0)),
    ("sum", (276.0, 2676.0)),
    ("median", (11.5, 111.5))
])
def test_named_reducers(hourly_cube, reducer, expected):
    daily = aggregate_time(hourly_cube, reducer=reducer)
    assert daily.get("a")[0, 0, 0] == pytest.approx(expected[0])
    assert daily.get("a")[1, 0, 0] == pytest.approx(expected[1])

def test_callable_reducer(hourly_cube):
    daily = aggregate_time(hourly_cube, reducer=lambda a, axis: np.ptp(a, axis=axis))
    assert np.allclose(daily.get("a"), 23.0)

def test_missing_values_propagate_unless_skipped(hourly_cube):
    hourly_cube.get("a")[3, 0, 0] = np.nan

    strict = aggregate_time(hourly_cube, skip_missing=False)
    lenient = aggregate_time(hourly_cube, skip_missing=True)

    assert np.isnan(strict.get("a")[0, 0, 0])
    assert not np.isnan(strict.get("a")[1, 0, 0])
    expected = (np.arange(24).sum() - 3) / 23
    assert lenient.get("a")[0, 0, 0] == pytest.approx(expected)

def test_all_missing_group_stays_missing(hourly_cube):
    hourly_cube.get("a")[:24, 2, 2] = np.nan
    daily = aggregate_time(hourly_cube, skip_missing=True)
    assert np.isnan(daily.get("a")[0, 2, 2])

def test_grid_and_attributes_preserved(hourly_cube):
    daily = aggregate_time(hourly_cube, by="month", name="month")
    assert daily.ntime == 1
    assert daily.time.name == "month"
    assert daily.transform == hourly_cube.transform
    assert daily.crs == hourly_cube.crs
    assert daily.names == hourly_cube.names

def test_placeholder_time_rejected(make_cube):
    with pytest.raises(CubeValidationError):
        aggregate_time(make_cube(), by="day")

def test_unknown_reducer_and_granularity(hourly_cube):
    with pytest.raises(CubeValidationError):
        resolve_reducer("mode")
    with pytest.raises(CubeValidationError):
        aggregate_time(hourly_cube, by="week")

def test_truncate_times():
    values = np.array(["2020-01-31T23:00", "2020-02-01T00:00"], dtype="datetime64[s]")
    assert list(truncate_times(values, "month")) == [np.datetime64("2020-01"), np.datetime64("2020-02")]
    assert resolve_reducer("mean", skip_missing=True) is np.nanmean
