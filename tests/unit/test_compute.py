# tests/unit/test_compute.py

import pytest
import numpy as np

from climatecube.cube import compute_attribute, ratio
from climatecube.exceptions import CubeValidationError

@pytest.fixture
def pair(make_cube):
    t2m = np.full((2, 8, 10), 4.0, dtype="float32")
    d2m = np.full((2, 8, 10), 2.0, dtype="float32")
    return make_cube({"t2m": t2m, "d2m": d2m})

def test_ratio_appends_attribute(pair):
    result = ratio(pair, "d2m", "t2m")

    assert result.names == ["t2m", "d2m", "ratio"]
    assert result.shape == pair.shape
    assert np.allclose(result.get("ratio"), 0.5)
    assert "ratio" not in pair

def test_ratio_matches_cellwise_division(make_cube):
    rng = np.random.default_rng(0)
    a = rng.uniform(1, 10, (3, 8, 10)).astype("float32")
    b = rng.uniform(1, 10, (3, 8, 10)).astype("float32")

    result = ratio(make_cube({"a": a, "b": b}), "a", "b", name="q")

    assert np.allclose(result.get("q"), a / b, rtol=1e-6)

def test_division_by_zero_becomes_missing(pair):
    pair.get("t2m")[0, 0, 0] = 0.0
    pair.get("d2m")[1, 1, 1] = np.nan

    result = ratio(pair, "d2m", "t2m")
    values = result.get("ratio")

    assert np.isnan(values[0, 0, 0])
    assert np.isnan(values[1, 1, 1])
    assert not np.any(np.isinf(values))
    assert np.isfinite(values).sum() == values.size - 2

def test_expression(pair):
    result = compute_attribute(pair, "spread", "t2m - d2m")
    assert np.allclose(result.get("spread"), 2.0)

def test_unknown_attribute(pair):
    with pytest.raises(KeyError):
        ratio(pair, "tp", "t2m")

def test_existing_name(pair):
    with pytest.raises(CubeValidationError):
        compute_attribute(pair, "t2m", "d2m * 2")

def test_ratio_accepts_names_that_are_not_identifiers(make_cube):
    cube = make_cube({
        "2m-temperature": np.full((2, 8, 10), 6.0, dtype="float32"),
        "dewpoint": np.full((2, 8, 10), 3.0, dtype="float32")
    })

    result = ratio(cube, "2m-temperature", "dewpoint")

    assert result.names == ["2m-temperature", "dewpoint", "ratio"]
    assert np.allclose(result.get("ratio"), 2.0)

def test_expression_with_non_identifier_name(make_cube):
    cube = make_cube({"2m-temperature": np.ones((2, 8, 10), dtype="float32")})
    with pytest.raises(CubeValidationError):
        compute_attribute(cube, "double", "2m-temperature * 2")

def test_unparsable_expression(pair):
    with pytest.raises(CubeValidationError):
        compute_attribute(pair, "bad", "t2m + ")
