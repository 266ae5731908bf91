# tests/helpers.py

import numpy as np
from climatecube.cube import Cube

def assert_grid_match(c1: Cube, c2: Cube):
    """Strictly verify two cubes share the exact same grid."""
    assert c1.crs == c2.crs, \
        f"CRS mismatch: {c1.crs} != {c2.crs}"

    assert c1.shape == c2.shape, \
        f"Shape mismatch: {c1.shape} != {c2.shape}"

    assert np.allclose(np.array(c1.transform), np.array(c2.transform), atol=1e-9), \
        "Transform mismatch (Pixel alignment error)"

def assert_bounds_within(inner, outer, tolerance: float = 0.0):
    """Check that (left, bottom, right, top) bounds nest, allowing a margin."""
    il, ib, ir, it = inner
    ol, ob, orr, ot = outer
    assert il >= ol - tolerance, f"left {il} < {ol}"
    assert ib >= ob - tolerance, f"bottom {ib} < {ob}"
    assert ir <= orr + tolerance, f"right {ir} > {orr}"
    assert it <= ot + tolerance, f"top {it} > {ot}"
