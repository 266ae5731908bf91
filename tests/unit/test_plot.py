# tests/unit/test_plot.py

import pytest
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from climatecube.plot import plot_attribute
from climatecube.exceptions import CRSMismatchError

@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")

def test_one_panel_per_step(make_cube):
    fig = plot_attribute(make_cube(), "a")

    assert isinstance(fig, Figure)
    images = [ax for ax in fig.axes if ax.images]
    assert len(images) == 2

def test_shared_colour_scale(make_cube):
    fig = plot_attribute(make_cube(), "a")
    limits = {ax.images[0].get_clim() for ax in fig.axes if ax.images}
    assert len(limits) == 1

def test_max_panels_and_boundary(make_cube, aoi_gdf):
    data = np.ones((6, 8, 10), dtype="float32")
    fig = plot_attribute(make_cube({"a": data}), "a", boundary=aoi_gdf, max_panels=3, ncols=2)

    images = [ax for ax in fig.axes if ax.images]
    assert len(images) == 3

def test_boundary_crs_mismatch(make_cube, aoi_gdf):
    with pytest.raises(CRSMismatchError):
        plot_attribute(make_cube(), "a", boundary=aoi_gdf.to_crs("EPSG:3857"))

def test_unknown_attribute(make_cube):
    with pytest.raises(KeyError):
        plot_attribute(make_cube(), "z")
