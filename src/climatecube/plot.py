# src/climatecube/plot.py

"""
This module renders cube attributes as small-multiple maps, one panel per time step.
"""

import logging
import math
from typing import Optional, Union

import numpy as np
import geopandas as gpd
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from climatecube.cube.layer import Cube, resolve_cube
from climatecube.cube.geom import as_crs
from climatecube.exceptions import CRSMismatchError
from climatecube.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = ["plot_attribute"]

@resolve_cube
def plot_attribute(
    cube: Cube,
    name: str,
    boundary: Optional[Union[Vector, gpd.GeoDataFrame]] = None,
    max_panels: Optional[int] = None,
    ncols: int = 4,
    cmap: str = "viridis",
    panel_size: float = 3.0
) -> Figure:
    """
    Plot one attribute with a shared colour scale, one panel per time step.

    Nothing is displayed or written; the caller decides what to do with the figure.

    Args:
        cube: Source cube.
        name: Attribute to draw.
        boundary: Optional vector outline drawn on every panel (must share the cube CRS).
        max_panels: Draw only the first N time steps.
        ncols: Panels per row.
        cmap: Matplotlib colormap name.
        panel_size: Edge length of each panel in inches.

    Returns:
        Figure: The matplotlib figure.
    """
    data = cube.get(name)
    steps = cube.ntime if max_panels is None else min(cube.ntime, max_panels)
    steps = max(steps, 1)

    if boundary is not None:
        outline = boundary.data if isinstance(boundary, Vector) else boundary
        if as_crs(outline.crs) != cube.crs:
            raise CRSMismatchError(f"Boundary CRS {outline.crs} does not match cube CRS {cube.crs}")
    else:
        outline = None

    ncols = min(ncols, steps)
    nrows = math.ceil(steps / ncols)
    fig, axes = plt.subplots(
        nrows, ncols,
        figsize=(panel_size * ncols, panel_size * nrows),
        squeeze=False,
        sharex=True,
        sharey=True
    )

    finite = data[:steps][np.isfinite(data[:steps])]
    vmin, vmax = (float(finite.min()), float(finite.max())) if finite.size else (0.0, 1.0)

    left, bottom, right, top = cube.bounds
    extent = (left, right, bottom, top)

    image = None
    for idx, ax in enumerate(axes.flat):
        if idx >= steps or idx >= cube.ntime:
            ax.set_axis_off()
            continue

        image = ax.imshow(data[idx], extent=extent, origin="upper", cmap=cmap, vmin=vmin, vmax=vmax)
        if outline is not None:
            outline.boundary.plot(ax=ax, color="black", linewidth=0.8)
        ax.set_title(str(cube.time.values[idx]), fontsize=9)

    if image is not None:
        cbar = fig.colorbar(image, ax=axes.ravel().tolist(), fraction=0.046, pad=0.04)
        cbar.set_label(name)

    fig.suptitle(f"{name} ({cube.time.name})")
    log.debug(f"Plotted {steps} panel(s) of '{name}'")
    return fig
