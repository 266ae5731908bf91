# src/climatecube/cube/ops.py

"""
This module provides the structural operations on cubes: merging attributes,
relabelling dimensions, filtering along an axis and typed indexing.
"""

import logging
from typing import Union, List, Optional, Sequence, Callable

import numpy as np
from rasterio.transform import Affine
from rasterio.windows import Window, transform as window_transform

from climatecube.exceptions import CubeValidationError, CRSMismatchError
from .layer import Cube, Dimension, resolve_cube
from .utils import normalize_name, regular_step

log = logging.getLogger(__name__)

__all__ = [
    "merge",
    "set_dimension",
    "filter_dimension",
    "select_attribute",
    "select_dimension"
]

def merge(cubes: Sequence[Cube], names: Optional[Sequence[str]] = None) -> Cube:
    """
    Combines several Cubes into one multi-attribute Cube.

    All inputs must share the same (x, y, time) shape and CRS. The grid and the
    time dimension of the first Cube are kept.

    Args:
        cubes: Cubes to combine, in output attribute order.
        names: Optional explicit attribute names. When omitted, existing names
               are normalised by stripping file-extension suffixes.

    Returns:
        Cube: A single Cube holding every input attribute.

    Raises:
        CubeValidationError: On shape mismatch or duplicate attribute names.
        CRSMismatchError: If the inputs disagree on CRS.
    """
    if not cubes:
        raise CubeValidationError("Cannot merge an empty list of cubes.")

    ref = cubes[0]
    for idx, cube in enumerate(cubes[1:], start=1):
        if cube.shape != ref.shape:
            raise CubeValidationError(
                f"Shape mismatch in cube {idx}: {cube.shape} != {ref.shape}"
            )
        if cube.crs != ref.crs:
            raise CRSMismatchError(f"CRS mismatch in cube {idx}: {cube.crs} != {ref.crs}")
        if not np.allclose(np.array(cube.transform), np.array(ref.transform), atol=1e-9):
            log.warning(f"Cube {idx} has a different transform; using the first cube's grid")

    arrays = [data for cube in cubes for data in cube.attributes.values()]

    if names is None:
        new_names = [normalize_name(name) for cube in cubes for name in cube.names]
    else:
        new_names = list(names)
        if len(new_names) != len(arrays):
            raise CubeValidationError(
                f"Got {len(new_names)} names for {len(arrays)} attributes"
            )

    duplicates = sorted({n for n in new_names if new_names.count(n) > 1})
    if duplicates:
        raise CubeValidationError(f"Duplicate attribute names after merge: {duplicates}")

    log.info(f"Merged {len(cubes)} cubes into attributes {new_names}")

    return ref.replace(attributes=dict(zip(new_names, arrays)))

@resolve_cube
def set_dimension(
    cube: Cube,
    axis: Union[int, str],
    name: Optional[str] = None,
    values: Optional[Sequence] = None
) -> Cube:
    """
    Replace the label and/or the coordinate values of one dimension.

    Used to correct metadata the loader could not recover, e.g. to swap the
    placeholder time steps for the known acquisition timestamps.

    Args:
        cube: Input Cube (left untouched).
        axis: Axis position (0=x, 1=y, 2=time) or its current name.
        name: New axis label. Keeps the current label when None.
        values: New coordinate values, same length as the axis. Spatial values
                must be regularly spaced cell centres.

    Returns:
        Cube: A new Cube with the relabelled dimension.

    Raises:
        CubeValidationError: If the number of values differs from the axis length.
    """
    idx = cube.axis_index(axis)
    current = cube.dimensions[idx]
    new_name = name or current.name

    if values is None:
        new_values = current.values
    else:
        new_values = np.asarray(values)
        if len(new_values) != len(current):
            raise CubeValidationError(
                f"Dimension '{current.name}' has length {len(current)}, "
                f"got {len(new_values)} new values"
            )

    log.debug(f"Relabelling dimension '{current.name}' -> '{new_name}'")

    if idx == 2:
        return cube.replace(time=Dimension(new_name, new_values))

    transform = cube.transform
    if values is not None:
        if len(new_values) > 1:
            step = regular_step(new_values, label=f"Dimension '{current.name}'")
        else:
            step = transform.a if idx == 0 else transform.e
        origin = float(new_values[0]) - step / 2

        if idx == 0:
            transform = Affine(step, 0.0, origin, 0.0, transform.e, transform.f)
        else:
            transform = Affine(transform.a, 0.0, transform.c, 0.0, step, origin)

    if idx == 0:
        return cube.replace(transform=transform, x_name=new_name)
    return cube.replace(transform=transform, y_name=new_name)

@resolve_cube
def select_attribute(cube: Cube, names: Union[str, Sequence[str]]) -> Cube:
    """
    Subset (and reorder) the attributes of a Cube by name.
    """
    if isinstance(names, str):
        names = [names]

    missing = [n for n in names if n not in cube]
    if missing:
        raise KeyError(f"Attributes {missing} not found in {cube.names}")

    return cube.replace(attributes={n: cube.get(n) for n in names})

@resolve_cube
def select_dimension(
    cube: Cube,
    axis: Union[int, str],
    index: Union[int, slice, Sequence[int]]
) -> Cube:
    """
    Positional selection along one dimension.

    An integer keeps the axis with a single cell. The time axis also accepts a
    sequence of positions; spatial axes only accept contiguous slices so that
    the grid remains affine.

    Args:
        cube: Input Cube.
        axis: Axis position (0=x, 1=y, 2=time) or its name.
        index: Position, slice or (time only) list of positions.

    Returns:
        Cube: A new Cube with the reduced axis.
    """
    idx = cube.axis_index(axis)
    length = cube.shape[idx]

    if isinstance(index, (int, np.integer)):
        position = int(index)
        if position < 0:
            position += length
        if not (0 <= position < length):
            raise IndexError(f"Position {index} out of range for axis of length {length}")
        index = slice(position, position + 1)

    if idx == 2:
        time = cube.time
        selector = index if isinstance(index, slice) else np.asarray(index, dtype=int)
        return cube.replace(
            attributes={n: data[selector].copy() for n, data in cube.attributes.items()},
            time=Dimension(time.name, time.values[selector])
        )

    if not isinstance(index, slice):
        raise CubeValidationError("Spatial axes only accept integer or slice selections")

    start, stop, step = index.indices(length)
    if step != 1:
        raise CubeValidationError("Spatial slices must have a step of 1")
    stop = max(start, stop)

    if idx == 0:
        window = Window(col_off=start, row_off=0, width=stop - start, height=cube.height)
    else:
        window = Window(col_off=0, row_off=start, width=cube.width, height=stop - start)

    row_slice, col_slice = window.toslices()

    return cube.replace(
        attributes={n: data[:, row_slice, col_slice].copy() for n, data in cube.attributes.items()},
        transform=window_transform(window, cube.transform)
    )

@resolve_cube
def filter_dimension(
    cube: Cube,
    axis: Union[int, str],
    predicate: Callable[[np.ndarray], np.ndarray]
) -> Cube:
    """
    Keep only the slices whose coordinate values satisfy a predicate.

    Args:
        cube: Input Cube (left untouched).
        axis: Axis position (0=x, 1=y, 2=time) or its name.
        predicate: Vectorised test applied to the axis coordinate values,
                   e.g. ``lambda d: d <= np.datetime64("2020-01-07")``.

    Returns:
        Cube: A new Cube with a reduced axis; other axes and attributes unchanged.
    """
    idx = cube.axis_index(axis)
    dimension = cube.dimensions[idx]

    mask = np.asarray(predicate(dimension.values), dtype=bool)
    if mask.shape != dimension.values.shape:
        raise CubeValidationError(
            f"Predicate returned shape {mask.shape}, expected {dimension.values.shape}"
        )

    positions = np.flatnonzero(mask)
    log.info(f"Filter on '{dimension.name}' keeps {positions.size}/{len(dimension)} slices")

    if idx == 2:
        return select_dimension(cube, idx, positions)

    if positions.size == 0:
        return select_dimension(cube, idx, slice(0, 0))

    if np.any(np.diff(positions) != 1):
        raise CubeValidationError(
            f"Filtering spatial dimension '{dimension.name}' must keep a contiguous run of cells"
        )
    return select_dimension(cube, idx, slice(int(positions[0]), int(positions[-1]) + 1))
