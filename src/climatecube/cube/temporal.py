# src/climatecube/cube/temporal.py

"""
This module reduces the time dimension of a cube to a coarser calendar granularity.
"""

import logging
import warnings
from typing import Union, Optional, Callable

import numpy as np

from climatecube.exceptions import CubeValidationError
from .layer import Cube, Dimension, resolve_cube
from .utils import truncate_times

log = logging.getLogger(__name__)

__all__ = [
    "REDUCERS",
    "resolve_reducer",
    "aggregate_time"
]

REDUCERS = {
    "mean": (np.mean, np.nanmean),
    "median": (np.median, np.nanmedian),
    "min": (np.min, np.nanmin),
    "max": (np.max, np.nanmax),
    "sum": (np.sum, np.nansum),
    "std": (np.std, np.nanstd)
}

Reducer = Union[str, Callable[..., np.ndarray]]

def resolve_reducer(reducer: Reducer, skip_missing: bool = False) -> Callable[..., np.ndarray]:
    """
    Map a reducer name to its numpy function; callables pass through unchanged.

    With skip_missing the NaN-ignoring variant is returned. Note that
    ``nansum`` of an all-missing group is 0, as numpy defines it.
    """
    if callable(reducer):
        return reducer
    if reducer not in REDUCERS:
        raise CubeValidationError(f"Unknown reducer '{reducer}', expected one of {list(REDUCERS)}")
    strict, lenient = REDUCERS[reducer]
    return lenient if skip_missing else strict

@resolve_cube
def aggregate_time(
    cube: Cube,
    by: str = "day",
    reducer: Reducer = "mean",
    skip_missing: bool = False,
    name: Optional[str] = None
) -> Cube:
    """
    Reduce every attribute to one value per calendar group.

    Groups are formed by truncating the timestamps to the granularity and are
    returned in ascending order. The time dimension is relabelled with the
    group keys.

    Args:
        cube: Input Cube with timestamp values on its time dimension.
        by: Granularity: 'hour', 'day', 'month' or 'year'.
        reducer: Reducer name ('mean', 'median', 'min', 'max', 'sum', 'std')
                 or a callable accepting ``(array, axis=0)``.
        skip_missing: Ignore NaN cells inside a group. When False any NaN in
                      a group makes the result NaN.
        name: Label of the new dimension. Defaults to 'date' for daily
              groups, otherwise the current label is kept.

    Returns:
        Cube: A new Cube with one time step per group.
    """
    keys = truncate_times(cube.time.values, by)
    groups, inverse = np.unique(keys, return_inverse=True)
    func = resolve_reducer(reducer, skip_missing)

    log.info(
        f"Aggregating {cube.ntime} steps into {len(groups)} '{by}' groups "
        f"({getattr(func, '__name__', func)})"
    )

    attributes = {}
    for attr_name, data in cube.attributes.items():
        reduced = np.empty((len(groups), cube.height, cube.width), dtype=data.dtype)
        for g in range(len(groups)):
            with warnings.catch_warnings():
                # all-NaN groups legitimately reduce to NaN
                warnings.simplefilter("ignore", category=RuntimeWarning)
                reduced[g] = func(data[inverse == g], axis=0)
        attributes[attr_name] = reduced

    if name is None:
        name = "date" if by == "day" else cube.time.name

    return cube.replace(attributes=attributes, time=Dimension(name, groups))
