# src/climatecube/cube/layer.py

import copy
import logging
from dataclasses import dataclass
from functools import wraps
from pathlib import Path
from typing import Union, Optional, Dict, Tuple, List, Callable, Iterator

import numpy as np
import rasterio
from rasterio.transform import Affine
from rasterio.crs import CRS

from climatecube.exceptions import CubeValidationError

log = logging.getLogger(__name__)

__all__ = ["Dimension", "Cube", "resolve_cube"]

@dataclass(eq=False)
class Dimension:
    """
    Metadata for one axis of a Cube.

    Attributes:
        name: Axis label ('x', 'y', 'time', 'date', ...).
        values: Coordinate value per cell along the axis.
        crs: Coordinate Reference System, only set on spatial axes.
    """
    name: str
    values: np.ndarray
    crs: Optional[CRS] = None

    def __post_init__(self):
        self.values = np.asarray(self.values)
        if self.values.ndim != 1:
            raise CubeValidationError(
                f"Dimension '{self.name}' values must be 1D, got shape {self.values.shape}"
            )

    def __len__(self) -> int:
        return len(self.values)

    @property
    def is_temporal(self) -> bool:
        return np.issubdtype(self.values.dtype, np.datetime64)

    def __repr__(self) -> str:
        if len(self.values) == 0:
            span = "empty"
        else:
            span = f"{self.values[0]}..{self.values[-1]}"
        return f"<Dimension {self.name} n={len(self.values)} [{span}]>"

class Cube:
    """
    The in-memory unit of the climatecube pipeline.

    A Cube is an "Envelope" that keeps several named attributes (bands) on one
    shared grid in sync with their geospatial and temporal metadata:
    1. The 'Heavy' Data: one float array per attribute, shaped (Time, Height, Width).
    2. The 'Light' Context: the affine transform, the CRS and the time axis.

    The dimensions are exposed in (x, y, time) order. Spatial coordinate values
    are the cell centres implied by the transform; the time axis carries
    explicit values which may be placeholders straight after loading.

    Missing values are always NaN.
    """

    def __init__(
        self,
        attributes: Dict[str, np.ndarray],
        transform: Affine,
        crs: Optional[CRS],
        time: Optional[Dimension] = None,
        x_name: str = "x",
        y_name: str = "y"
    ):
        """
        Initialize a Cube.

        Args:
            attributes: Mapping of attribute names to arrays. Arrays must be 2D
                        (Height, Width) or 3D (Time, Height, Width); 2D arrays are
                        promoted to a single time step.
            transform: Geospatial transform of the shared grid.
            crs: Coordinate Reference System of the grid.
            time: Temporal dimension. Defaults to placeholder steps 1..N.
            x_name: Label of the horizontal axis.
            y_name: Label of the vertical axis.

        Raises:
            CubeValidationError: If the attribute shapes disagree or the time
                                 axis length does not match.
        """
        if not isinstance(transform, Affine):
            raise TypeError(f"Transform must be rasterio.Affine, got {type(transform)}")

        if transform.b != 0 or transform.d != 0:
            raise CubeValidationError("Rotated grids are not supported")

        self._attributes = {}
        reference_shape = None

        for name, data in attributes.items():
            data = self._promote(name, data)

            if reference_shape is None:
                reference_shape = data.shape
            elif data.shape != reference_shape:
                raise CubeValidationError(
                    f"Attribute '{name}' has shape {data.shape}, expected {reference_shape}"
                )
            self._attributes[name] = data

        if reference_shape is None:
            raise CubeValidationError("A Cube needs at least one attribute")

        if time is None:
            time = Dimension("time", np.arange(1, reference_shape[0] + 1))

        if len(time) != reference_shape[0]:
            raise CubeValidationError(
                f"Time dimension '{time.name}' has {len(time)} values "
                f"but attributes have {reference_shape[0]} steps"
            )

        self.transform = transform
        self.crs = crs
        self._time = time
        self._x_name = x_name
        self._y_name = y_name

    @staticmethod
    def _promote(name: str, data: np.ndarray) -> np.ndarray:
        if not isinstance(data, np.ndarray):
            raise TypeError(f"Attribute '{name}' must be numpy.ndarray, got {type(data)}")

        if data.ndim == 2:
            data = data[np.newaxis, :, :]

        if data.ndim != 3:
            raise CubeValidationError(
                f"Attribute '{name}' must be 2D or 3D, got shape {data.shape}"
            )

        # NaN is the only missing value marker, so integer grids are promoted
        if not np.issubdtype(data.dtype, np.floating):
            data = data.astype("float32")
        return data

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> 'Cube':
        """Load a single-attribute Cube from disk (see climatecube.cube.io.load)."""
        from .io import load
        return load(path, **kwargs)

    # Dynamic metadata properties

    @property
    def attributes(self) -> Dict[str, np.ndarray]:
        """Ordered mapping of attribute names to (Time, Height, Width) arrays."""
        return self._attributes

    @property
    def names(self) -> List[str]:
        return list(self._attributes)

    @property
    def width(self) -> int:
        return self._first.shape[2]

    @property
    def height(self) -> int:
        return self._first.shape[1]

    @property
    def ntime(self) -> int:
        return self._first.shape[0]

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Returns the (x, y, time) axis lengths."""
        return (self.width, self.height, self.ntime)

    @property
    def resolution(self) -> Tuple[float, float]:
        """Returns the (x, y) cell size in CRS units."""
        return (abs(self.transform.a), abs(self.transform.e))

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Returns (left, bottom, right, top) in CRS units."""
        return rasterio.transform.array_bounds(self.height, self.width, self.transform)

    @property
    def time(self) -> Dimension:
        return self._time

    @property
    def x(self) -> Dimension:
        cols = np.arange(self.width) + 0.5
        values = self.transform.c + cols * self.transform.a
        return Dimension(self._x_name, values, crs=self.crs)

    @property
    def y(self) -> Dimension:
        rows = np.arange(self.height) + 0.5
        values = self.transform.f + rows * self.transform.e
        return Dimension(self._y_name, values, crs=self.crs)

    @property
    def dimensions(self) -> List[Dimension]:
        """Returns the dimension descriptors in (x, y, time) order."""
        return [self.x, self.y, self._time]

    @property
    def _first(self) -> np.ndarray:
        return next(iter(self._attributes.values()))

    def axis_index(self, axis: Union[int, str]) -> int:
        """
        Resolve an axis given by position (0=x, 1=y, 2=time) or by current name.
        """
        if isinstance(axis, str):
            names = [self._x_name, self._y_name, self._time.name]
            if axis not in names:
                raise KeyError(f"Dimension '{axis}' not found in {names}")
            return names.index(axis)

        if not (0 <= axis <= 2):
            raise IndexError(f"Axis index {axis} out of range (0-2)")
        return axis

    def get(self, name: str) -> np.ndarray:
        """
        Retrieve one attribute by name.

        Returns:
            np.ndarray: 3D array (Time, Height, Width).
        """
        if name not in self._attributes:
            raise KeyError(f"Attribute '{name}' not found in {self.names}")
        return self._attributes[name]

    def replace(self, **changes) -> 'Cube':
        """
        Returns a new Cube sharing this one's metadata, with the given fields swapped.

        Accepted keywords: attributes, transform, crs, time, x_name, y_name.
        """
        fields = {
            "attributes": self._attributes,
            "transform": self.transform,
            "crs": self.crs,
            "time": self._time,
            "x_name": self._x_name,
            "y_name": self._y_name
        }
        unknown = set(changes) - set(fields)
        if unknown:
            raise TypeError(f"Unknown Cube fields: {sorted(unknown)}")
        fields.update(changes)
        return Cube(**fields)

    def copy(self) -> 'Cube':
        """Returns a deep copy of the Cube."""
        return Cube(
            attributes={name: data.copy() for name, data in self._attributes.items()},
            transform=copy.deepcopy(self.transform),
            crs=copy.deepcopy(self.crs),
            time=Dimension(self._time.name, self._time.values.copy()),
            x_name=self._x_name,
            y_name=self._y_name
        )

    def summary(self) -> str:
        """One-line description used when logging intermediate results."""
        return (
            f"{len(self)} attribute(s) {self.names} | "
            f"{self._x_name}={self.width} {self._y_name}={self.height} "
            f"{self._time!r} | crs={self.crs}"
        )

    def __len__(self) -> int:
        return len(self._attributes)

    def __contains__(self, name: object) -> bool:
        return name in self._attributes

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    def __repr__(self) -> str:
        return (f"<Cube attributes={self.names} shape={self.shape} "
                f"crs={self.crs} bounds={self.bounds}>")

    def __eq__(self, other: object) -> bool:
        """Checks equality based on metadata and pixel data."""
        if not isinstance(other, Cube):
            return NotImplemented

        meta_eq = (
            self.transform == other.transform and
            self.crs == other.crs and
            self.shape == other.shape and
            self.names == other.names and
            [d.name for d in self.dimensions] == [d.name for d in other.dimensions] and
            np.array_equal(self._time.values, other.time.values)
        )
        if not meta_eq:
            return False

        return all(
            np.array_equal(self._attributes[name], other.attributes[name], equal_nan=True)
            for name in self.names
        )

    __hash__ = None

# Resolve decorator to handle polymorphic inputs

def resolve_cube(func: Callable):
    """
    Decorator: Resolves polymorphic inputs for pipeline functions.

    Ensures that the first argument of the decorated function is always a
    Cube object, regardless of whether the user passed a file path or
    an existing Cube.

    Behavior:
    1. Input is path (str/Path) -> Calls io.load() (Cold Start).
    2. Input is Cube object -> Passes through (Warm Start).
    """
    @wraps(func)
    def wrapper(input_obj: Union[str, Path, Cube], *args, **kwargs):
        if isinstance(input_obj, (str, Path)):
            from .io import load
            try:
                cube = load(input_obj)
            except Exception:
                log.error(f"Auto-loading failed for {input_obj}")
                raise
        elif isinstance(input_obj, Cube):
            cube = input_obj
        else:
            raise TypeError(
                f"Function {func.__name__} expects a file path or Cube object, "
                f"got {type(input_obj).__name__}"
            )

        try:
            return func(cube, *args, **kwargs)
        except Exception as e:
            log.error(f"Pipeline error in {func.__name__}: {e}")
            raise

    return wrapper
