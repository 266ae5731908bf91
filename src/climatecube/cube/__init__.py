# src/climatecube/cube/__init__.py
#
# Copyright (c) The climatecube project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The cube subpackage provides core functionality for handling gridded
(x, y, time) data, including I/O, merging and relabelling of dimensions,
band arithmetic, temporal aggregation and geometry operations.
"""
# Core data structure
from .layer import (
    Cube,
    Dimension,
    resolve_cube
)

# I/O operations
from .io import (
    load,
    load_many,
    save,
    read_info
)

# Resource management
from .resources import (
    MemoryEstimate,
    estimate_memory
)

# Structural operations
from .ops import (
    merge,
    set_dimension,
    filter_dimension,
    select_attribute,
    select_dimension
)

# Band arithmetic
from .compute import (
    compute_attribute,
    ratio
)

# Temporal aggregation
from .temporal import (
    REDUCERS,
    resolve_reducer,
    aggregate_time
)

# Geometry operations
from .geom import (
    GridTemplate,
    as_crs,
    build_template,
    reproject,
    crop
)

# Shared utilities
from .utils import (
    normalize_name,
    parse_time_descriptions,
    decode_cf_time,
    hourly_sequence,
    daily_sequence,
    regular_step,
    truncate_times
)

__all__ = [
    # Layer
    "Cube",
    "Dimension",
    "resolve_cube",

    # I/O
    "load",
    "load_many",
    "save",
    "read_info",

    # Resources
    "MemoryEstimate",
    "estimate_memory",

    # Structure
    "merge",
    "set_dimension",
    "filter_dimension",
    "select_attribute",
    "select_dimension",

    # Band arithmetic
    "compute_attribute",
    "ratio",

    # Temporal
    "REDUCERS",
    "resolve_reducer",
    "aggregate_time",

    # Geometry
    "GridTemplate",
    "as_crs",
    "build_template",
    "reproject",
    "crop",

    # Utils
    "normalize_name",
    "parse_time_descriptions",
    "decode_cf_time",
    "hourly_sequence",
    "daily_sequence",
    "regular_step",
    "truncate_times"
]
