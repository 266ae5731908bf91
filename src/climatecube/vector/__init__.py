# src/climatecube/vector/__init__.py
#
# Copyright (c) The climatecube project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The vector subpackage provides the vector side of the pipeline: areas of
interest and sample points, their I/O and the geometric helpers that
prepare them for cropping and extraction.
"""

# I/O and data structure
from .layer import (
    Vector
)

from .io import (
    load_vector,
    save_vector,
    resolve_vector
)

# Geometric operations

from .geom import (
    to_crs,
    validate,
    centroids,
    from_bounds
)

__all__ = [
    # I/O and data structure
    "Vector",
    "load_vector",
    "save_vector",
    "resolve_vector",

    # Geometric operations
    "to_crs",
    "validate",
    "centroids",
    "from_bounds"
]
