# src/climatecube/__init__.py
#
# Copyright (c) The climatecube project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
climatecube: gridded (x, y, time) climate data in memory, from loading and
band arithmetic through temporal aggregation, warping and cropping to point
and zonal extraction.
"""

from climatecube import cube, vector, extract
from climatecube.cube import Cube, Dimension
from climatecube.vector import Vector
from climatecube.config import PipelineConfig
from climatecube.exceptions import (
    CubeError,
    CubeIOError,
    CubeValidationError,
    CRSMismatchError
)

__version__ = "0.1.0"

__all__ = [
    "cube",
    "vector",
    "extract",
    "Cube",
    "Dimension",
    "Vector",
    "PipelineConfig",
    "CubeError",
    "CubeIOError",
    "CubeValidationError",
    "CRSMismatchError"
]
