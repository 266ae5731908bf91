# src/climatecube/exceptions.py

"""
Exception hierarchy shared by the cube, vector and extraction modules.
"""

__all__ = [
    "CubeError",
    "CubeIOError",
    "CubeValidationError",
    "CRSMismatchError"
]

class CubeError(Exception):
    """Base class for every error raised by climatecube."""

class CubeIOError(CubeError, IOError):
    """A gridded file could not be read or written."""

class CubeValidationError(CubeError, ValueError):
    """An operation precondition was violated (shapes, lengths, arguments)."""

class CRSMismatchError(CubeValidationError):
    """Two inputs that must share a coordinate reference system do not."""
