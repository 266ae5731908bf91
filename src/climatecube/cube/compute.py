# src/climatecube/cube/compute.py
"""
This module derives new attributes from existing ones with elementwise arithmetic.
"""

import logging
from typing import Dict

import numexpr as ne
import numpy as np

from climatecube.exceptions import CubeValidationError
from .layer import Cube, resolve_cube

log = logging.getLogger(__name__)

__all__ = [
    "compute_attribute",
    "ratio"
]

def _evaluate(cube: Cube, name: str, expression: str, operands: Dict[str, np.ndarray]) -> Cube:
    """Evaluate a numexpr expression over named operands and append the result."""
    if name in cube:
        raise CubeValidationError(f"Attribute '{name}' already exists")

    try:
        with np.errstate(divide="ignore", invalid="ignore"):
            result = ne.evaluate(expression, local_dict=operands, global_dict={})
    except KeyError as e:
        raise KeyError(f"Expression uses unknown attribute {e}; available: {cube.names}") from e
    except SyntaxError as e:
        raise CubeValidationError(f"Cannot parse expression '{expression}': {e}") from e

    result = np.asarray(result)
    if result.shape != (cube.ntime, cube.height, cube.width):
        result = np.broadcast_to(result, (cube.ntime, cube.height, cube.width))

    if not np.issubdtype(result.dtype, np.floating):
        result = result.astype("float32")
    result = np.where(np.isfinite(result), result, np.nan).astype(result.dtype)

    attributes = dict(cube.attributes)
    attributes[name] = result
    return cube.replace(attributes=attributes)

@resolve_cube
def compute_attribute(cube: Cube, name: str, expression: str) -> Cube:
    """
    Append an attribute computed from a numexpr expression over attribute names.

    Missing operands propagate as NaN. Results that are not finite, such as a
    division by zero, are stored as NaN so that no infinity reaches later steps.
    Only attributes whose names are Python identifiers can appear in the
    expression; use ratio() for the others.

    Args:
        cube: Input Cube.
        name: Name of the derived attribute.
        expression: numexpr expression, e.g. ``"d2m / t2m"``.

    Returns:
        Cube: A new Cube with the derived attribute appended last.

    Raises:
        CubeValidationError: If the expression cannot be parsed or names an
            attribute that is not an identifier.
    """
    unusable = [n for n in cube.names if not n.isidentifier() and n in expression]
    if unusable:
        raise CubeValidationError(
            f"Attributes {unusable} are not valid expression identifiers; rename them first"
        )

    result = _evaluate(cube, name, expression, dict(cube.attributes))
    log.info(f"Derived attribute '{name}' = {expression}")
    return result

@resolve_cube
def ratio(cube: Cube, numerator: str, denominator: str, name: str = "ratio") -> Cube:
    """
    Append ``numerator / denominator`` as a new attribute.

    Operands are bound by position, so any attribute name is accepted.
    """
    operands = {"numerator": cube.get(numerator), "denominator": cube.get(denominator)}
    result = _evaluate(cube, name, "numerator / denominator", operands)
    log.info(f"Derived attribute '{name}' = {numerator} / {denominator}")
    return result
