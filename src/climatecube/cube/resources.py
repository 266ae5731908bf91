# src/climatecube/cube/resources.py

"""
This module estimates whether a gridded file fits in system memory
before it is loaded into a Cube.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
import psutil
import rasterio

log = logging.getLogger(__name__)

__all__ = [
    "MemoryEstimate",
    "estimate_memory"
]

DEFAULT_SAFETY_FACTOR = 3.0

@dataclass(frozen=True)
class MemoryEstimate:
    """
    Estimation of memory requirements and safety for loading a gridded file.

    Args:
        total_required_bytes: Total bytes required to load the file (with overhead)
        available_system_bytes: Currently available system memory in bytes
        is_safe: Boolean indicating if loading is considered safe
        reason: Explanation for the safety assessment
    """
    total_required_bytes: int
    available_system_bytes: int
    is_safe: bool
    reason: str

def estimate_memory(
    path: Union[str, Path],
    safety_factor: float = DEFAULT_SAFETY_FACTOR
) -> MemoryEstimate:
    """
    Compare the decoded size of a file against currently available RAM.

    Every band is decoded to at least float32 (NaN marks missing values),
    so the estimate uses the wider of the stored dtype and float32.

    Args:
        path: Path to the gridded file.
        safety_factor: Multiplier for NumPy temporaries created while processing.

    Returns:
        MemoryEstimate: The verdict and the numbers behind it.
    """
    with rasterio.open(path) as src:
        total_cells = src.count * src.height * src.width
        itemsize = np.result_type(src.dtypes[0], np.float32).itemsize

    raw_bytes = total_cells * itemsize
    required = int(raw_bytes * safety_factor)
    available = psutil.virtual_memory().available

    req_gb = required / (1024**3)
    avail_gb = available / (1024**3)

    if required > available:
        reason = (
            f"Insufficient Memory: File requires ~{req_gb:.2f} GB RAM "
            f"(Raw: {raw_bytes/(1024**3):.2f} GB * Factor: {safety_factor}), "
            f"but only {avail_gb:.2f} GB is available."
        )
        return MemoryEstimate(required, available, False, reason)

    reason = f"Memory Check Passed: Requires ~{req_gb:.2f} GB (Available: {avail_gb:.2f} GB)."
    return MemoryEstimate(required, available, True, reason)
