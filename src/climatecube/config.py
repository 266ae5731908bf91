# src/climatecube/config.py

"""
Parameters of the gridded climate walkthrough.

The defaults reproduce the tutorial setup: two hourly ERA5-style grids for
January 2020, aggregated to daily means and filtered to the first week.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

__all__ = [
    "PipelineConfig"
]

@dataclass(frozen=True)
class PipelineConfig:
    """
    Configuration object for run_pipeline().

    Args:
        first_path: First gridded file (numerator of the derived ratio).
        second_path: Second gridded file (denominator of the derived ratio).
        aoi_path: Vector file with the area of interest; its CRS is the warp target.
        names: Attribute names for the two files. None strips the file extensions.
        source_crs: CRS assigned to grids that do not declare one.
        start: First hourly timestamp of the files.
        end: Last hourly timestamp of the files (inclusive).
        aggregate_by: Calendar granularity of the temporal aggregation.
        reducer: Reducer used for the temporal aggregation.
        skip_missing: Ignore NaN cells during the temporal aggregation.
        until: Keep dates up to and including this day.
        ratio_name: Name of the derived attribute.
        resampling: rasterio Resampling member used by the warp.
        resolution: Cell size of the warped grid in target CRS units.
        output_dir: Where to write the cropped cube, tables and figures.
        plot: Render figures of the reprojected and cropped cubes.
        zonal_skip_missing: Exclude masked cells from the zonal means.
    """
    first_path: Path
    second_path: Path
    aoi_path: Path
    names: Optional[Tuple[str, str]] = None
    source_crs: str = "EPSG:4326"
    start: str = "2020-01-01T00:00:00"
    end: str = "2020-01-31T23:00:00"
    aggregate_by: str = "day"
    reducer: str = "mean"
    skip_missing: bool = False
    until: str = "2020-01-07"
    ratio_name: str = "ratio"
    resampling: str = "bilinear"
    resolution: Optional[float] = None
    output_dir: Optional[Path] = None
    plot: bool = False
    zonal_skip_missing: bool = True

    def __post_init__(self):
        for attr in ("first_path", "second_path", "aoi_path"):
            object.__setattr__(self, attr, Path(getattr(self, attr)))
        if self.output_dir is not None:
            object.__setattr__(self, "output_dir", Path(self.output_dir))
        if self.names is not None and len(self.names) != 2:
            raise ValueError(f"Expected two attribute names, got {self.names}")
