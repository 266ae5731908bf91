# src/climatecube/cli.py

import argparse
import logging
import sys
from dataclasses import fields
from typing import List, Optional

from climatecube.config import PipelineConfig
from climatecube.exceptions import CubeError

def setup_logging(level: int = logging.INFO) -> None:
    """
    Configures the standard logging format and level for the command-line interface.

    Args:
        level (int): The logging threshold level.
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

def build_parser() -> argparse.ArgumentParser:
    defaults = {f.name: f.default for f in fields(PipelineConfig)}

    parser = argparse.ArgumentParser(
        prog="climatecube",
        description=(
            "Run the gridded climate walkthrough: merge two hourly grids, derive "
            "their ratio, aggregate to days, warp and crop to an area of interest, "
            "then extract centroid values and zonal means."
        )
    )
    parser.add_argument("first", help="First gridded file (ratio numerator)")
    parser.add_argument("second", help="Second gridded file (ratio denominator)")
    parser.add_argument("aoi", help="Vector file with the area of interest")
    parser.add_argument("--names", nargs=2, metavar=("FIRST", "SECOND"),
                        help="Attribute names (default: file names without extension)")
    parser.add_argument("--source-crs", default=defaults["source_crs"],
                        help=f"CRS for grids without one (default: {defaults['source_crs']})")
    parser.add_argument("--start", default=defaults["start"], help="First hourly timestamp")
    parser.add_argument("--end", default=defaults["end"], help="Last hourly timestamp (inclusive)")
    parser.add_argument("--by", default=defaults["aggregate_by"],
                        choices=["hour", "day", "month", "year"], help="Aggregation granularity")
    parser.add_argument("--reducer", default=defaults["reducer"],
                        choices=["mean", "median", "min", "max", "sum", "std"])
    parser.add_argument("--skip-missing", action="store_true",
                        help="Ignore missing cells during temporal aggregation")
    parser.add_argument("--until", default=defaults["until"], help="Keep dates up to this day")
    parser.add_argument("--ratio-name", default=defaults["ratio_name"], help="Name of the derived attribute")
    parser.add_argument("--resampling", default=defaults["resampling"], help="rasterio Resampling method")
    parser.add_argument("--resolution", type=float, default=None,
                        help="Cell size of the warped grid (target CRS units)")
    parser.add_argument("--output-dir", default=None, help="Write cube, tables and figures here")
    parser.add_argument("--plot", action="store_true", help="Render figures (requires --output-dir to keep them)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point of the climatecube command.

    Returns:
        int: Process exit status.
    """
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = PipelineConfig(
        first_path=args.first,
        second_path=args.second,
        aoi_path=args.aoi,
        names=tuple(args.names) if args.names else None,
        source_crs=args.source_crs,
        start=args.start,
        end=args.end,
        aggregate_by=args.by,
        reducer=args.reducer,
        skip_missing=args.skip_missing,
        until=args.until,
        ratio_name=args.ratio_name,
        resampling=args.resampling,
        resolution=args.resolution,
        output_dir=args.output_dir,
        plot=args.plot
    )

    from climatecube.pipeline import run_pipeline

    try:
        result = run_pipeline(config)
    except (CubeError, FileNotFoundError, KeyError, MemoryError) as e:
        logging.error(f"Pipeline aborted: {e}")
        return 1

    print("Point extraction")
    print(result.points)
    print("Zonal statistics")
    print(result.zonal)
    return 0

if __name__ == "__main__":
    sys.exit(main())
