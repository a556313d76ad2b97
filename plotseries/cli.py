import argparse
import csv
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from plotseries.config import PipelineConfig
from plotseries.core.pipeline import run
from plotseries.errors import PlotSeriesError
from plotseries.satellite.collection import NpzStore
from plotseries.satellite.sensors import CANONICAL_BANDS, INDEX_BANDS, SENSOR_FAMILIES

load_dotenv()


def load_points(path: Path) -> list:
    """Read plot centroids from a CSV with x and y columns."""
    with open(path, newline="") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames or not {"x", "y"} <= set(reader.fieldnames):
            raise PlotSeriesError(f"{path} must have x and y columns")
        points = []
        for line, row in enumerate(reader, start=2):
            try:
                points.append((float(row["x"]), float(row["y"])))
            except (TypeError, ValueError) as e:
                raise PlotSeriesError(f"{path} row {line}: x and y must be numbers") from e
        return points


def build_config(args) -> PipelineConfig:
    overrides = {}
    if args.points:
        overrides["points"] = load_points(Path(args.points))
    if args.bands:
        overrides["bands"] = args.bands
    if args.output_dir:
        overrides["output_dir"] = args.output_dir
    if args.start:
        overrides["start"] = args.start
    if args.end:
        overrides["end"] = args.end
    if args.workers:
        overrides["max_workers"] = args.workers

    if args.config:
        config = PipelineConfig.from_file(Path(args.config))
        if overrides:
            data = {k: v for k, v in vars(config).items() if k not in overrides}
            data.update(overrides)
            config = PipelineConfig(**data)
        return config
    return getattr(PipelineConfig, args.variant)(**overrides)


def cmd_run(args) -> int:
    store_dir = args.store or os.getenv("PLOTSERIES_STORE")
    if not store_dir:
        print("No scene store given. Pass --store or set PLOTSERIES_STORE.")
        return 2

    try:
        config = build_config(args)
        results = run(config, NpzStore(store_dir))
    except PlotSeriesError as e:
        print(f"ERROR: {e}")
        return 1

    print(f"\nProcessed {len(results)} bands")
    print("=" * 60)
    for band, result in results.items():
        print(f"{band}: {len(result.tall)} tall rows, {len(result.wide)} wide rows")
        for kind, path in result.outputs.items():
            print(f"  {kind}: {path}")
    return 0


def cmd_families(args) -> int:
    print("Sensor families:\n")
    for family in SENSOR_FAMILIES.values():
        print(f"  {family}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='plotseries - Per-plot satellite reflectance time series')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    run_parser = subparsers.add_parser('run', help='Extract time series for every configured band')
    run_parser.add_argument('--store', type=str, default=None,
                            help='Directory of .npz scene archives (default: $PLOTSERIES_STORE)')
    run_parser.add_argument('--variant', choices=['landsat', 'sentinel2'], default='landsat',
                            help='Dataset variant (default: landsat)')
    run_parser.add_argument('--config', type=str, default=None,
                            help='JSON config file; overrides --variant')
    run_parser.add_argument('--points', type=str, default=None,
                            help='CSV of plot centroids with x,y columns')
    run_parser.add_argument('--bands', nargs='+', default=None,
                            choices=list(CANONICAL_BANDS + INDEX_BANDS),
                            help='Bands to extract (default: all bands of the variant)')
    run_parser.add_argument('--start', type=str, default=None, help='Start date YYYY-MM-DD')
    run_parser.add_argument('--end', type=str, default=None, help='End date YYYY-MM-DD (exclusive)')
    run_parser.add_argument('--workers', type=int, default=None,
                            help='Threads for zonal extraction')
    run_parser.add_argument('--output-dir', type=str, default=None,
                            help='Directory for CSV outputs (default: ./output)')
    run_parser.set_defaults(func=cmd_run)

    families_parser = subparsers.add_parser('families', help='List supported sensor families')
    families_parser.set_defaults(func=cmd_families)

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
