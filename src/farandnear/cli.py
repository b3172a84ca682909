"""
Command-line interface for farandnear.

Provides commands for building, updating, and searching location index
snapshots.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import duckdb

from .builder import build_index
from .duckdb_source import DuckDBSource
from .geo import WORLD_BOUNDS
from .geometry import Rectangle
from .index import IndexConfig, LocationIndex
from .quadtree import QuadTreeError


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging to stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _add_snapshot_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--compress",
        action="store_true",
        help="Write the snapshot zlib compressed",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="farandnear",
        description="Build and search quadtree location indexes",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build an index snapshot from a CSV or Parquet file",
    )
    build_parser.add_argument(
        "input",
        type=Path,
        help="Location file (.csv, .tsv, .txt or .parquet)",
    )
    build_parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Snapshot path (default: <input>.index.json)",
    )
    build_parser.add_argument(
        "-c", "--capacity",
        type=int,
        default=32,
        help="Maximum locations per leaf (default: 32)",
    )
    build_parser.add_argument(
        "--bounds",
        type=float,
        nargs=4,
        metavar=("MIN_LAT", "MIN_LON", "MAX_LAT", "MAX_LON"),
        default=None,
        help="Indexed region (default: the whole globe)",
    )
    build_parser.add_argument(
        "--lat-column",
        default="latitude",
        help="Latitude column name (default: latitude)",
    )
    build_parser.add_argument(
        "--lon-column",
        default="longitude",
        help="Longitude column name (default: longitude)",
    )
    build_parser.add_argument(
        "--name-column",
        default="name",
        help="Name column (default: name)",
    )
    build_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any location is outside the indexed region",
    )
    _add_snapshot_output_args(build_parser)

    # Add command
    add_parser = subparsers.add_parser(
        "add",
        help="Add a location to an index snapshot",
    )
    add_parser.add_argument("snapshot", type=Path, help="Index snapshot path")
    add_parser.add_argument("--lat", type=float, required=True, help="Latitude in degrees")
    add_parser.add_argument("--long", type=float, required=True, help="Longitude in degrees")
    add_parser.add_argument("--name", required=True, help="Location name")
    _add_snapshot_output_args(add_parser)

    # Search command
    search_parser = subparsers.add_parser(
        "search",
        help="Search an index snapshot around a coordinate",
    )
    search_parser.add_argument("snapshot", type=Path, help="Index snapshot path")
    search_parser.add_argument("--lat", type=float, required=True, help="Latitude in degrees")
    search_parser.add_argument("--long", type=float, required=True, help="Longitude in degrees")
    search_parser.add_argument(
        "-r", "--radius",
        type=float,
        default=10.0,
        help="Half-side of the search square in km (default: 10)",
    )

    # Stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show statistics for an index snapshot",
    )
    stats_parser.add_argument("snapshot", type=Path, help="Index snapshot path")
    stats_parser.add_argument(
        "--label-precision",
        type=int,
        default=6,
        help="Geohash precision for the region label (default: 6)",
    )

    return parser


def cmd_build(args: argparse.Namespace) -> int:
    """Handle the build command."""
    bounds = Rectangle.from_bounds(*args.bounds) if args.bounds else WORLD_BOUNDS
    config = IndexConfig(capacity=args.capacity, bounds=bounds)

    print(f"Loading locations from: {args.input}")
    with DuckDBSource(
        args.input,
        lat_column=args.lat_column,
        lon_column=args.lon_column,
        name_column=args.name_column,
    ) as source:
        skipped = source.skipped_count()
        root, stats = build_index(
            source,
            capacity=config.capacity,
            bounds=config.bounds,
            skip_out_of_bounds=not args.strict,
        )

    print("\nBuild statistics:")
    print(f"  Records read: {stats.records_read}")
    print(f"  Locations indexed: {stats.entries_inserted}")
    print(f"  Out of bounds: {stats.out_of_bounds}")
    print(f"  Missing coordinates: {skipped}")
    print(f"  Nodes: {root.node_count()}")
    print(f"  Depth: {root.max_depth()}")

    output_path = args.output or args.input.with_suffix(".index.json")
    LocationIndex(config, root).save(output_path, compress=args.compress)
    print(f"Wrote index to {output_path}")

    return 0


def cmd_add(args: argparse.Namespace) -> int:
    """Handle the add command."""
    index = LocationIndex.load(args.snapshot)
    location = index.add_location(args.lat, args.long, args.name)
    # Keep the snapshot's compression unless --compress asks for it
    index.save(args.snapshot, compress=args.compress or None)
    print(f"Added {location.name!r} at ({location.latitude}, {location.longitude})")
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    """Handle the search command."""
    index = LocationIndex.load(args.snapshot)
    locations = index.search(args.lat, args.long, args.radius)
    print(json.dumps({"locations": [loc.to_dict() for loc in locations]}, indent=2))
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Handle the stats command."""
    index = LocationIndex.load(args.snapshot)
    stats = index.stats()
    b = index.bounds

    print(f"Index statistics for {args.snapshot}:")
    print(f"  Bounds: ({b.min.x}, {b.min.y}) - ({b.max.x}, {b.max.y})")
    print(f"  Region label: {index.label(args.label_precision)}")
    print(f"  Capacity: {stats['capacity']}")
    print(f"  Locations: {stats['locations']}")
    print(f"  Nodes: {stats['nodes']}")
    print(f"  Leaf nodes: {stats['leaves']}")
    print(f"  Depth: {stats['depth']}")

    return 0


COMMANDS = {
    "build": cmd_build,
    "add": cmd_add,
    "search": cmd_search,
    "stats": cmd_stats,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.verbose)

    try:
        return COMMANDS[args.command](args)
    except (QuadTreeError, ValueError, FileNotFoundError, duckdb.Error) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
