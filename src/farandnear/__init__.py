"""
farandnear: Point quadtree location index.

This package provides a region-based spatial index (a point quadtree) that
stores coordinates with opaque payloads and answers rectangle queries, plus
tools to persist it, bulk load it from CSV/Parquet files, and search it
around a latitude/longitude.
"""

__version__ = "0.1.0"

from .geometry import Point, Rectangle
from .quadtree import (
    Entry,
    QuadTreeNode,
    QuadTreeError,
    OutOfBoundsError,
    CouldNotPlaceError,
)
from .serialize import serialize_tree, deserialize_tree, FormatError
from .geo import bounding_box_from_coords, WORLD_BOUNDS
from .builder import IndexBuilder, BuilderConfig, build_index
from .index import LocationIndex, IndexConfig, Location

__all__ = [
    "Point",
    "Rectangle",
    "Entry",
    "QuadTreeNode",
    "QuadTreeError",
    "OutOfBoundsError",
    "CouldNotPlaceError",
    "serialize_tree",
    "deserialize_tree",
    "FormatError",
    "bounding_box_from_coords",
    "WORLD_BOUNDS",
    "IndexBuilder",
    "BuilderConfig",
    "build_index",
    "LocationIndex",
    "IndexConfig",
    "Location",
]
