"""
Location index service.

This module owns the process-wide quadtree for a location search service.
It converts latitude/longitude requests into index operations, serializes
access to the tree with a single lock, and persists snapshots to disk.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import threading

from .geo import WORLD_BOUNDS, bounding_box_from_coords
from .geometry import Point, Rectangle
from .quadtree import Entry, QuadTreeError, QuadTreeNode
from .serialize import deserialize_tree, is_compressed, serialize_tree


logger = logging.getLogger(__name__)


@dataclass
class IndexConfig:
    """Configuration for a location index."""

    capacity: int = 32
    """Maximum entries per leaf before it subdivides."""

    bounds: Rectangle = WORLD_BOUNDS
    """Region covered by the index (x = latitude, y = longitude)."""

    search_radius_km: float = 10.0
    """Default half-side of the search square, in kilometres."""

    def __post_init__(self):
        if self.capacity < 0:
            raise ValueError("capacity must be non-negative")
        if self.search_radius_km < 0:
            raise ValueError("search_radius_km must be non-negative")


@dataclass(frozen=True)
class Location:
    """A named location returned by a search."""
    name: str
    latitude: float
    longitude: float

    @classmethod
    def from_entry(cls, entry: Entry) -> Location:
        return cls(
            name=entry.payload.decode("utf-8", errors="replace"),
            latitude=entry.point.x,
            longitude=entry.point.y,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "latitude": self.latitude, "longitude": self.longitude}


class LocationIndex:
    """
    A searchable set of named locations.

    All access to the underlying tree goes through one lock, so a single
    instance may be shared by concurrent request handlers.
    """

    def __init__(self, config: Optional[IndexConfig] = None, root: Optional[QuadTreeNode] = None):
        """
        Args:
            config: Index configuration. Ignored for capacity and bounds
                when root is given.
            root: Existing tree to serve, e.g. one restored from a snapshot
        """
        self.config = config or IndexConfig()
        if root is None:
            root = QuadTreeNode(self.config.capacity, self.config.bounds)
        self._root = root
        self._lock = threading.Lock()
        # Whether save() compresses by default; follows the loaded snapshot
        self.compressed = False

    @property
    def bounds(self) -> Rectangle:
        return self._root.boundary

    def add_location(self, latitude: float, longitude: float, name: str) -> Location:
        """
        Add a named location to the index.

        Raises:
            OutOfBoundsError: If the coordinate is outside the index bounds
            CouldNotPlaceError: If the tree's partition is broken
        """
        entry = Entry(Point(latitude, longitude), name.encode("utf-8"))
        with self._lock:
            try:
                self._root.insert(entry)
            except QuadTreeError as e:
                logger.error("Could not add location %r: %s", name, e)
                raise

        logger.info("Added location %r at (%s, %s)", name, latitude, longitude)
        return Location(name, latitude, longitude)

    def search(
        self, latitude: float, longitude: float, radius_km: Optional[float] = None
    ) -> List[Location]:
        """
        Find locations within a square around a coordinate.

        Args:
            latitude: Centre latitude in degrees
            longitude: Centre longitude in degrees
            radius_km: Half-side of the square; defaults to the configured
                search radius

        Returns:
            Matching locations in index order (possibly empty)
        """
        if radius_km is None:
            radius_km = self.config.search_radius_km
        rect = bounding_box_from_coords(latitude, longitude, radius_km)
        return self.search_rectangle(rect)

    def search_rectangle(self, rect: Rectangle) -> List[Location]:
        """Find locations inside a rectangle given in index coordinates."""
        with self._lock:
            entries = self._root.query(rect)
        logger.debug("Search %s matched %d locations", rect.as_bounds(), len(entries))
        return [Location.from_entry(entry) for entry in entries]

    def stats(self) -> Dict[str, int]:
        """Summary counts for the underlying tree."""
        with self._lock:
            return {
                "capacity": self._root.capacity,
                "locations": self._root.entry_count(),
                "nodes": self._root.node_count(),
                "leaves": self._root.leaf_count(),
                "depth": self._root.max_depth(),
            }

    def label(self, precision: int = 6) -> str:
        """Geohash of the centre of the indexed region."""
        return self._root.label(precision)

    def to_bytes(self, compress: bool = False) -> bytes:
        with self._lock:
            return serialize_tree(self._root, compress=compress)

    @classmethod
    def from_bytes(cls, data: bytes, config: Optional[IndexConfig] = None) -> LocationIndex:
        """
        Restore an index from serialized bytes.

        Raises:
            FormatError: If the data is not a valid serialized tree
        """
        root = deserialize_tree(data)
        config = config or IndexConfig()
        config = IndexConfig(
            capacity=root.capacity,
            bounds=root.boundary,
            search_radius_km=config.search_radius_km,
        )
        index = cls(config, root)
        index.compressed = is_compressed(data)
        return index

    def save(self, path: Path, compress: Optional[bool] = None) -> None:
        """
        Write a snapshot of the index to path.

        The snapshot is written to a sibling temporary file which then
        replaces path, so a failed write leaves the previous snapshot intact.

        Args:
            path: Snapshot path
            compress: Whether to zlib compress; None keeps the compression
                of the snapshot this index was loaded from
        """
        if compress is None:
            compress = self.compressed
        path = Path(path)
        data = self.to_bytes(compress=compress)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.info("Wrote %d bytes to %s", len(data), path)

    @classmethod
    def load(cls, path: Path, config: Optional[IndexConfig] = None) -> LocationIndex:
        """
        Load an index snapshot written by save().

        Raises:
            FileNotFoundError: If path does not exist
            FormatError: If the file is not a valid snapshot
        """
        path = Path(path)
        index = cls.from_bytes(path.read_bytes(), config)
        logger.info("Loaded index from %s", path)
        return index
