"""
Bulk quadtree builder.

This module loads every record from a location source into a fresh
quadtree and collects statistics about what was inserted and rejected.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

from .geo import WORLD_BOUNDS
from .geometry import Point, Rectangle
from .quadtree import Entry, OutOfBoundsError, QuadTreeNode
from .source import LocationRecord, LocationSource


logger = logging.getLogger(__name__)


@dataclass
class BuilderConfig:
    """Configuration for the quadtree builder."""

    capacity: int = 32
    """Maximum entries per leaf before it subdivides."""

    bounds: Rectangle = WORLD_BOUNDS
    """Region covered by the root node (x = latitude, y = longitude)."""

    skip_out_of_bounds: bool = True
    """Count and skip records outside bounds instead of failing the build."""

    def __post_init__(self):
        if self.capacity < 0:
            raise ValueError("capacity must be non-negative")
        if not isinstance(self.bounds, Rectangle):
            raise ValueError("bounds must be a Rectangle")


@dataclass
class BuilderStats:
    """Statistics collected during tree building."""

    records_read: int = 0
    entries_inserted: int = 0
    out_of_bounds: int = 0
    rejected: List[LocationRecord] = field(default_factory=list)


class IndexBuilder:
    """
    Builder that bulk loads a location source into a quadtree.

    Records are inserted in source order; the name is stored as the UTF-8
    payload of each entry.
    """

    def __init__(self, source: LocationSource, config: Optional[BuilderConfig] = None):
        """
        Initialize the builder.

        Args:
            source: Source of location records
            config: Builder configuration
        """
        self.source = source
        self.config = config or BuilderConfig()
        self.stats = BuilderStats()

    def build(self) -> QuadTreeNode:
        """
        Build the complete quadtree.

        Returns:
            Root node covering config.bounds

        Raises:
            OutOfBoundsError: If a record is out of bounds and
                skip_out_of_bounds is False
        """
        self.stats = BuilderStats()  # Reset stats
        root = QuadTreeNode(self.config.capacity, self.config.bounds)

        for record in self.source:
            self.stats.records_read += 1
            self._insert_record(root, record)

        logger.info(
            "Built index: %d records read, %d inserted, %d out of bounds",
            self.stats.records_read,
            self.stats.entries_inserted,
            self.stats.out_of_bounds,
        )
        return root

    def _insert_record(self, root: QuadTreeNode, record: LocationRecord) -> None:
        entry = Entry(Point(record.latitude, record.longitude), record.name.encode("utf-8"))
        try:
            root.insert(entry)
        except OutOfBoundsError:
            if not self.config.skip_out_of_bounds:
                raise
            self.stats.out_of_bounds += 1
            self.stats.rejected.append(record)
            logger.warning(
                "Skipping %r at (%s, %s): outside index bounds",
                record.name, record.latitude, record.longitude,
            )
            return

        self.stats.entries_inserted += 1


def build_index(
    source: LocationSource,
    capacity: int = 32,
    bounds: Rectangle = WORLD_BOUNDS,
    skip_out_of_bounds: bool = True,
) -> tuple[QuadTreeNode, BuilderStats]:
    """
    Convenience function to build a quadtree.

    Args:
        source: Source of location records
        capacity: Maximum entries per leaf
        bounds: Region covered by the root
        skip_out_of_bounds: Skip records outside bounds instead of failing

    Returns:
        Tuple of (root node, BuilderStats)
    """
    config = BuilderConfig(
        capacity=capacity,
        bounds=bounds,
        skip_out_of_bounds=skip_out_of_bounds,
    )
    builder = IndexBuilder(source, config)
    root = builder.build()
    return root, builder.stats
