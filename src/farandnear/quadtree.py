"""
Point quadtree for location lookup.

This module defines the quadtree node used to index points carrying opaque
payloads. A node starts as a leaf holding up to `capacity` entries and
subdivides into four quadrants the first time an insertion overflows it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple
import logging

from . import geohash
from .geometry import Point, Rectangle


logger = logging.getLogger(__name__)

# Leaves at this depth never subdivide. Without a limit, more than
# `capacity` identical points would split forever.
MAX_DEPTH = 48

# Child indices
NW, NE, SW, SE = 0, 1, 2, 3


class QuadTreeError(Exception):
    """Base class for quadtree failures. `code` identifies the failure kind."""

    code = "quadtree_error"


class OutOfBoundsError(QuadTreeError, ValueError):
    """Raised when a point falls outside the addressed node's boundary."""

    code = "out_of_bounds"

    def __init__(self, point: Point, boundary: Rectangle):
        super().__init__(
            f"Point ({point.x}, {point.y}) outside boundary "
            f"({boundary.min.x}, {boundary.min.y}, {boundary.max.x}, {boundary.max.y})"
        )
        self.point = point
        self.boundary = boundary


class CouldNotPlaceError(QuadTreeError, RuntimeError):
    """
    Raised when every child rejects a point its parent contains.

    The quadrants of a node cover it exactly, so this indicates a broken
    partition rather than bad input.
    """

    code = "could_not_place"


@dataclass(frozen=True)
class Entry:
    """A point with an attached opaque payload."""
    point: Point
    payload: bytes = b""

    def __post_init__(self):
        if not isinstance(self.payload, bytes):
            raise TypeError(
                f"payload must be bytes, got {type(self.payload).__name__}"
            )


class QuadTreeNode:
    """
    One quadrant of space.

    A node is either a leaf holding at most `capacity` entries, or an
    internal node holding exactly four children (NW, NE, SW, SE) and no
    entries. A leaf becomes internal once, on the first insertion that
    would exceed its capacity, and never reverts.

    Boundaries are inclusive on every side, so a point lying on a split line
    is claimed by the first child in NW, NE, SW, SE order that contains it.
    This tie-break is deterministic.

    Nodes are not thread-safe; callers must serialize inserts and must not
    query while an insert is in progress.
    """

    __slots__ = ("capacity", "boundary", "depth", "_entries", "_children")

    def __init__(self, capacity: int, boundary: Rectangle, depth: int = 0):
        """
        Args:
            capacity: Maximum entries held directly before subdividing
            boundary: Region covered by this node
            depth: Distance from the root (0 for the root)
        """
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        self.capacity = capacity
        self.boundary = boundary
        self.depth = depth
        self._entries: List[Entry] = []
        self._children: Optional[Tuple[QuadTreeNode, ...]] = None

    @classmethod
    def restore(
        cls,
        capacity: int,
        boundary: Rectangle,
        depth: int,
        entries: Optional[List[Entry]] = None,
        children: Optional[List[QuadTreeNode]] = None,
    ) -> QuadTreeNode:
        """
        Rebuild a node from already-validated parts.

        Used by the deserializer. Exactly one of entries/children may be
        given; children must be the four quadrants of boundary.
        """
        if entries and children:
            raise ValueError("A node cannot hold both entries and children")
        node = cls(capacity, boundary, depth)
        if children:
            if len(children) != 4:
                raise ValueError("An internal node must have exactly 4 children")
            node._children = tuple(children)
        elif entries:
            node._entries = list(entries)
        return node

    def __repr__(self) -> str:
        kind = "leaf" if self.is_leaf() else "internal"
        return (
            f"QuadTreeNode({kind}, capacity={self.capacity}, "
            f"boundary={self.boundary.as_bounds()}, depth={self.depth})"
        )

    def is_leaf(self) -> bool:
        """Return True if this node holds entries rather than children."""
        return self._children is None

    @property
    def entries(self) -> Tuple[Entry, ...]:
        """Entries held directly by this node (empty for internal nodes)."""
        return tuple(self._entries)

    @property
    def children(self) -> Tuple[QuadTreeNode, ...]:
        """Children in NW, NE, SW, SE order (empty for leaves)."""
        return self._children or ()

    def insert(self, entry: Entry) -> None:
        """
        Insert an entry into this node or the relevant descendant.

        Args:
            entry: Entry to store

        Raises:
            OutOfBoundsError: If the entry's point is outside the boundary
            CouldNotPlaceError: If no child accepts a point this node contains
        """
        if not self.boundary.contains(entry.point):
            raise OutOfBoundsError(entry.point, self.boundary)

        if self._children is None:
            if len(self._entries) < self.capacity or self.depth >= MAX_DEPTH:
                self._entries.append(entry)
                return
            self._subdivide()

        self._insert_into_children(entry)

    def _insert_into_children(self, entry: Entry) -> None:
        for child in self._children:
            try:
                child.insert(entry)
            except OutOfBoundsError:
                continue
            return

        raise CouldNotPlaceError(
            f"No child of {self!r} accepted point "
            f"({entry.point.x}, {entry.point.y})"
        )

    def _subdivide(self) -> None:
        """
        Split this leaf into four children and move its entries into them.

        The children are filled before they are attached, so the node is
        never seen without either its entries or its children.
        """
        children = tuple(
            QuadTreeNode(self.capacity, quadrant, self.depth + 1)
            for quadrant in self.boundary.quadrants()
        )

        for entry in self._entries:
            for child in children:
                try:
                    child.insert(entry)
                except OutOfBoundsError:
                    continue
                break
            else:
                raise CouldNotPlaceError(
                    f"No quadrant of {self!r} accepted point "
                    f"({entry.point.x}, {entry.point.y})"
                )

        self._children, self._entries = children, []
        logger.debug("Subdivided node at depth %d: %s", self.depth, self.boundary)

    def query(self, rect: Rectangle) -> List[Entry]:
        """
        Find every entry whose point lies within rect.

        Results are in depth-first order over children in NW, NE, SW, SE
        order, and are returned as a new list.

        Args:
            rect: Query rectangle

        Returns:
            List of matching entries
        """
        results: List[Entry] = []
        self._query_into(rect, results)
        return results

    def _query_into(self, rect: Rectangle, results: List[Entry]) -> None:
        if self._children is None:
            results.extend(e for e in self._entries if rect.contains(e.point))
            return

        for child in self._children:
            if child.boundary.intersects(rect):
                child._query_into(rect, results)

    def iter_entries(self) -> Iterator[Entry]:
        """Iterate over all entries in the subtree, in query order."""
        if self._children is None:
            yield from self._entries
        else:
            for child in self._children:
                yield from child.iter_entries()

    def label(self, precision: int = 6) -> str:
        """
        Geohash label for the centre of this node's boundary.

        The boundary's x-axis is read as latitude and its y-axis as longitude.
        """
        center = self.boundary.center
        return geohash.encode(center.x, center.y, precision)

    def node_count(self) -> int:
        """Return total number of nodes in this subtree."""
        return 1 + sum(child.node_count() for child in self.children)

    def leaf_count(self) -> int:
        """Return number of leaf nodes in this subtree."""
        if self._children is None:
            return 1
        return sum(child.leaf_count() for child in self._children)

    def entry_count(self) -> int:
        """Return number of entries stored in this subtree."""
        if self._children is None:
            return len(self._entries)
        return sum(child.entry_count() for child in self._children)

    def max_depth(self) -> int:
        """Return maximum depth of this subtree, relative to this node."""
        if self._children is None:
            return 0
        return 1 + max(child.max_depth() for child in self._children)
