"""
Quadtree serialization module.

This module handles serialization of a quadtree, including every
descendant, to a deterministic JSON document, optionally zlib compressed.

Format (one object per node, keys always in this order):
- capacity: non-negative integer
- boundary: {"min": {"x": ..., "y": ...}, "max": {"x": ..., "y": ...}}
- children: list of exactly 4 node objects (NW, NE, SW, SE), or null on a leaf
- entries: list of {"point": {"x", "y"}, "payload": base64}, or null on an
  internal node

Floats are written with their shortest round-tripping representation, so
decoding restores every coordinate bit for bit and encoding the same tree
twice yields identical bytes.
"""

from typing import Any, Dict, List, Optional
import base64
import binascii
import json
import math
import zlib

from .geometry import Point, Rectangle
from .quadtree import MAX_DEPTH, Entry, QuadTreeError, QuadTreeNode


class FormatError(QuadTreeError, ValueError):
    """Raised when serialized tree data is structurally invalid."""

    code = "format_error"


class TreeSerializer:
    """Serializes a quadtree to JSON bytes."""

    def serialize(self, node: QuadTreeNode) -> bytes:
        """
        Serialize a node and all of its descendants.

        Args:
            node: Root of the subtree to serialize

        Returns:
            UTF-8 encoded JSON
        """
        doc = self._serialize_node(node)
        return json.dumps(doc, separators=(",", ":"), allow_nan=False).encode("utf-8")

    def _serialize_point(self, point: Point) -> Dict[str, float]:
        return {"x": float(point.x), "y": float(point.y)}

    def _serialize_node(self, node: QuadTreeNode) -> Dict[str, Any]:
        """Recursively serialize a node."""
        children: Optional[List[Dict[str, Any]]] = None
        entries: Optional[List[Dict[str, Any]]] = None

        if node.is_leaf():
            entries = [
                {
                    "point": self._serialize_point(entry.point),
                    "payload": base64.b64encode(entry.payload).decode("ascii"),
                }
                for entry in node.entries
            ]
        else:
            children = [self._serialize_node(child) for child in node.children]

        return {
            "capacity": node.capacity,
            "boundary": {
                "min": self._serialize_point(node.boundary.min),
                "max": self._serialize_point(node.boundary.max),
            },
            "children": children,
            "entries": entries,
        }


class TreeDeserializer:
    """
    Deserializes a quadtree from JSON bytes.

    The whole document is validated while building fresh nodes; on any error
    a FormatError is raised and nothing built so far escapes.
    """

    def deserialize(self, data: bytes) -> QuadTreeNode:
        """
        Deserialize a quadtree from bytes.

        Args:
            data: Serialized tree bytes

        Returns:
            Root node of the restored tree

        Raises:
            FormatError: If data is not a valid serialized tree
        """
        try:
            doc = json.loads(data)
        except (UnicodeDecodeError, ValueError) as e:
            raise FormatError(f"Invalid JSON: {e}") from e

        return self._deserialize_node(doc, depth=0, path="root")

    def _require_object(self, value: Any, path: str) -> Dict[str, Any]:
        if not isinstance(value, dict):
            raise FormatError(f"{path}: expected an object, got {type(value).__name__}")
        return value

    def _read_number(self, obj: Dict[str, Any], key: str, path: str) -> float:
        value = obj.get(key)
        # bool is an int subclass but never a coordinate
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise FormatError(f"{path}.{key}: expected a number, got {value!r}")
        try:
            number = float(value)
        except OverflowError as e:
            raise FormatError(f"{path}.{key}: number out of range") from e
        if not math.isfinite(number):
            raise FormatError(f"{path}.{key}: expected a finite number, got {value!r}")
        return number

    def _read_point(self, value: Any, path: str) -> Point:
        obj = self._require_object(value, path)
        return Point(self._read_number(obj, "x", path), self._read_number(obj, "y", path))

    def _read_boundary(self, value: Any, path: str) -> Rectangle:
        obj = self._require_object(value, path)
        lo = self._read_point(obj.get("min"), f"{path}.min")
        hi = self._read_point(obj.get("max"), f"{path}.max")
        try:
            return Rectangle(lo, hi)
        except ValueError as e:
            raise FormatError(f"{path}: {e}") from e

    def _read_capacity(self, obj: Dict[str, Any], path: str) -> int:
        capacity = obj.get("capacity")
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise FormatError(f"{path}.capacity: expected an integer, got {capacity!r}")
        if capacity < 0:
            raise FormatError(f"{path}.capacity: must be non-negative, got {capacity}")
        return capacity

    def _read_list(self, obj: Dict[str, Any], key: str, path: str) -> List[Any]:
        value = obj.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise FormatError(f"{path}.{key}: expected a list or null")
        return value

    def _read_entry(self, value: Any, boundary: Rectangle, path: str) -> Entry:
        obj = self._require_object(value, path)
        point = self._read_point(obj.get("point"), f"{path}.point")
        if not boundary.contains(point):
            raise FormatError(f"{path}: point ({point.x}, {point.y}) outside node boundary")

        payload = obj.get("payload", "")
        if not isinstance(payload, str):
            raise FormatError(f"{path}.payload: expected a base64 string")
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise FormatError(f"{path}.payload: invalid base64: {e}") from e

        return Entry(point, raw)

    def _deserialize_node(self, value: Any, depth: int, path: str) -> QuadTreeNode:
        """Recursively deserialize and validate a node."""
        if depth > MAX_DEPTH:
            raise FormatError(f"{path}: tree deeper than {MAX_DEPTH} levels")

        obj = self._require_object(value, path)
        capacity = self._read_capacity(obj, path)
        boundary = self._read_boundary(obj.get("boundary"), f"{path}.boundary")
        raw_children = self._read_list(obj, "children", path)
        raw_entries = self._read_list(obj, "entries", path)

        if raw_children and raw_entries:
            raise FormatError(f"{path}: node has both children and entries")

        if raw_children:
            if len(raw_children) != 4:
                raise FormatError(
                    f"{path}.children: expected 4 children, got {len(raw_children)}"
                )
            children = []
            for i, (raw_child, quadrant) in enumerate(zip(raw_children, boundary.quadrants())):
                child_path = f"{path}.children[{i}]"
                child = self._deserialize_node(raw_child, depth + 1, child_path)
                if child.capacity != capacity:
                    raise FormatError(
                        f"{child_path}: capacity {child.capacity} differs from parent {capacity}"
                    )
                if child.boundary != quadrant:
                    raise FormatError(f"{child_path}: boundary is not the parent's quadrant")
                children.append(child)
            return QuadTreeNode.restore(capacity, boundary, depth, children=children)

        if len(raw_entries) > capacity and depth < MAX_DEPTH:
            raise FormatError(
                f"{path}.entries: {len(raw_entries)} entries exceed capacity {capacity}"
            )
        entries = [
            self._read_entry(raw, boundary, f"{path}.entries[{i}]")
            for i, raw in enumerate(raw_entries)
        ]
        return QuadTreeNode.restore(capacity, boundary, depth, entries=entries)


def serialize_tree(node: QuadTreeNode, compress: bool = False) -> bytes:
    """
    Serialize a quadtree to bytes, optionally with compression.

    Args:
        node: Root of the tree to serialize
        compress: Whether to apply zlib compression

    Returns:
        Serialized (and optionally compressed) bytes
    """
    data = TreeSerializer().serialize(node)

    if compress:
        data = zlib.compress(data, level=9)

    return data


def is_compressed(data: bytes) -> bool:
    """Check whether serialized data is zlib compressed (plain JSON starts with "{")."""
    return data.lstrip()[:1] != b"{"


def deserialize_tree(data: bytes, compressed: Optional[bool] = None) -> QuadTreeNode:
    """
    Deserialize a quadtree from bytes.

    Args:
        data: Serialized tree bytes
        compressed: Whether data is zlib compressed. None detects it
            with is_compressed().

    Returns:
        Root node of the restored tree

    Raises:
        FormatError: If data is not a valid serialized tree
    """
    if compressed is None:
        compressed = is_compressed(data)

    if compressed:
        try:
            data = zlib.decompress(data)
        except zlib.error as e:
            raise FormatError(f"Invalid compressed data: {e}") from e

    return TreeDeserializer().deserialize(data)
