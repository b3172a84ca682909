"""
Location source interface.

This module defines the protocol the builder reads locations from and an
in-memory implementation for tests and small data sets.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, List


@dataclass(frozen=True)
class LocationRecord:
    """A named location as read from a source."""
    name: str
    latitude: float
    longitude: float


class LocationSource(ABC):
    """
    Abstract base class for location sources.

    A source yields location records in a stable order. The builder inserts
    them into a quadtree in that order.
    """

    @abstractmethod
    def __iter__(self) -> Iterator[LocationRecord]:
        """Iterate over all records in the source."""
        pass

    def count(self) -> int:
        """
        Number of records in the source.

        Default implementation iterates the source. Subclasses may override
        with something cheaper (e.g. a COUNT query).
        """
        return sum(1 for _ in self)

    def close(self) -> None:
        """Release any resources held by the source."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class InMemorySource(LocationSource):
    """Source backed by a list of records."""

    def __init__(self, records: Iterable[LocationRecord]):
        self._records: List[LocationRecord] = list(records)

    def __iter__(self) -> Iterator[LocationRecord]:
        return iter(self._records)

    def count(self) -> int:
        return len(self._records)
