"""
DuckDB-based location source.

This module reads named locations from CSV or Parquet files through DuckDB,
so large point data sets can be bulk loaded into the index without a
separate parsing step.
"""

from pathlib import Path
from typing import Iterator, Optional
import logging

import duckdb

from .source import LocationRecord, LocationSource


logger = logging.getLogger(__name__)

_READERS = {
    ".csv": "read_csv_auto",
    ".tsv": "read_csv_auto",
    ".txt": "read_csv_auto",
    ".parquet": "read_parquet",
}


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class DuckDBSource(LocationSource):
    """
    Location source reading a CSV or Parquet file with DuckDB.

    Rows with a NULL latitude or longitude are skipped. A NULL name is read
    as an empty string. Rows are yielded in file order, which DuckDB keeps
    because insertion order preservation is on by default.
    """

    def __init__(
        self,
        path: Path,
        lat_column: str = "latitude",
        lon_column: str = "longitude",
        name_column: str = "name",
        batch_size: int = 10000,
    ):
        """
        Initialize the DuckDB source.

        Args:
            path: Path to a .csv, .tsv, .txt or .parquet file
            lat_column: Name of the latitude column
            lon_column: Name of the longitude column
            name_column: Name of the column holding each location's name
            batch_size: Rows fetched from DuckDB per round trip
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Location file not found: {path}")

        reader = _READERS.get(path.suffix.lower())
        if reader is None:
            raise ValueError(
                f"Unsupported file type {path.suffix!r}; expected one of "
                f"{', '.join(sorted(_READERS))}"
            )
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.path = path
        self.lat_column = lat_column
        self.lon_column = lon_column
        self.name_column = name_column
        self.batch_size = batch_size

        self._con: Optional[duckdb.DuckDBPyConnection] = duckdb.connect(":memory:")
        self._load_file(reader)

    def _load_file(self, reader: str) -> None:
        """Load the file into a table."""
        self._con.execute(f"""
            CREATE TABLE locations AS
            SELECT
                CAST({_quote_identifier(self.name_column)} AS VARCHAR) AS name,
                CAST({_quote_identifier(self.lat_column)} AS DOUBLE) AS latitude,
                CAST({_quote_identifier(self.lon_column)} AS DOUBLE) AS longitude
            FROM {reader}({_quote_literal(str(self.path))})
        """)
        logger.info("Loaded %d rows from %s", self.count(), self.path)

    def __iter__(self) -> Iterator[LocationRecord]:
        if self._con is None:
            raise RuntimeError("DuckDBSource is closed")

        cursor = self._con.cursor()
        try:
            cursor.execute("""
                SELECT name, latitude, longitude
                FROM locations
                WHERE latitude IS NOT NULL AND longitude IS NOT NULL
            """)
            while True:
                rows = cursor.fetchmany(self.batch_size)
                if not rows:
                    break
                for name, lat, lon in rows:
                    yield LocationRecord(name or "", lat, lon)
        finally:
            cursor.close()

    def count(self) -> int:
        """Number of rows with both coordinates present."""
        if self._con is None:
            raise RuntimeError("DuckDBSource is closed")
        (n,) = self._con.execute("""
            SELECT count(*) FROM locations
            WHERE latitude IS NOT NULL AND longitude IS NOT NULL
        """).fetchone()
        return n

    def skipped_count(self) -> int:
        """Number of rows dropped for a missing coordinate."""
        if self._con is None:
            raise RuntimeError("DuckDBSource is closed")
        (n,) = self._con.execute("""
            SELECT count(*) FROM locations
            WHERE latitude IS NULL OR longitude IS NULL
        """).fetchone()
        return n

    def close(self) -> None:
        """Close the database connection."""
        if getattr(self, "_con", None) is not None:
            self._con.close()
            self._con = None

    def __del__(self):
        """Cleanup on garbage collection."""
        self.close()
