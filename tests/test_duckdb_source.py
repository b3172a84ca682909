"""Tests for the DuckDB location source."""

import pytest
import duckdb

from farandnear.duckdb_source import DuckDBSource
from farandnear.source import LocationRecord


@pytest.fixture
def cities_csv(tmp_path):
    """CSV file with a header row and one row missing a latitude."""
    path = tmp_path / "cities.csv"
    path.write_text(
        "name,latitude,longitude\n"
        "Portland,45.5152,-122.6784\n"
        "Seattle,47.6062,-122.3321\n"
        "Nowhere,,10.0\n"
        "Sydney,-33.8688,151.2093\n"
    )
    return path


class TestDuckDBSource:
    """Tests for DuckDBSource class."""

    def test_read_csv(self, cities_csv):
        """Test that rows come back in file order."""
        with DuckDBSource(cities_csv) as source:
            records = list(source)

        assert records == [
            LocationRecord("Portland", 45.5152, -122.6784),
            LocationRecord("Seattle", 47.6062, -122.3321),
            LocationRecord("Sydney", -33.8688, 151.2093),
        ]

    def test_counts(self, cities_csv):
        """Test counts of usable and skipped rows."""
        with DuckDBSource(cities_csv) as source:
            assert source.count() == 3
            assert source.skipped_count() == 1

    def test_custom_columns(self, tmp_path):
        """Test reading differently named columns."""
        path = tmp_path / "pois.csv"
        path.write_text("title,lat,lng\nCafe,1.5,2.5\n")

        with DuckDBSource(path, lat_column="lat", lon_column="lng", name_column="title") as source:
            assert list(source) == [LocationRecord("Cafe", 1.5, 2.5)]

    def test_numeric_names(self, tmp_path):
        """Test that numeric name columns are read as text."""
        path = tmp_path / "ids.csv"
        path.write_text("name,latitude,longitude\n42,1.0,2.0\n")

        with DuckDBSource(path) as source:
            assert list(source) == [LocationRecord("42", 1.0, 2.0)]

    def test_read_parquet(self, tmp_path):
        """Test reading a Parquet file."""
        path = tmp_path / "cities.parquet"
        con = duckdb.connect(":memory:")
        con.execute(f"""
            COPY (
                SELECT * FROM (VALUES ('A', 1.0, 2.0), ('B', 3.0, 4.0))
                    AS t(name, latitude, longitude)
            ) TO '{path}' (FORMAT PARQUET)
        """)
        con.close()

        with DuckDBSource(path) as source:
            assert [r.name for r in source] == ["A", "B"]

    def test_small_batches(self, cities_csv):
        """Test that batching does not drop rows."""
        with DuckDBSource(cities_csv, batch_size=1) as source:
            assert len(list(source)) == 3

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            DuckDBSource(tmp_path / "missing.csv")

    def test_unsupported_suffix(self, tmp_path):
        """Test that unknown file types raise ValueError."""
        path = tmp_path / "cities.json"
        path.write_text("[]")
        with pytest.raises(ValueError):
            DuckDBSource(path)

    def test_missing_column(self, tmp_path):
        """Test that a missing column surfaces a DuckDB error."""
        path = tmp_path / "bad.csv"
        path.write_text("name,lat,lon\nA,1,2\n")
        with pytest.raises(duckdb.Error):
            DuckDBSource(path)

    def test_closed(self, cities_csv):
        """Test that a closed source cannot be read."""
        source = DuckDBSource(cities_csv)
        source.close()
        with pytest.raises(RuntimeError):
            list(source)
