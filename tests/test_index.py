"""Tests for the location index service."""

import threading
from pathlib import Path

import pytest
from farandnear.geometry import Rectangle
from farandnear.index import IndexConfig, Location, LocationIndex
from farandnear.quadtree import OutOfBoundsError
from farandnear.serialize import FormatError, is_compressed


@pytest.fixture
def index():
    """Index with a few west coast cities."""
    idx = LocationIndex(IndexConfig(capacity=2))
    idx.add_location(45.5152, -122.6784, "Portland")
    idx.add_location(45.5231, -122.6765, "Pearl District")
    idx.add_location(47.6062, -122.3321, "Seattle")
    idx.add_location(37.7749, -122.4194, "San Francisco")
    return idx


class TestIndexConfig:
    """Tests for IndexConfig."""

    def test_defaults(self):
        """Test default configuration values."""
        config = IndexConfig()
        assert config.capacity == 32
        assert config.bounds == Rectangle.from_bounds(-90, -180, 90, 180)
        assert config.search_radius_km == 10.0

    def test_invalid_values(self):
        """Test that negative values raise errors."""
        with pytest.raises(ValueError):
            IndexConfig(capacity=-1)
        with pytest.raises(ValueError):
            IndexConfig(search_radius_km=-5)


class TestLocationIndex:
    """Tests for LocationIndex."""

    def test_add_returns_location(self):
        """Test that adding echoes the stored location."""
        idx = LocationIndex()
        loc = idx.add_location(1.5, 2.5, "here")
        assert loc == Location("here", 1.5, 2.5)

    def test_search_nearby(self, index):
        """Test that a search finds nearby locations only."""
        results = index.search(45.52, -122.68)
        names = [loc.name for loc in results]
        assert names == ["Portland", "Pearl District"]

    def test_search_radius(self, index):
        """Test that a larger radius reaches further."""
        names = {loc.name for loc in index.search(45.52, -122.68, radius_km=300)}
        assert names == {"Portland", "Pearl District", "Seattle"}

    def test_search_empty(self, index):
        """Test that searching an empty area returns nothing."""
        assert index.search(0, 0) == []

    def test_search_rectangle(self, index):
        """Test searching with a rectangle in index coordinates."""
        results = index.search_rectangle(Rectangle.from_bounds(37, -123, 38, -122))
        assert [loc.name for loc in results] == ["San Francisco"]

    def test_out_of_bounds(self):
        """Test that coordinates outside the index are rejected."""
        idx = LocationIndex(IndexConfig(bounds=Rectangle.from_bounds(40, -130, 50, -120)))
        with pytest.raises(OutOfBoundsError):
            idx.add_location(-33.8688, 151.2093, "Sydney")
        assert idx.stats()["locations"] == 0

    def test_stats(self, index):
        """Test summary counts."""
        stats = index.stats()
        assert stats["capacity"] == 2
        assert stats["locations"] == 4
        assert stats["nodes"] > 1
        assert stats["depth"] >= 1

    def test_label(self):
        """Test the label of the whole globe."""
        assert LocationIndex().label(1) == "7"

    def test_location_to_dict(self):
        """Test the response representation."""
        loc = Location("Portland", 45.5, -122.6)
        assert loc.to_dict() == {"name": "Portland", "latitude": 45.5, "longitude": -122.6}

    def test_concurrent_adds(self):
        """Test that concurrent writers do not lose locations."""
        idx = LocationIndex(IndexConfig(capacity=4))

        def worker(offset):
            for i in range(100):
                idx.add_location(offset + i * 0.01, offset - i * 0.01, f"{offset}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert idx.stats()["locations"] == 400


class TestPersistence:
    """Tests for saving and loading snapshots."""

    def test_save_load(self, index, tmp_path):
        """Test that a reloaded index answers searches identically."""
        path = tmp_path / "index.json"
        index.save(path)

        restored = LocationIndex.load(path)
        assert restored.search(45.52, -122.68) == index.search(45.52, -122.68)
        assert restored.stats() == index.stats()

    def test_save_load_compressed(self, index, tmp_path):
        """Test round trip through a compressed snapshot."""
        path = tmp_path / "index.json.z"
        index.save(path, compress=True)

        restored = LocationIndex.load(path)
        assert restored.stats() == index.stats()

    def test_loaded_index_accepts_inserts(self, index, tmp_path):
        """Test that a restored index keeps working."""
        path = tmp_path / "index.json"
        index.save(path)

        restored = LocationIndex.load(path)
        restored.add_location(45.5200, -122.6800, "Downtown")
        names = [loc.name for loc in restored.search(45.52, -122.68)]
        assert "Downtown" in names

    def test_loaded_config_follows_snapshot(self, index):
        """Test that capacity and bounds come from the snapshot."""
        restored = LocationIndex.from_bytes(index.to_bytes(), IndexConfig(capacity=99))
        assert restored.config.capacity == 2
        assert restored.bounds == index.bounds

    def test_load_missing(self, tmp_path):
        """Test that a missing snapshot raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            LocationIndex.load(tmp_path / "missing.json")

    def test_load_corrupt(self, tmp_path):
        """Test that a corrupt snapshot raises FormatError."""
        path = tmp_path / "bad.json"
        path.write_bytes(b'{"capacity": -3}')
        with pytest.raises(FormatError):
            LocationIndex.load(path)

    def test_save_keeps_loaded_compression(self, index, tmp_path):
        """Test that saving a loaded index keeps its snapshot's compression."""
        path = tmp_path / "index.json.z"
        index.save(path, compress=True)

        restored = LocationIndex.load(path)
        restored.add_location(45.5200, -122.6800, "Downtown")
        restored.save(path)
        assert is_compressed(path.read_bytes())

        restored.save(path, compress=False)
        assert not is_compressed(path.read_bytes())

    def test_save_overwrites_without_leftovers(self, index, tmp_path):
        """Test that saving over a snapshot leaves only the snapshot."""
        path = tmp_path / "index.json"
        path.write_bytes(b"old")
        index.save(path)

        assert LocationIndex.load(path).stats() == index.stats()
        assert [p.name for p in tmp_path.iterdir()] == ["index.json"]

    def test_failed_save_keeps_previous_snapshot(self, index, tmp_path, monkeypatch):
        """Test that a write failure leaves the old snapshot untouched."""
        path = tmp_path / "index.json"
        index.save(path)
        before = path.read_bytes()

        def failing_write(self, data):
            with open(self, "wb") as f:
                f.write(data[:10])
            raise OSError("disk full")

        index.add_location(45.5200, -122.6800, "Downtown")
        monkeypatch.setattr(Path, "write_bytes", failing_write)
        with pytest.raises(OSError):
            index.save(path)
        monkeypatch.undo()

        assert path.read_bytes() == before
        assert [p.name for p in tmp_path.iterdir()] == ["index.json"]
