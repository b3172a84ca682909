"""Tests for geohash encoding."""

import pytest
from farandnear import geohash


class TestEncode:
    """Tests for geohash.encode."""

    def test_known_value(self):
        """Test a well-known reference geohash."""
        assert geohash.encode(57.64911, 10.40744, 11) == "u4pruydqqvj"

    def test_small_coordinates(self):
        """Test the label used for a (0,0)-(10,10) region."""
        assert geohash.encode(5, 5, 6) == "s0gs3y"

    def test_precision(self):
        """Test that precision sets the length."""
        assert len(geohash.encode(10, 20, 1)) == 1
        assert len(geohash.encode(10, 20, 12)) == 12

    def test_invalid_precision(self):
        """Test that precision < 1 raises error."""
        with pytest.raises(ValueError):
            geohash.encode(0, 0, 0)

    def test_origin(self):
        """Test the cell just south-west of the origin."""
        assert geohash.encode(0, 0, 1) == "7"
