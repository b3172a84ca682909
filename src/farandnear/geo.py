"""
Geodesic helpers for converting coordinates into index rectangles.

Points in the index use x for latitude and y for longitude. Search areas
are squares of a given half-side in kilometres around a centre coordinate,
approximated on the WGS-84 ellipsoid.
"""

import math

from .geometry import Point, Rectangle


# Semi-axes of the WGS-84 ellipsoid, in metres
WGS84_A = 6378137.0
WGS84_B = 6356752.3

# Latitude/longitude extents of the whole globe
WORLD_BOUNDS = Rectangle(Point(-90.0, -180.0), Point(90.0, 180.0))


def degrees_to_radians(deg: float) -> float:
    return math.pi * deg / 180


def radians_to_degrees(rad: float) -> float:
    return rad * 180 / math.pi


def wgs84_earth_radius(lat: float) -> float:
    """
    Earth's radius at a given latitude on the WGS-84 ellipsoid.

    Args:
        lat: Latitude in radians

    Returns:
        Radius in metres
    """
    an = WGS84_A * WGS84_A * math.cos(lat)
    bn = WGS84_B * WGS84_B * math.sin(lat)
    ad = WGS84_A * math.cos(lat)
    bd = WGS84_B * math.sin(lat)
    return math.sqrt((an * an + bn * bn) / (ad * ad + bd * bd))


def bounding_box_from_coords(lat: float, lon: float, half_side_km: float) -> Rectangle:
    """
    Build the search rectangle around a coordinate.

    The result uses the index's axis convention (x = latitude,
    y = longitude) and opposite-corner construction. It is not clipped to
    the globe, so it may reach past the poles or the antimeridian.

    Args:
        lat: Centre latitude in degrees
        lon: Centre longitude in degrees
        half_side_km: Half the side of the square, in kilometres

    Returns:
        Rectangle covering the square
    """
    if half_side_km < 0:
        raise ValueError("half_side_km must be non-negative")

    lat_r = degrees_to_radians(lat)
    lon_r = degrees_to_radians(lon)
    half_side = 1000 * half_side_km

    radius = wgs84_earth_radius(lat_r)
    # Radius of the parallel at this latitude; zero at the poles
    parallel_radius = radius * math.cos(lat_r)

    lat_min = radians_to_degrees(lat_r - half_side / radius)
    lat_max = radians_to_degrees(lat_r + half_side / radius)
    if parallel_radius > 0:
        lon_min = radians_to_degrees(lon_r - half_side / parallel_radius)
        lon_max = radians_to_degrees(lon_r + half_side / parallel_radius)
    else:
        lon_min, lon_max = WORLD_BOUNDS.min.y, WORLD_BOUNDS.max.y

    return Rectangle(Point(lat_min, lon_min), Point(lat_max, lon_max))
