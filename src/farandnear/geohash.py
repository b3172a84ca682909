"""
Base-32 geohash encoding.

Geohashes interleave longitude and latitude bisection bits (longitude
first) and emit one base-32 character per five bits.
"""


BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"


def encode(lat: float, lon: float, precision: int = 12) -> str:
    """
    Encode a coordinate as a geohash.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees
        precision: Number of characters to emit

    Returns:
        Geohash string of length precision
    """
    if precision < 1:
        raise ValueError("precision must be at least 1")

    lat_interval = [-90.0, 90.0]
    lon_interval = [-180.0, 180.0]
    chars = []
    bit = 0
    ch = 0
    even = True

    while len(chars) < precision:
        if even:
            mid = (lon_interval[0] + lon_interval[1]) / 2
            if lon > mid:
                ch |= 1 << (4 - bit)
                lon_interval[0] = mid
            else:
                lon_interval[1] = mid
        else:
            mid = (lat_interval[0] + lat_interval[1]) / 2
            if lat > mid:
                ch |= 1 << (4 - bit)
                lat_interval[0] = mid
            else:
                lat_interval[1] = mid

        even = not even
        if bit < 4:
            bit += 1
        else:
            chars.append(BASE32[ch])
            bit = 0
            ch = 0

    return "".join(chars)
