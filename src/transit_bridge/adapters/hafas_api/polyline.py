"""Decoder for the Encoded Polyline Algorithm Format.

See https://developers.google.com/maps/documentation/utilities/polylinealgorithm
"""

from transit_bridge.domain.errors import MalformedResponseError
from transit_bridge.domain.models import Point


def _read_value(encoded: str, index: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise MalformedResponseError("Truncated polyline", encoded)
        chunk = ord(encoded[index]) - 63
        index += 1
        if chunk < 0:
            raise MalformedResponseError("Invalid polyline character", encoded)
        result |= (chunk & 0x1F) << shift
        shift += 5
        if chunk < 0x20:
            break
    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode_polyline(encoded: str) -> tuple[Point, ...]:
    """Decode a polyline with 1e5 precision into micro-degree points."""
    path = []
    lat = 0
    lon = 0
    index = 0
    while index < len(encoded):
        lat_delta, index = _read_value(encoded, index)
        lon_delta, index = _read_value(encoded, index)
        lat += lat_delta
        lon += lon_delta
        path.append(Point(lat=lat * 10, lon=lon * 10))
    return tuple(path)
