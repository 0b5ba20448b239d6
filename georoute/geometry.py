"""Geographic points, distances, rounding and Google encoded polylines."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Point:
    """A geographic coordinate in degrees."""

    lat: float = 0.0
    lng: float = 0.0


def _round_half_away(value: float) -> float:
    if not math.isfinite(value):
        return value
    whole = math.trunc(value)
    if abs(value - whole) >= 0.5:
        whole += math.copysign(1, value)
    return float(whole)


def round_to(value: float, places: int) -> float:
    """Round to ``places`` decimals, halves away from zero."""
    scale = 10.0**places
    return _round_half_away(value * scale) / scale


def haversine(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _encode_value(value: int, out: list[str]) -> None:
    value <<= 1
    if value < 0:
        value = ~value
    while value >= 0x20:
        out.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    out.append(chr(value + 63))


def encode_polyline(points: Iterable[Point]) -> str:
    """Encode points with Google's Encoded Polyline Algorithm."""
    out: list[str] = []
    prev_lat = prev_lng = 0
    for p in points:
        lat = int(_round_half_away(p.lat * 1e5))
        lng = int(_round_half_away(p.lng * 1e5))
        _encode_value(lat - prev_lat, out)
        _encode_value(lng - prev_lng, out)
        prev_lat, prev_lng = lat, lng
    return "".join(out)


def _decode_value(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise ValueError("truncated polyline")
        b = data[pos] - 63
        pos += 1
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            break
        if shift > 30:
            raise ValueError("polyline chunk too long")
    if result & 1:
        return ~(result >> 1), pos
    return result >> 1, pos


def decode_polyline(encoded: str) -> list[Point]:
    """Decode a Google encoded polyline; raises ValueError when malformed."""
    data = encoded.encode("utf-8")
    points: list[Point] = []
    pos = 0
    lat = lng = 0
    while pos < len(data):
        d_lat, pos = _decode_value(data, pos)
        d_lng, pos = _decode_value(data, pos)
        lat += d_lat
        lng += d_lng
        points.append(Point(lat=lat / 1e5, lng=lng / 1e5))
    return points