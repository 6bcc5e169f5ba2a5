"""Encoded polyline decoding.

Thin wrapper around the ``polyline`` package (Google's precision-5 format)
that turns its assorted failure modes into ``DecodeError``.
"""

from __future__ import annotations

from collections.abc import Sequence

import polyline as polyline_codec

from plotted.errors import DecodeError

PRECISION = 5


def decode(data: bytes | str, activity_id: int | None = None) -> list[tuple[float, float]]:
    """Decode an encoded polyline into ``(lat, lon)`` pairs.

    Args:
        data: Encoded polyline, as cached bytes or a string.
        activity_id: Activity the polyline belongs to, for error reporting.

    Returns:
        Coordinates in recording order.

    Raises:
        DecodeError: If the input is not a well-formed polyline.
    """
    try:
        text = data.decode("ascii") if isinstance(data, bytes) else data
    except UnicodeDecodeError as e:
        raise DecodeError(f"Polyline is not ASCII: {e}", activity_id) from e

    if not text:
        raise DecodeError("Polyline is empty", activity_id)

    # Valid polyline characters are '?' (63) through '~' (126)
    if any(not 63 <= ord(ch) <= 126 for ch in text):
        raise DecodeError("Polyline contains characters outside the encoding alphabet", activity_id)

    try:
        coords = polyline_codec.decode(text, PRECISION)
    except (IndexError, ValueError, TypeError) as e:
        raise DecodeError(f"Malformed polyline: {e}", activity_id) from e

    return [(float(lat), float(lon)) for lat, lon in coords]


def encode(coords: Sequence[tuple[float, float]]) -> str:
    """Encode ``(lat, lon)`` pairs as a precision-5 polyline."""
    return polyline_codec.encode(list(coords), PRECISION)
