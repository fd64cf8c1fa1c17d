"""
Bounding boxes over GeoJSON (Multi)Polygon coordinate arrays.

A bbox is always ``(min_lon, min_lat, max_lon, max_lat)`` in WGS84 degrees.
"""

from __future__ import annotations

import math
from typing import Iterator, Sequence

BBox = tuple[float, float, float, float]


def iter_positions(coordinates: Sequence) -> Iterator[Sequence[float]]:
    """Yield every [lon, lat] position of a MultiPolygon coordinate array.

    Polygon and ring boundaries are ignored: holes contribute like outer rings.
    """
    for polygon in coordinates:
        for ring in polygon:
            yield from ring


def compute_bbox(coordinates: Sequence) -> BBox:
    """Compute the bounding box of MultiPolygon coordinates (Position[][][]).

    Raises ValueError when there is no position at all.
    """
    lons: list[float] = []
    lats: list[float] = []
    for position in iter_positions(coordinates):
        lons.append(position[0])
        lats.append(position[1])

    if not lons:
        raise ValueError("Cannot compute a bounding box: geometry has no coordinates.")

    return (min(lons), min(lats), max(lons), max(lats))


def expand_bbox(bbox: BBox, margin: float = 0.1) -> BBox:
    """Expand a bbox by a fraction of its width/height on every side.

    ``margin=0.1`` adds 10% of the width on the left and on the right (and 10%
    of the height at the bottom and top). Negative margins shrink the box.
    """
    min_lon, min_lat, max_lon, max_lat = bbox
    d_lon = (max_lon - min_lon) * margin
    d_lat = (max_lat - min_lat) * margin
    return (min_lon - d_lon, min_lat - d_lat, max_lon + d_lon, max_lat + d_lat)


def validate_bbox(bbox: Sequence[float]) -> BBox:
    """Check that a bbox has four values and a non-zero extent on both axes.

    Returns the bbox as a tuple of floats, raises ValueError otherwise.
    """
    if len(bbox) != 4:
        raise ValueError(
            f"Invalid bbox: {list(bbox)}. Expected 4 values: minLon,minLat,maxLon,maxLat."
        )
    min_lon, min_lat, max_lon, max_lat = (float(v) for v in bbox)
    if any(math.isnan(v) for v in (min_lon, min_lat, max_lon, max_lat)):
        raise ValueError(f"Invalid bbox: {list(bbox)}. Values must be numbers.")
    if min_lon >= max_lon or min_lat >= max_lat:
        raise ValueError(
            f"Invalid bbox: [{min_lon}, {min_lat}, {max_lon}, {max_lat}]. "
            "Ensure minLon < maxLon and minLat < maxLat."
        )
    return (min_lon, min_lat, max_lon, max_lat)

