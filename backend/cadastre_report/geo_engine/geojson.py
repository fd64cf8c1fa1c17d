"""Small GeoJSON shape helpers shared by the engine and the services."""

from __future__ import annotations


def geometry_of(obj: dict) -> dict:
    """Return the geometry of a GeoJSON Feature, or the object itself."""
    if obj.get("type") == "Feature":
        return obj.get("geometry") or {}
    return obj


def to_multipolygon(geometry: dict) -> dict:
    """Normalise a Polygon geometry to a MultiPolygon; other types pass through."""
    if geometry.get("type") == "Polygon":
        return {"type": "MultiPolygon", "coordinates": [geometry["coordinates"]]}
    return geometry


def multipolygon_coordinates(geometry: dict) -> list:
    """Coordinates of a (Multi)Polygon as a MultiPolygon array (Position[][][])."""
    geom_type = geometry.get("type", "")
    coords = geometry.get("coordinates", [])
    if geom_type == "Polygon":
        return [coords]
    if geom_type == "MultiPolygon":
        return list(coords)
    return []
