"""
Built / unbuilt surface computation for cadastral parcels.

Pipeline:
  1. Intersect the parcel with each building footprint (shapely).
  2. Measure the polygonal part of every overlap on the WGS84 ellipsoid
     (pyproj.Geod), in square meters.
  3. Sum the overlaps into the built area and derive the unbuilt area and the
     occupancy rate against the parcel's total area.

Nuances:
  - Each building is handled on its own. A building whose geometry cannot be
    read or intersected is reported as skipped and contributes nothing; the
    parcel computation always completes.
  - Overlapping buildings are summed as-is, so a shared footprint is counted
    twice. ``merge_overlaps=True`` unions the buildings first instead.
  - Holes in the parcel are subtracted (full polygon semantics), although the
    map only draws outer rings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from typing import Iterable, Optional

from pyproj import Geod
from shapely.errors import ShapelyError
from shapely.geometry import (
    GeometryCollection, MultiPolygon, Polygon, mapping, shape,
)
from shapely.geometry.polygon import orient
from shapely.ops import unary_union

from cadastre_report.geo_engine.geojson import geometry_of

logger = logging.getLogger(__name__)

_GEOD = Geod(ellps="WGS84")

# Errors raised by shapely for malformed coordinates or failed overlays
_GEOMETRY_ERRORS = (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError)


# ──────────────────────────────────────────────────────────────────
# DATA CLASSES
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BuildingIntersection:
    """Outcome of intersecting one building with a parcel."""
    index: int
    area: float = 0.0
    geometry: Optional[dict] = None  # GeoJSON Polygon / MultiPolygon
    skipped_reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.skipped_reason is None


@dataclass
class BuiltAreaResult:
    """Built area of one parcel and the building overlaps it came from."""
    built_area: float = 0.0
    intersections: list[dict] = field(default_factory=list)
    skipped: list[BuildingIntersection] = field(default_factory=list)


@dataclass(frozen=True)
class SurfaceRecord:
    """Surface breakdown of one parcel, in square meters."""
    identifier: str
    total_area: float
    built_area: float
    unbuilt_area: float
    occupancy_rate: float  # percent

    def to_dict(self) -> dict:
        return asdict(self)


# ──────────────────────────────────────────────────────────────────
# GEOMETRY HELPERS
# ──────────────────────────────────────────────────────────────────

def _polygons(geom) -> list[Polygon]:
    """Non-empty polygons contained in any shapely geometry."""
    if geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, (MultiPolygon, GeometryCollection)):
        parts: list[Polygon] = []
        for g in geom.geoms:
            parts.extend(_polygons(g))
        return parts
    # Points and lines (touching boundaries) have no surface
    return []


def _polygonal(geom) -> Polygon | MultiPolygon | None:
    parts = _polygons(geom)
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return MultiPolygon(parts)


def geodesic_area(geometry) -> float:
    """Area in m² of a lon/lat (Multi)Polygon, GeoJSON dict or shapely geometry."""
    geom = shape(geometry_of(geometry)) if isinstance(geometry, dict) else geometry
    total = 0.0
    for poly in _polygons(geom):
        area, _ = _GEOD.geometry_area_perimeter(orient(poly, sign=1.0))
        total += abs(area)
    return total


# ──────────────────────────────────────────────────────────────────
# INTERSECTIONS
# ──────────────────────────────────────────────────────────────────

def _bounds_overlap(a, b) -> bool:
    ax0, ay0, ax1, ay1 = a.bounds
    bx0, by0, bx1, by1 = b.bounds
    return not (bx0 > ax1 or bx1 < ax0 or by0 > ay1 or by1 < ay0)


def _intersect(parcel_geom, building_geom, index: int) -> BuildingIntersection:
    if not _bounds_overlap(parcel_geom, building_geom):
        return BuildingIntersection(index=index, skipped_reason="no overlap")
    try:
        overlap = _polygonal(parcel_geom.intersection(building_geom))
    except _GEOMETRY_ERRORS as e:
        return BuildingIntersection(index=index, skipped_reason=f"intersection failed: {e}")

    if overlap is None:
        return BuildingIntersection(index=index, skipped_reason="no overlap")

    area = geodesic_area(overlap)
    if area <= 0:
        return BuildingIntersection(index=index, skipped_reason="no overlap")
    return BuildingIntersection(index=index, area=area, geometry=mapping(overlap))


def intersect_building(parcel: dict, building: dict, index: int = 0) -> BuildingIntersection:
    """Intersect one building (GeoJSON geometry or Feature) with a parcel."""
    try:
        parcel_geom = shape(geometry_of(parcel))
        building_geom = shape(geometry_of(building))
    except _GEOMETRY_ERRORS as e:
        return BuildingIntersection(index=index, skipped_reason=f"invalid geometry: {e}")
    return _intersect(parcel_geom, building_geom, index)


def compute_built_area(
    parcel: dict,
    buildings: Iterable[dict],
    merge_overlaps: bool = False,
) -> BuiltAreaResult:
    """Sum the areas of the parcel/building overlaps.

    Args:
        parcel: Parcel GeoJSON geometry (or Feature), Polygon or MultiPolygon.
        buildings: Building geometries or Features.
        merge_overlaps: Union the buildings before intersecting, so that
            buildings overlapping each other are counted once.

    Returns a BuiltAreaResult; buildings that could not be intersected or do
    not overlap the parcel are listed in ``skipped``.
    """
    parcel_geom = shape(geometry_of(parcel))
    result = BuiltAreaResult()

    # (position in ``buildings``, footprint) so skips keep the caller's indices
    footprints = []
    for i, building in enumerate(buildings):
        try:
            footprints.append((i, shape(geometry_of(building))))
        except _GEOMETRY_ERRORS as e:
            result.skipped.append(
                BuildingIntersection(index=i, skipped_reason=f"invalid geometry: {e}")
            )

    candidates = footprints
    if merge_overlaps and footprints:
        try:
            # The union is reported under the first valid building's index
            candidates = [(footprints[0][0], unary_union([geom for _, geom in footprints]))]
        except _GEOMETRY_ERRORS as e:
            logger.warning("Building union failed, counting overlaps separately: %s", e)

    for i, building_geom in candidates:
        outcome = _intersect(parcel_geom, building_geom, i)
        if outcome.ok:
            result.built_area += outcome.area
            result.intersections.append(outcome.geometry)
        else:
            result.skipped.append(outcome)

    result.skipped.sort(key=lambda s: s.index)

    failed = [s for s in result.skipped if s.skipped_reason != "no overlap"]
    if failed:
        logger.debug("%d building(s) skipped on invalid geometry", len(failed))
    return result


# ──────────────────────────────────────────────────────────────────
# SURFACE SUMMARY
# ──────────────────────────────────────────────────────────────────

def summarize_surface(identifier: str, total_area: float, built_area: float) -> SurfaceRecord:
    """Derive the unbuilt area (floored at 0) and the occupancy rate in percent."""
    unbuilt_area = max(0.0, total_area - built_area)
    occupancy_rate = (built_area / total_area) * 100 if total_area > 0 else 0.0
    return SurfaceRecord(
        identifier=identifier,
        total_area=total_area,
        built_area=built_area,
        unbuilt_area=unbuilt_area,
        occupancy_rate=occupancy_rate,
    )


def compute_surface_record(
    identifier: str,
    parcel: dict,
    buildings: Iterable[dict],
    total_area: float | None = None,
    merge_overlaps: bool = False,
) -> tuple[SurfaceRecord, BuiltAreaResult]:
    """Surface breakdown of a parcel.

    ``total_area`` is typically the cadastral "contenance"; when missing the
    geodesic area of the parcel geometry is used.
    """
    built = compute_built_area(parcel, buildings, merge_overlaps=merge_overlaps)
    if total_area is None:
        total_area = geodesic_area(parcel)
    return summarize_surface(identifier, float(total_area), built.built_area), built
