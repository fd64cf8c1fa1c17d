"""Coordinate transforms, bounding boxes and surface computations."""

from __future__ import annotations

from cadastre_report.geo_engine.bbox import compute_bbox, expand_bbox, validate_bbox
from cadastre_report.geo_engine.projection import wgs84_to_lambert93
from cadastre_report.geo_engine.surfaces import (
    SurfaceRecord, compute_built_area, compute_surface_record, summarize_surface,
)
from cadastre_report.geo_engine.transform import (
    GeoToPageTransform, create_geo_to_page_transform,
)

__all__ = [
    "compute_bbox", "expand_bbox", "validate_bbox",
    "wgs84_to_lambert93",
    "SurfaceRecord", "compute_built_area", "compute_surface_record", "summarize_surface",
    "GeoToPageTransform", "create_geo_to_page_transform",
]
