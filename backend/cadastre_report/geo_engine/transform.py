"""
Geographic -> PDF page coordinate transform.

Linear interpolation inside a WGS84 bbox, scaled independently on each axis
(the page is filled, aspect ratio is not preserved). Page origin is the
bottom-left corner, as in PDF and ReportLab.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

from cadastre_report.geo_engine.bbox import BBox
from cadastre_report.geo_engine.projection import wgs84_to_lambert93


def _scale(offset: float, extent: float, size: float) -> float:
    """``offset / extent * size`` with IEEE float semantics on a zero extent."""
    if extent == 0:
        if offset == 0 or math.isnan(offset):
            return math.nan
        return math.copysign(math.inf, offset) * math.copysign(1.0, extent) * size
    return offset / extent * size


@dataclass(frozen=True)
class GeoToPageTransform:
    """Maps WGS84 (lon, lat) to page (x, y) points for one drawing pass."""
    geo_bbox: BBox
    page_width: float
    page_height: float
    bbox_lambert: tuple[float, float, float, float] = field(init=False)

    def __post_init__(self):
        min_lon, min_lat, max_lon, max_lat = self.geo_bbox
        object.__setattr__(
            self,
            "bbox_lambert",
            wgs84_to_lambert93(min_lon, min_lat) + wgs84_to_lambert93(max_lon, max_lat),
        )

    @property
    def geo_width(self) -> float:
        return self.geo_bbox[2] - self.geo_bbox[0]

    @property
    def geo_height(self) -> float:
        return self.geo_bbox[3] - self.geo_bbox[1]

    def to_pixel(self, lon: float, lat: float) -> tuple[float, float]:
        min_lon, min_lat = self.geo_bbox[0], self.geo_bbox[1]
        px = _scale(lon - min_lon, self.geo_width, self.page_width)
        py = _scale(lat - min_lat, self.geo_height, self.page_height)
        return (px, py)

    def project_ring(self, ring: Sequence[Sequence[float]]) -> list[tuple[float, float]]:
        return [self.to_pixel(float(p[0]), float(p[1])) for p in ring]


def create_geo_to_page_transform(
    geo_bbox: Sequence[float],
    page_width: float,
    page_height: float,
) -> GeoToPageTransform:
    """Create the transform for a [minLon, minLat, maxLon, maxLat] bbox and a page size.

    A zero-width or zero-height bbox is accepted; ``to_pixel`` then returns
    non-finite values on the degenerate axis.
    """
    min_lon, min_lat, max_lon, max_lat = geo_bbox
    return GeoToPageTransform(
        geo_bbox=(float(min_lon), float(min_lat), float(max_lon), float(max_lat)),
        page_width=float(page_width),
        page_height=float(page_height),
    )
