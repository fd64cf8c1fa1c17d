"""
WGS84 -> Lambert-93 (EPSG:2154) conversion.

The projection definition is fixed; pyproj does the math.
"""

from __future__ import annotations

from functools import lru_cache

from pyproj import CRS, Transformer

LAMBERT93 = (
    "+proj=lcc +lat_1=49 +lat_2=44 +lat_0=46.5 +lon_0=3 "
    "+x_0=700000 +y_0=6600000 +ellps=GRS80 +towgs84=0,0,0,0,0,0,0 "
    "+units=m +no_defs"
)


@lru_cache(maxsize=1)
def _lambert93_transformer() -> Transformer:
    """Build the WGS84 -> Lambert-93 transformer once per process."""
    return Transformer.from_crs(
        CRS.from_epsg(4326),
        CRS.from_proj4(LAMBERT93),
        always_xy=True,
    )


def wgs84_to_lambert93(lon: float, lat: float) -> tuple[float, float]:
    """Convert a WGS84 (lon, lat) pair in degrees to Lambert-93 (x, y) in meters."""
    x, y = _lambert93_transformer().transform(lon, lat)
    return (float(x), float(y))
