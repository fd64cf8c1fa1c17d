"""
French cadastre data access.

Sources:
  1. Etalab cadastre exports (cadastre.data.gouv.fr): one gzipped GeoJSON
     FeatureCollection per commune for parcels and for buildings.
  2. Géoplateforme WMS (data.geopf.fr): the cadastral plan rendered as PDF
     for a WGS84 bounding box.

Parcel identifiers are 14 characters:
  [department 2][commune 3][absorbed commune 3][section 2][number 4]
  e.g. "33063000BW0124" -> INSEE 33063, section BW, number 0124.
"""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
from typing import Sequence

import httpx

from cadastre_report.config import settings
from cadastre_report.geo_engine.bbox import validate_bbox
from cadastre_report.geo_engine.geojson import to_multipolygon
from cadastre_report.models.schemas import ParcelFeature, ParcelId
from cadastre_report.services.cache import (
    get_cached_commune_parcels, set_cached_commune_parcels,
)

logger = logging.getLogger(__name__)

PARCEL_ID_LENGTH = 14
_GZIP_MAGIC = b"\x1f\x8b"


class CadastreError(Exception):
    """Cadastre data could not be downloaded, decoded or found."""


# ──────────────────────────────────────────────────────────────────
# ERRORS
# ──────────────────────────────────────────────────────────────────

def format_http_error(err: Exception, context: str) -> CadastreError:
    """Turn an httpx failure into a CadastreError with a readable message."""
    if isinstance(err, httpx.TimeoutException):
        return CadastreError(f"{context}: request timed out")
    if isinstance(err, httpx.ConnectError):
        return CadastreError(
            f"{context}: unable to reach the server (check your Internet connection)"
        )
    if isinstance(err, httpx.HTTPStatusError):
        status = err.response.status_code
        if status == 404:
            return CadastreError(f"{context}: resource not found (404)")
        return CadastreError(f"{context}: HTTP error {status}")
    if isinstance(err, httpx.HTTPError):
        return CadastreError(f"{context}: network error ({err})")
    return CadastreError(f"{context}: {err}")


# ──────────────────────────────────────────────────────────────────
# PARCEL ID PARSING
# ──────────────────────────────────────────────────────────────────

def parse_parcel_id(parcel_id: str) -> ParcelId:
    """Split a 14-character parcel identifier into its components.

    Raises ValueError if the identifier is not exactly 14 characters.
    """
    if len(parcel_id) != PARCEL_ID_LENGTH:
        raise ValueError(
            f'Invalid parcel identifier: "{parcel_id}" '
            "(expected: 14 characters, e.g. 33063000BW0012)"
        )
    code_dep = parcel_id[0:2]
    return ParcelId(
        code_insee=code_dep + parcel_id[2:5],
        com_abs=parcel_id[5:8],
        section=parcel_id[8:10],
        numero=parcel_id[10:14],
        code_dep=code_dep,
    )


# ──────────────────────────────────────────────────────────────────
# DOWNLOAD HELPERS
# ──────────────────────────────────────────────────────────────────

def _commune_url(code_insee: str, layer: str) -> str:
    code_dep = code_insee[:2]
    return (
        f"{settings.cadastre_base_url}/{code_dep}/{code_insee}/"
        f"cadastre-{code_insee}-{layer}.json.gz"
    )


async def _download(
    url: str,
    context: str,
    timeout: float,
    params: dict | None = None,
) -> bytes:
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            return resp.content
    except httpx.HTTPError as e:
        raise format_http_error(e, context) from e


def _decode_collection(data: bytes, what: str) -> dict:
    """Decode a (possibly already inflated) gzipped GeoJSON FeatureCollection."""
    try:
        raw = gzip.decompress(data) if data[:2] == _GZIP_MAGIC else data
        collection = json.loads(raw.decode("utf-8"))
    except (OSError, EOFError, UnicodeDecodeError, ValueError):
        raise CadastreError(
            f"Unable to decode {what} (corrupted file or unexpected format)"
        ) from None

    if not isinstance(collection, dict) or not isinstance(collection.get("features"), list):
        raise CadastreError(f"Invalid {what}: unexpected GeoJSON format")
    return collection


# ──────────────────────────────────────────────────────────────────
# PARCELS
# ──────────────────────────────────────────────────────────────────

async def fetch_commune_parcels(code_insee: str) -> dict:
    """Fetch all parcels of a commune as a GeoJSON FeatureCollection (cached)."""
    cached = get_cached_commune_parcels(code_insee)
    if cached is not None:
        return cached

    logger.info("Downloading parcels for municipality %s", code_insee)
    data = await _download(
        _commune_url(code_insee, "parcelles"),
        f"Downloading parcels for municipality {code_insee}",
        settings.parcels_timeout,
    )
    collection = _decode_collection(data, f"parcel data for municipality {code_insee}")
    set_cached_commune_parcels(code_insee, collection)
    return collection


async def fetch_parcel_geometry(parcel_id: str) -> ParcelFeature:
    """Fetch one parcel by identifier; Polygon geometries become MultiPolygons.

    Raises ValueError on a malformed identifier and CadastreError if the
    parcel cannot be downloaded or is not in its commune.
    """
    code_insee = parse_parcel_id(parcel_id).code_insee
    collection = await fetch_commune_parcels(code_insee)

    for feature in collection["features"]:
        properties = feature.get("properties") or {}
        if properties.get("id") == parcel_id:
            geometry = feature.get("geometry") or {}
            return ParcelFeature(
                id=parcel_id,
                geometry=to_multipolygon(geometry),
                properties=properties,
            )

    raise CadastreError(f"Parcel not found: {parcel_id} in municipality {code_insee}")


async def fetch_parcels(parcel_ids: Sequence[str]) -> list[ParcelFeature]:
    """Fetch several parcels, in the order given.

    Each commune is downloaded once, concurrently with the others.
    """
    communes = sorted({parse_parcel_id(pid).code_insee for pid in parcel_ids})
    await asyncio.gather(*(fetch_commune_parcels(c) for c in communes))

    features = [await fetch_parcel_geometry(pid) for pid in parcel_ids]
    for feature in features:
        logger.info(
            "  %s: %s - %s m²",
            feature.id, feature.commune_name,
            feature.properties.get("contenance", "?"),
        )
    return features


# ──────────────────────────────────────────────────────────────────
# BUILDINGS
# ──────────────────────────────────────────────────────────────────

async def fetch_buildings(code_insee: str) -> dict:
    """Fetch all building footprints of a commune as a FeatureCollection."""
    logger.info("Downloading buildings for municipality %s", code_insee)
    data = await _download(
        _commune_url(code_insee, "batiments"),
        f"Downloading buildings for municipality {code_insee}",
        settings.parcels_timeout,
    )
    return _decode_collection(data, f"building data for municipality {code_insee}")


# ──────────────────────────────────────────────────────────────────
# WMS CADASTRAL PLAN
# ──────────────────────────────────────────────────────────────────

def build_wms_params(
    bbox: tuple[float, float, float, float],
    width: int,
    height: int,
) -> dict:
    """GetMap parameters for the cadastral plan.

    WMS 1.3.0 with EPSG:4326 uses latitude-first axis order:
    BBOX = min_lat,min_lon,max_lat,max_lon.
    """
    min_lon, min_lat, max_lon, max_lat = bbox
    return {
        "SERVICE": "WMS",
        "VERSION": "1.3.0",
        "REQUEST": "GetMap",
        "LAYERS": settings.wms_layer,
        "CRS": "EPSG:4326",
        "BBOX": f"{min_lat},{min_lon},{max_lat},{max_lon}",
        "WIDTH": width,
        "HEIGHT": height,
        "FORMAT": "application/pdf",
        "STYLES": "",
    }


async def download_cadastral_pdf(
    bbox: Sequence[float],
    width: int | None = None,
    height: int | None = None,
) -> bytes:
    """Download the cadastral plan covering ``bbox`` as PDF bytes.

    Raises ValueError on an empty or inverted bbox and CadastreError when the
    service fails or answers with something other than a PDF.
    """
    checked = validate_bbox(bbox)
    params = build_wms_params(
        checked,
        width or settings.wms_width,
        height or settings.wms_height,
    )

    data = await _download(
        settings.wms_url,
        "Downloading cadastral plan via WMS",
        settings.wms_timeout,
        params=params,
    )

    if data[:5] != b"%PDF-":
        text = data[:500].decode("utf-8", errors="replace")
        if "ServiceException" in text or "Error" in text:
            raise CadastreError(
                "The WMS server returned an error instead of a PDF. "
                f"Check the bbox [{', '.join(str(v) for v in checked)}]."
            )
        raise CadastreError("The WMS server response is not a valid PDF.")

    return data
