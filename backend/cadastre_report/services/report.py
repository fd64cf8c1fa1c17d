"""
Cadastral map reports.

Levels:
  1. Parcel overlay on a user-supplied PDF plan (bbox given or estimated).
  2. Parcel drawn on a cadastral plan downloaded from the WMS service.
  3. Several parcels on one plan, one colour each, with a legend.
  4. Level 3 plus the buildings on each parcel and a built/unbuilt
     surface summary table.

Every level writes ``<output_dir>/level<N>_<name>.pdf`` and returns its path.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Sequence

from cadastre_report.config import settings
from cadastre_report.geo_engine.bbox import BBox, compute_bbox, expand_bbox
from cadastre_report.geo_engine.geojson import multipolygon_coordinates
from cadastre_report.geo_engine.surfaces import SurfaceRecord, compute_surface_record
from cadastre_report.geo_engine.transform import (
    GeoToPageTransform, create_geo_to_page_transform,
)
from cadastre_report.models.schemas import ParcelFeature
from cadastre_report.services.cadastre import (
    download_cadastral_pdf, fetch_buildings, fetch_parcel_geometry,
    fetch_parcels, parse_parcel_id,
)
from cadastre_report.services.pdf_document import first_page_size, is_pdf, stamp_overlay
from cadastre_report.services.pdf_draw import (
    LegendEntry, build_overlay, color_for,
    draw_legend, draw_multipolygon, draw_summary_table,
)

logger = logging.getLogger(__name__)

# Bbox margins around the drawn parcels
SINGLE_PARCEL_MARGIN = 0.5
MULTI_PARCEL_MARGIN = 0.15

# Styles: (fill opacity, border width)
PARCEL_STYLE = (0.2, 2)
SURFACE_PARCEL_STYLE = (0.15, 2)
BUILDING_STYLE = (0.5, 1)

# Legend / table offset from the page corners
CORNER_OFFSET = 15
SUMMARY_TABLE_WIDTH = 370


@dataclass
class SurfaceReport:
    """Result of a level-4 report."""
    output_path: str
    records: list[SurfaceRecord] = field(default_factory=list)


# ──────────────────────────────────────────────────────────────────
# HELPERS
# ──────────────────────────────────────────────────────────────────

def parcels_bbox(parcels: Sequence[ParcelFeature], margin: float) -> BBox:
    """Bbox enclosing all parcels, expanded by ``margin``."""
    coords: list = []
    for parcel in parcels:
        coords.extend(multipolygon_coordinates(parcel.geometry))
    return expand_bbox(compute_bbox(coords), margin)


def _log_transform(transform: GeoToPageTransform) -> None:
    logger.info(
        "Bbox: [%s] (Lambert-93: [%s])",
        ", ".join(f"{v:.6f}" for v in transform.geo_bbox),
        ", ".join(f"{v:.0f}" for v in transform.bbox_lambert),
    )


def _write_output(pdf_bytes: bytes, filename: str, output_dir: Optional[str]) -> str:
    directory = output_dir or settings.output_dir
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, filename)
    with open(path, "wb") as f:
        f.write(pdf_bytes)
    logger.info("PDF generated: %s", path)
    return path


def _read_pdf(pdf_path: str) -> bytes:
    if not os.path.isfile(pdf_path):
        raise ValueError(f"File not found: {pdf_path}")
    try:
        with open(pdf_path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise ValueError(f"Unable to read file: {pdf_path} ({e})") from e
    if not is_pdf(data):
        raise ValueError(f'The file "{pdf_path}" is not a valid PDF.')
    return data


async def _download_plan(bbox: BBox, width: int | None = None, height: int | None = None) -> bytes:
    logger.info("Downloading cadastral plan PDF via WMS...")
    pdf_bytes = await download_cadastral_pdf(bbox, width=width, height=height)
    logger.info("PDF downloaded: %d bytes", len(pdf_bytes))
    return pdf_bytes


def _draw_parcels(
    base_pdf: bytes,
    parcels: Sequence[ParcelFeature],
    bbox: BBox,
    with_legend: bool,
) -> bytes:
    width, height = first_page_size(base_pdf)
    logger.info("PDF page: %s x %s points", width, height)
    transform = create_geo_to_page_transform(bbox, width, height)
    _log_transform(transform)

    fill, border = PARCEL_STYLE
    entries = [LegendEntry(p.id, color_for(i)) for i, p in enumerate(parcels)]

    def draw(canvas):
        for parcel, entry in zip(parcels, entries):
            draw_multipolygon(
                canvas, multipolygon_coordinates(parcel.geometry), transform,
                entry.color, fill, border,
            )
        if with_legend:
            draw_legend(canvas, entries, CORNER_OFFSET, height - CORNER_OFFSET)

    return stamp_overlay(base_pdf, build_overlay(width, height, draw))


# ──────────────────────────────────────────────────────────────────
# LEVEL 1: USER PDF
# ──────────────────────────────────────────────────────────────────

async def annotate_pdf(
    pdf_path: str,
    parcel_id: str,
    bbox: Sequence[float] | None = None,
    output_dir: Optional[str] = None,
) -> str:
    """Draw a parcel on the first page of an existing PDF plan.

    ``bbox`` is the geographic extent of the page. Without it the extent is
    estimated from the parcel (margin 0.5), which only lines up with plans
    generated the same way.
    """
    parsed = parse_parcel_id(parcel_id)
    logger.info(
        "Parcel: %s (municipality=%s, section=%s, number=%s)",
        parcel_id, parsed.code_insee, parsed.section, parsed.numero,
    )
    pdf_bytes = _read_pdf(pdf_path)

    logger.info("Fetching geometry from cadastre.data.gouv.fr...")
    parcel = await fetch_parcel_geometry(parcel_id)
    logger.info("Parcel found: %s m²", parcel.properties.get("contenance", "?"))

    if bbox is not None:
        page_bbox: BBox = tuple(float(v) for v in bbox)  # type: ignore[assignment]
        logger.info("Bbox (provided): [%s]", ", ".join(str(v) for v in page_bbox))
    else:
        page_bbox = parcels_bbox([parcel], SINGLE_PARCEL_MARGIN)
        logger.info(
            "Bbox is estimated from the parcel. For exact alignment, provide the PDF bbox."
        )

    result = _draw_parcels(pdf_bytes, [parcel], page_bbox, with_legend=False)
    return _write_output(result, f"level1_{parcel_id}.pdf", output_dir)


# ──────────────────────────────────────────────────────────────────
# LEVEL 2: WMS PLAN, ONE PARCEL
# ──────────────────────────────────────────────────────────────────

async def render_parcel_plan(parcel_id: str, output_dir: Optional[str] = None) -> str:
    """Download the cadastral plan around a parcel and draw the parcel on it."""
    parsed = parse_parcel_id(parcel_id)
    logger.info(
        "Parcel: %s (municipality=%s, section=%s, number=%s)",
        parcel_id, parsed.code_insee, parsed.section, parsed.numero,
    )
    parcel = await fetch_parcel_geometry(parcel_id)
    logger.info(
        "Parcel found: %s - %s m²",
        parcel.commune_name, parcel.properties.get("contenance", "?"),
    )

    bbox = parcels_bbox([parcel], SINGLE_PARCEL_MARGIN)
    plan = await _download_plan(bbox)

    result = _draw_parcels(plan, [parcel], bbox, with_legend=False)
    return _write_output(result, f"level2_{parcel_id}.pdf", output_dir)


# ──────────────────────────────────────────────────────────────────
# LEVEL 3: WMS PLAN, SEVERAL PARCELS
# ──────────────────────────────────────────────────────────────────

async def render_parcels_plan(
    parcel_ids: Sequence[str],
    output_dir: Optional[str] = None,
) -> str:
    """Draw several parcels on one plan, each in its own colour, with a legend."""
    if len(parcel_ids) < 2:
        raise ValueError("At least 2 parcel identifiers are required.")

    logger.info("Fetching %d parcels...", len(parcel_ids))
    parcels = await fetch_parcels(parcel_ids)

    bbox = parcels_bbox(parcels, MULTI_PARCEL_MARGIN)
    plan = await _download_plan(bbox, settings.multi_wms_width, settings.multi_wms_height)

    result = _draw_parcels(plan, parcels, bbox, with_legend=True)
    return _write_output(result, f"level3_{len(parcel_ids)}parcelles.pdf", output_dir)


# ──────────────────────────────────────────────────────────────────
# LEVEL 4: BUILT / UNBUILT SURFACES
# ──────────────────────────────────────────────────────────────────

async def _fetch_commune_buildings(parcel_ids: Sequence[str]) -> dict[str, list[dict]]:
    """Building features of every commune the parcels belong to."""
    communes = sorted({parse_parcel_id(pid).code_insee for pid in parcel_ids})
    collections = await asyncio.gather(*(fetch_buildings(c) for c in communes))
    buildings = {}
    for code_insee, collection in zip(communes, collections):
        buildings[code_insee] = collection["features"]
        logger.info("%d buildings loaded for %s", len(collection["features"]), code_insee)
    return buildings


async def render_surface_report(
    parcel_ids: Sequence[str],
    output_dir: Optional[str] = None,
    merge_overlaps: bool = False,
) -> SurfaceReport:
    """Draw parcels and their buildings, with a built/unbuilt surface table."""
    if len(parcel_ids) < 1:
        raise ValueError("At least 1 parcel identifier is required.")

    logger.info("Fetching %d parcel(s)...", len(parcel_ids))
    parcels, buildings = await asyncio.gather(
        fetch_parcels(parcel_ids),
        _fetch_commune_buildings(parcel_ids),
    )

    bbox = parcels_bbox(parcels, MULTI_PARCEL_MARGIN)
    plan = await _download_plan(bbox, settings.multi_wms_width, settings.multi_wms_height)

    width, height = first_page_size(plan)
    logger.info("PDF page: %s x %s points", width, height)
    transform = create_geo_to_page_transform(bbox, width, height)
    _log_transform(transform)

    logger.info("Computing surface areas...")
    records: list[SurfaceRecord] = []
    intersections: list[list[dict]] = []
    for parcel in parcels:
        code_insee = parse_parcel_id(parcel.id).code_insee
        record, built = compute_surface_record(
            parcel.id,
            parcel.geometry,
            buildings[code_insee],
            total_area=parcel.contenance,
            merge_overlaps=merge_overlaps,
        )
        records.append(record)
        intersections.append(built.intersections)
        logger.info(
            "  %s: total=%.0fm², built=%.0fm², occupancy=%.1f%%",
            record.identifier, record.total_area, record.built_area, record.occupancy_rate,
        )

    colors = [color_for(i) for i in range(len(parcels))]
    parcel_fill, parcel_border = SURFACE_PARCEL_STYLE
    building_fill, building_border = BUILDING_STYLE

    def draw(canvas):
        for parcel, overlaps, color in zip(parcels, intersections, colors):
            draw_multipolygon(
                canvas, multipolygon_coordinates(parcel.geometry), transform,
                color, parcel_fill, parcel_border,
            )
            for overlap in overlaps:
                draw_multipolygon(
                    canvas, multipolygon_coordinates(overlap), transform,
                    color, building_fill, building_border,
                )
        draw_legend(
            canvas,
            [LegendEntry(p.id, c) for p, c in zip(parcels, colors)],
            CORNER_OFFSET, height - CORNER_OFFSET,
        )
        draw_summary_table(
            canvas,
            list(zip(records, colors)),
            width - SUMMARY_TABLE_WIDTH - CORNER_OFFSET, height - CORNER_OFFSET,
        )

    result = stamp_overlay(plan, build_overlay(width, height, draw))
    path = _write_output(result, f"level4_{len(parcel_ids)}parcelles.pdf", output_dir)
    return SurfaceReport(output_path=path, records=records)
