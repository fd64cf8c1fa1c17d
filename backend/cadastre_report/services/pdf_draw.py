"""
ReportLab drawing of parcels, legend and surface table.

Everything is drawn on a transparent overlay page of the same size as the
cadastral plan; the overlay is then stamped onto the plan (see
``pdf_document.stamp_overlay``). Page coordinates have their origin at the
bottom-left corner.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Sequence

from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from cadastre_report.geo_engine.surfaces import SurfaceRecord
from cadastre_report.geo_engine.transform import GeoToPageTransform


@dataclass(frozen=True)
class DrawColor:
    r: float
    g: float
    b: float


@dataclass(frozen=True)
class LegendEntry:
    label: str
    color: DrawColor


# Palette used to tell parcels apart (cycled)
COLORS: list[DrawColor] = [
    DrawColor(1, 0, 0),        # red
    DrawColor(0, 0.4, 1),      # blue
    DrawColor(0, 0.7, 0.2),    # green
    DrawColor(1, 0.5, 0),      # orange
    DrawColor(0.6, 0, 0.8),    # purple
    DrawColor(0, 0.8, 0.8),    # cyan
    DrawColor(0.8, 0.8, 0),    # dark yellow
    DrawColor(1, 0, 0.6),      # pink
]

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"


def color_for(index: int) -> DrawColor:
    return COLORS[index % len(COLORS)]


# ──────────────────────────────────────────────────────────────────
# POLYGONS
# ──────────────────────────────────────────────────────────────────

def draw_polygon(
    canvas: Canvas,
    rings: Sequence,
    transform: GeoToPageTransform,
    color: DrawColor,
    fill_opacity: float = 0.2,
    border_width: float = 2,
) -> bool:
    """Draw the outer ring of one polygon. Returns False if it was skipped."""
    if not rings:
        return False
    outer = rings[0]
    if not outer or len(outer) < 3:
        return False

    points = transform.project_ring(outer)

    canvas.saveState()
    canvas.setFillColorRGB(color.r, color.g, color.b, alpha=fill_opacity)
    canvas.setStrokeColorRGB(color.r, color.g, color.b, alpha=1)
    canvas.setLineWidth(border_width)
    canvas.setLineJoin(1)

    path = canvas.beginPath()
    path.moveTo(*points[0])
    for x, y in points[1:]:
        path.lineTo(x, y)
    path.close()
    canvas.drawPath(path, stroke=1 if border_width > 0 else 0, fill=1)
    canvas.restoreState()
    return True


def draw_multipolygon(
    canvas: Canvas,
    coordinates: Sequence,
    transform: GeoToPageTransform,
    color: DrawColor,
    fill_opacity: float = 0.2,
    border_width: float = 2,
) -> int:
    """Draw every polygon of MultiPolygon coordinates with the same style.

    Returns the number of polygons actually drawn (degenerate rings are skipped).
    """
    drawn = 0
    for polygon in coordinates:
        if draw_polygon(canvas, polygon, transform, color, fill_opacity, border_width):
            drawn += 1
    return drawn


# ──────────────────────────────────────────────────────────────────
# LEGEND
# ──────────────────────────────────────────────────────────────────

def legend_size(entries: Sequence[LegendEntry]) -> tuple[float, float]:
    """Width and height of the legend box, in points."""
    font_size, line_height, box_size, padding, title_height = 9, 16, 10, 10, 18
    height = title_height + len(entries) * line_height + padding * 2
    label_width = max(
        (stringWidth(e.label, FONT, font_size) for e in entries), default=0,
    )
    width = padding * 2 + box_size + 8 + label_width
    return width, height


def draw_legend(
    canvas: Canvas,
    entries: Sequence[LegendEntry],
    x: float,
    y: float,
) -> None:
    """Draw a legend box with coloured squares and labels.

    *x, y* is the top-left corner of the box.
    """
    font_size, line_height, box_size, padding, title_height = 9, 16, 10, 10, 18
    width, height = legend_size(entries)

    canvas.saveState()

    # White, slightly transparent background
    canvas.setFillColorRGB(1, 1, 1, alpha=0.9)
    canvas.setStrokeColorRGB(0.3, 0.3, 0.3)
    canvas.setLineWidth(1)
    canvas.rect(x, y - height, width, height, stroke=1, fill=1)

    canvas.setFillColorRGB(0, 0, 0, alpha=1)
    canvas.setFont(FONT_BOLD, 11)
    canvas.drawString(x + padding, y - padding - 12, "Legend")

    for i, entry in enumerate(entries):
        entry_y = y - title_height - padding - i * line_height
        c = entry.color
        canvas.setFillColorRGB(c.r, c.g, c.b, alpha=0.6)
        canvas.setStrokeColorRGB(c.r, c.g, c.b)
        canvas.rect(x + padding, entry_y - box_size + 2, box_size, box_size, stroke=1, fill=1)

        canvas.setFillColorRGB(0, 0, 0, alpha=1)
        canvas.setFont(FONT, font_size)
        canvas.drawString(x + padding + box_size + 8, entry_y - box_size + 4, entry.label)

    canvas.restoreState()


# ──────────────────────────────────────────────────────────────────
# SURFACE SUMMARY TABLE
# ──────────────────────────────────────────────────────────────────

TABLE_COLUMN_WIDTHS = [110, 65, 65, 65, 50]  # parcel, total, built, unbuilt, %
TABLE_HEADERS = ["Parcel", "Total (m²)", "Built (m²)", "Unbuilt", "% Occ."]
TABLE_PADDING = 10
TABLE_WIDTH = sum(TABLE_COLUMN_WIDTHS) + TABLE_PADDING * 2


def format_table_row(record: SurfaceRecord) -> list[str]:
    """Cell texts for one parcel (the parcel label is its last 6 characters)."""
    return [
        record.identifier[-6:],
        f"{record.total_area:.0f}",
        f"{record.built_area:.0f}",
        f"{record.unbuilt_area:.0f}",
        f"{record.occupancy_rate:.1f}%",
    ]


def draw_summary_table(
    canvas: Canvas,
    rows: Sequence[tuple[SurfaceRecord, DrawColor]],
    x: float,
    y: float,
) -> None:
    """Draw the surface area summary table; *x, y* is its top-left corner."""
    font_size, header_font_size, line_height = 8, 9, 16
    padding = TABLE_PADDING
    title_height, header_height = 22, 18
    height = title_height + header_height + len(rows) * line_height + padding * 2

    canvas.saveState()

    # Background
    canvas.setFillColorRGB(1, 1, 1, alpha=0.95)
    canvas.setStrokeColorRGB(0.2, 0.2, 0.2)
    canvas.setLineWidth(1.5)
    canvas.rect(x, y - height, TABLE_WIDTH, height, stroke=1, fill=1)

    current_y = y - padding - 14

    # Title
    canvas.setFillColorRGB(0.2, 0.2, 0.5, alpha=1)
    canvas.setFont(FONT_BOLD, 11)
    canvas.drawString(x + padding, current_y, "Surface area summary")
    current_y -= title_height

    # Column headers
    canvas.setFillColorRGB(0.3, 0.3, 0.3, alpha=1)
    canvas.setFont(FONT_BOLD, header_font_size)
    col_x = x + padding
    for header, col_w in zip(TABLE_HEADERS, TABLE_COLUMN_WIDTHS):
        canvas.drawString(col_x, current_y, header)
        col_x += col_w

    # Separator
    current_y -= 6
    canvas.setStrokeColorRGB(0.7, 0.7, 0.7)
    canvas.setLineWidth(0.5)
    canvas.line(x + padding, current_y, x + TABLE_WIDTH - padding, current_y)
    current_y -= line_height - 4

    # Rows
    canvas.setFont(FONT, font_size)
    for record, color in rows:
        col_x = x + padding
        canvas.setFillColorRGB(color.r, color.g, color.b, alpha=0.7)
        canvas.rect(col_x, current_y - 2, 8, 8, stroke=0, fill=1)

        canvas.setFillColorRGB(0, 0, 0, alpha=1)
        cells = format_table_row(record)
        canvas.drawString(col_x + 12, current_y, cells[0])
        col_x += TABLE_COLUMN_WIDTHS[0]
        for cell, col_w in zip(cells[1:], TABLE_COLUMN_WIDTHS[1:]):
            canvas.drawString(col_x, current_y, cell)
            col_x += col_w
        current_y -= line_height

    canvas.restoreState()


# ──────────────────────────────────────────────────────────────────
# OVERLAY PAGE
# ──────────────────────────────────────────────────────────────────

def build_overlay(
    page_width: float,
    page_height: float,
    draw: Callable[[Canvas], None],
) -> bytes:
    """Render a single transparent page of the given size and return PDF bytes."""
    buf = BytesIO()
    canvas = Canvas(buf, pagesize=(page_width, page_height))
    draw(canvas)
    canvas.showPage()
    canvas.save()
    return buf.getvalue()
