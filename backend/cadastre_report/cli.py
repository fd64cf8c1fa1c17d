"""
Command line entry point.

Usage:
    cadastre-report overlay plan.pdf 33063000BW0124 --bbox -0.58 44.83 -0.57 44.84
    cadastre-report plan 33063000BW0124
    cadastre-report multi 33063000BW0124 33063000BW0125
    cadastre-report surfaces 33063000BW0124 33063000BW0125 --merge-overlaps
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from cadastre_report.config import settings
from cadastre_report.geo_engine.bbox import validate_bbox
from cadastre_report.services.cadastre import CadastreError
from cadastre_report.services.report import (
    annotate_pdf, render_parcel_plan, render_parcels_plan, render_surface_report,
)

logger = logging.getLogger("cadastre_report")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cadastre-report",
        description="Draw French cadastral parcels on PDF plans",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--output-dir", default=None,
        help=f"Output directory (default: {settings.output_dir})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    overlay = sub.add_parser("overlay", help="Draw a parcel on an existing PDF plan")
    overlay.add_argument("pdf", help="PDF plan to annotate")
    overlay.add_argument("parcel_id", help="14-character parcel identifier")
    overlay.add_argument(
        "--bbox", nargs=4, type=float, default=None,
        metavar=("MIN_LON", "MIN_LAT", "MAX_LON", "MAX_LAT"),
        help="Geographic extent of the page",
    )

    plan = sub.add_parser("plan", help="Download the cadastral plan and draw one parcel")
    plan.add_argument("parcel_id", help="14-character parcel identifier")

    multi = sub.add_parser("multi", help="Draw several parcels on one plan")
    multi.add_argument("parcel_ids", nargs="+", help="At least 2 parcel identifiers")

    surfaces = sub.add_parser("surfaces", help="Built / unbuilt surface report")
    surfaces.add_argument("parcel_ids", nargs="+", help="Parcel identifiers")
    surfaces.add_argument(
        "--merge-overlaps", action="store_true",
        help="Count overlapping buildings once",
    )
    return parser


async def run(args: argparse.Namespace) -> str:
    """Run the selected report and return the written PDF path."""
    if args.command == "overlay":
        bbox = validate_bbox(args.bbox) if args.bbox is not None else None
        return await annotate_pdf(args.pdf, args.parcel_id, bbox, args.output_dir)
    if args.command == "plan":
        return await render_parcel_plan(args.parcel_id, args.output_dir)
    if args.command == "multi":
        return await render_parcels_plan(args.parcel_ids, args.output_dir)

    report = await render_surface_report(
        args.parcel_ids, args.output_dir, merge_overlaps=args.merge_overlaps,
    )
    for record in report.records:
        logger.info(
            "%s: total=%.0f m², built=%.0f m², unbuilt=%.0f m², occupancy=%.1f%%",
            record.identifier, record.total_area, record.built_area,
            record.unbuilt_area, record.occupancy_rate,
        )
    return report.output_path


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        path = asyncio.run(run(args))
    except (ValueError, CadastreError) as e:
        logger.error("%s", e)
        return 1

    logger.info("Done: %s", path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
