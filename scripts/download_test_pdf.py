#!/usr/bin/env python3
"""
Download a sample cadastral plan PDF for manual testing of the overlay mode.

Fetches the parcel geometry, computes its bbox (margin 0.5) and saves the WMS
plan to ressources/plan.pdf. The printed bbox can be passed back to
``cadastre-report overlay --bbox`` for an exact alignment.

Usage:
    python3 scripts/download_test_pdf.py [PARCEL_ID]
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Add backend to path for direct import mode
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT_DIR = os.path.dirname(SCRIPT_DIR)
sys.path.insert(0, os.path.join(ROOT_DIR, "backend"))

from cadastre_report.services.cadastre import (  # noqa: E402
    CadastreError, download_cadastral_pdf, fetch_parcel_geometry,
)
from cadastre_report.services.report import SINGLE_PARCEL_MARGIN, parcels_bbox  # noqa: E402

SAMPLE_PARCEL = "33063000BW0124"
OUTPUT_PATH = os.path.join(ROOT_DIR, "ressources", "plan.pdf")


async def main():
    parser = argparse.ArgumentParser(description="Download a sample cadastral plan PDF")
    parser.add_argument("parcel_id", nargs="?", default=SAMPLE_PARCEL)
    parser.add_argument("--output", default=OUTPUT_PATH, help="Where to write the PDF")
    args = parser.parse_args()

    print(f"Parcel: {args.parcel_id}")
    parcel = await fetch_parcel_geometry(args.parcel_id)
    bbox = parcels_bbox([parcel], SINGLE_PARCEL_MARGIN)
    print(f"Bbox: {' '.join(f'{v:.6f}' for v in bbox)}")

    pdf_bytes = await download_cadastral_pdf(bbox)
    os.makedirs(os.path.dirname(args.output), exist_ok=True)
    with open(args.output, "wb") as f:
        f.write(pdf_bytes)
    print(f"Saved {len(pdf_bytes)} bytes to {args.output}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (ValueError, CadastreError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
