"""Loading PDF plans and stamping drawn overlays onto them (PyMuPDF)."""

from __future__ import annotations

import pymupdf


def is_pdf(data: bytes) -> bool:
    return len(data) >= 5 and data[:5] == b"%PDF-"


def _open(pdf_bytes: bytes) -> pymupdf.Document:
    if not is_pdf(pdf_bytes):
        raise ValueError("The file is not a valid PDF.")
    try:
        doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
    except RuntimeError as e:
        raise ValueError(f"Unable to load PDF: {e}") from e
    if doc.page_count == 0:
        doc.close()
        raise ValueError("Unable to load PDF: the document has no pages")
    return doc


def first_page_size(pdf_bytes: bytes) -> tuple[float, float]:
    """Width and height of the first page, in points."""
    doc = _open(pdf_bytes)
    try:
        rect = doc[0].rect
        return (rect.width, rect.height)
    finally:
        doc.close()


def stamp_overlay(base_pdf: bytes, overlay_pdf: bytes) -> bytes:
    """Draw page 1 of ``overlay_pdf`` on top of page 1 of ``base_pdf``."""
    doc = _open(base_pdf)
    overlay = _open(overlay_pdf)
    try:
        page = doc[0]
        page.show_pdf_page(page.rect, overlay, 0)
        return doc.tobytes(garbage=3, deflate=True)
    finally:
        overlay.close()
        doc.close()
