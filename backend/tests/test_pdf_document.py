"""Tests for PDF loading and overlay stamping."""

import pymupdf
import pytest

from cadastre_report.services.pdf_document import first_page_size, is_pdf, stamp_overlay
from cadastre_report.services.pdf_draw import build_overlay


def _pdf(width: float, height: float, text: str) -> bytes:
    return build_overlay(width, height, lambda canvas: canvas.drawString(20, 20, text))


class TestIsPdf:
    def test_pdf_header(self):
        assert is_pdf(b"%PDF-1.7\n...")

    def test_other_bytes(self):
        assert not is_pdf(b"<html></html>")

    def test_too_short(self):
        assert not is_pdf(b"%PD")


class TestFirstPageSize:
    def test_size(self):
        width, height = first_page_size(_pdf(1190, 842, "plan"))
        assert width == pytest.approx(1190)
        assert height == pytest.approx(842)

    def test_not_a_pdf(self):
        with pytest.raises(ValueError, match="not a valid PDF"):
            first_page_size(b"hello world")


class TestStampOverlay:
    def test_overlay_drawn_on_base_page(self):
        base = _pdf(600, 400, "cadastral plan")
        overlay = _pdf(600, 400, "parcel overlay")

        result = stamp_overlay(base, overlay)
        assert is_pdf(result)

        doc = pymupdf.open(stream=result, filetype="pdf")
        try:
            assert doc.page_count == 1
            text = doc[0].get_text()
            assert "cadastral plan" in text
            assert "parcel overlay" in text
        finally:
            doc.close()

    def test_page_size_preserved(self):
        result = stamp_overlay(_pdf(1684, 1190, "plan"), _pdf(1684, 1190, "overlay"))
        assert first_page_size(result) == pytest.approx((1684, 1190))

    def test_invalid_base(self):
        with pytest.raises(ValueError):
            stamp_overlay(b"not a pdf", _pdf(100, 100, "overlay"))
