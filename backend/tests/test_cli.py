"""Tests for command line parsing and exit codes."""

from unittest.mock import AsyncMock, patch

import pytest

from cadastre_report.cli import build_parser, main
from cadastre_report.geo_engine.surfaces import SurfaceRecord
from cadastre_report.services.cadastre import CadastreError
from cadastre_report.services.report import SurfaceReport


class TestParser:
    def test_overlay_with_bbox(self):
        args = build_parser().parse_args(
            ["overlay", "plan.pdf", "33063000BW0124", "--bbox", "-0.58", "44.83", "-0.57", "44.84"]
        )
        assert args.command == "overlay"
        assert args.pdf == "plan.pdf"
        assert args.bbox == [-0.58, 44.83, -0.57, 44.84]

    def test_overlay_without_bbox(self):
        args = build_parser().parse_args(["overlay", "plan.pdf", "33063000BW0124"])
        assert args.bbox is None

    def test_invalid_bbox_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["overlay", "plan.pdf", "33063000BW0124", "--bbox", "1", "2"])

    def test_global_options(self):
        args = build_parser().parse_args(["-v", "--output-dir", "out", "plan", "33063000BW0124"])
        assert args.verbose
        assert args.output_dir == "out"
        assert args.parcel_id == "33063000BW0124"

    def test_surfaces(self):
        args = build_parser().parse_args(["surfaces", "33063000BW0124", "--merge-overlaps"])
        assert args.parcel_ids == ["33063000BW0124"]
        assert args.merge_overlaps

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    def test_plan_success(self):
        render = AsyncMock(return_value="output/level2_33063000BW0124.pdf")
        with patch("cadastre_report.cli.render_parcel_plan", render):
            assert main(["plan", "33063000BW0124"]) == 0
        render.assert_awaited_once_with("33063000BW0124", None)

    def test_multi_passes_output_dir(self):
        render = AsyncMock(return_value="out/level3_2parcelles.pdf")
        with patch("cadastre_report.cli.render_parcels_plan", render):
            assert main(["--output-dir", "out", "multi", "33063000BW0124", "33063000BW0125"]) == 0
        render.assert_awaited_once_with(["33063000BW0124", "33063000BW0125"], "out")

    def test_surfaces_success(self):
        report = SurfaceReport(
            output_path="output/level4_1parcelles.pdf",
            records=[SurfaceRecord("33063000BW0124", 1000, 250, 750, 25.0)],
        )
        render = AsyncMock(return_value=report)
        with patch("cadastre_report.cli.render_surface_report", render):
            assert main(["surfaces", "33063000BW0124", "--merge-overlaps"]) == 0
        render.assert_awaited_once_with(["33063000BW0124"], None, merge_overlaps=True)

    def test_value_error_exits_1(self):
        render = AsyncMock(side_effect=ValueError("Invalid parcel identifier"))
        with patch("cadastre_report.cli.render_parcel_plan", render):
            assert main(["plan", "bad"]) == 1

    def test_cadastre_error_exits_1(self):
        render = AsyncMock(side_effect=CadastreError("request timed out"))
        with patch("cadastre_report.cli.render_parcels_plan", render):
            assert main(["multi", "33063000BW0124", "33063000BW0125"]) == 1

    def test_overlay_bbox_validated_before_rendering(self):
        annotate = AsyncMock(return_value="output/level1_33063000BW0124.pdf")
        with patch("cadastre_report.cli.annotate_pdf", annotate):
            code = main(
                ["overlay", "plan.pdf", "33063000BW0124", "--bbox", "-0.57", "44.83", "-0.58", "44.84"]
            )
        assert code == 1
        annotate.assert_not_awaited()

    def test_overlay_passes_negative_bbox(self):
        annotate = AsyncMock(return_value="output/level1_33063000BW0124.pdf")
        with patch("cadastre_report.cli.annotate_pdf", annotate):
            code = main(
                ["overlay", "plan.pdf", "33063000BW0124", "--bbox", "-0.58", "44.83", "-0.57", "44.84"]
            )
        assert code == 0
        annotate.assert_awaited_once_with(
            "plan.pdf", "33063000BW0124", (-0.58, 44.83, -0.57, 44.84), None,
        )
