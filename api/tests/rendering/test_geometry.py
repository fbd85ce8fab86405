"""Tests for the geometry resolver."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from core.exceptions import InvalidGeometryError
from rendering.geometry import (
    FONT_SCALE_RATIO,
    MAX_LINE_WIDTH_RATIO,
    resolve_layout,
    text_align_for_anchor,
)
from schemas import TextAlign, TextPlacement

pytestmark = pytest.mark.unit


def _placement(**overrides) -> TextPlacement:
    values = {
        "preview_width": 500,
        "preview_height": 350,
        "horizontal_anchor_percent": 25,
        "vertical_anchor_percent": 60,
        "font_size_pt": 40,
    }
    values.update(overrides)
    return TextPlacement(**values)


class TestTextAlign:
    @pytest.mark.parametrize(
        ("anchor", "expected"),
        [
            (49, TextAlign.LEFT),
            (50, TextAlign.CENTER),
            (51, TextAlign.RIGHT),
            (49.999, TextAlign.LEFT),
            (50.001, TextAlign.RIGHT),
            (0, TextAlign.LEFT),
            (100, TextAlign.RIGHT),
        ],
    )
    def test_boundaries(self, anchor, expected):
        assert text_align_for_anchor(anchor) is expected

    @given(st.floats(min_value=0, max_value=100, allow_nan=False))
    def test_alignment_follows_anchor_side(self, anchor):
        align = text_align_for_anchor(anchor)
        if anchor == 50:
            assert align is TextAlign.CENTER
        elif anchor < 50:
            assert align is TextAlign.LEFT
        else:
            assert align is TextAlign.RIGHT


class TestResolveLayout:
    def test_anchor_is_relative_to_target_not_preview(self):
        plan = resolve_layout(_placement(), 2000, 1000)

        assert plan.x == pytest.approx(500)
        assert plan.y == pytest.approx(600)

    def test_font_scaled_by_fixed_ratio(self):
        plan = resolve_layout(_placement(font_size_pt=40), 2000, 1000)

        assert plan.font_size_px == pytest.approx(40 * FONT_SCALE_RATIO)
        assert plan.font_size_px == pytest.approx(24)

    def test_font_size_ignores_preview_to_target_ratio(self):
        small = resolve_layout(_placement(preview_width=100), 2000, 1000)
        large = resolve_layout(_placement(preview_width=1900), 2000, 1000)

        assert small.font_size_px == large.font_size_px

    def test_line_metrics(self):
        plan = resolve_layout(_placement(font_size_pt=40), 2000, 1000)

        assert plan.max_line_width_px == pytest.approx(2000 * MAX_LINE_WIDTH_RATIO)
        assert plan.line_height_px == pytest.approx(24 * 1.25)

    def test_alignment_from_horizontal_anchor(self):
        plan = resolve_layout(_placement(horizontal_anchor_percent=50), 800, 600)
        assert plan.text_align is TextAlign.CENTER

    @pytest.mark.parametrize(
        ("preview_width", "preview_height"),
        [(0, 300), (300, 0), (-1, 300), (300, -5)],
    )
    def test_rejects_degenerate_preview(self, preview_width, preview_height):
        placement = _placement(
            preview_width=preview_width, preview_height=preview_height
        )
        with pytest.raises(InvalidGeometryError, match="previewDimensions"):
            resolve_layout(placement, 800, 600)

    @pytest.mark.parametrize(("width", "height"), [(0, 600), (800, 0)])
    def test_rejects_degenerate_target(self, width, height):
        with pytest.raises(InvalidGeometryError, match="Template image"):
            resolve_layout(_placement(), width, height)
