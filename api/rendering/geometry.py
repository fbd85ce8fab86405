"""Preview-relative text geometry -> absolute placement on the template.

The storefront editor authors text on a scaled-down preview. Anchor
percentages are applied to the full-resolution template directly; the
preview size only has to be sane, it never contributes absolute pixels.
"""

from core.exceptions import InvalidGeometryError
from schemas import LayoutPlan, TextAlign, TextPlacement

# Compensates for the preview-to-print resolution mismatch.
# TODO: derive from target_width / preview_width once the editor sends
# print-resolution previews; kept fixed so existing templates render unchanged.
FONT_SCALE_RATIO = 0.6

# Wrapped text never grows wider than this share of the template width.
MAX_LINE_WIDTH_RATIO = 0.25

LINE_HEIGHT_RATIO = 1.25


def text_align_for_anchor(horizontal_anchor_percent: float) -> TextAlign:
    """Exactly 50% centers; anything left of it is left-aligned, right of it right."""
    if horizontal_anchor_percent == 50:
        return TextAlign.CENTER
    if horizontal_anchor_percent < 50:
        return TextAlign.LEFT
    return TextAlign.RIGHT


def resolve_layout(placement: TextPlacement, width: int, height: int) -> LayoutPlan:
    """Compute the layout plan for a template of ``width`` x ``height`` pixels.

    Raises:
        InvalidGeometryError: If preview or target dimensions are not positive.
    """
    if placement.preview_width <= 0 or placement.preview_height <= 0:
        raise InvalidGeometryError(
            "previewDimensions must be positive, got "
            f"{placement.preview_width}x{placement.preview_height}"
        )
    if width <= 0 or height <= 0:
        raise InvalidGeometryError(
            f"Template image dimensions must be positive, got {width}x{height}"
        )

    font_size_px = placement.font_size_pt * FONT_SCALE_RATIO

    return LayoutPlan(
        x=width * (placement.horizontal_anchor_percent / 100),
        y=height * (placement.vertical_anchor_percent / 100),
        font_size_px=font_size_px,
        max_line_width_px=width * MAX_LINE_WIDTH_RATIO,
        line_height_px=font_size_px * LINE_HEIGHT_RATIO,
        text_align=text_align_for_anchor(placement.horizontal_anchor_percent),
    )
