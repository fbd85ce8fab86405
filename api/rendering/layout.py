"""Text layout: turns certificate text into drawable, middle-anchored lines.

Wrapping is greedy and word based. Each candidate line keeps the trailing
space it was built with, and the cursor advances after every flushed line,
including the last line of the last paragraph. Clients rely on that spacing,
so it is reproduced exactly rather than tidied up.
"""

from collections.abc import Callable

from schemas import LayoutLine, LayoutPlan

# Width of a string in the current font, in pixels.
MeasureFn = Callable[[str], float]


def _wrap_paragraph(
    paragraph: str,
    max_width: float,
    measure: MeasureFn,
) -> list[str]:
    lines: list[str] = []
    line = ""
    for word in paragraph.split(" "):
        candidate = f"{line}{word} "
        if line and measure(candidate) > max_width:
            lines.append(line)
            line = f"{word} "
        else:
            line = candidate
    lines.append(line)
    return lines


def layout_text(
    text: str,
    plan: LayoutPlan,
    *,
    wrapped: bool,
    measure: MeasureFn,
) -> list[LayoutLine]:
    """Lay ``text`` out around the plan's anchor.

    Args:
        text: Text to draw. Newlines separate paragraphs when ``wrapped``.
        plan: Resolved placement for the target image.
        wrapped: When False the whole text is a single line at the anchor,
            even if it overflows ``plan.max_line_width_px``.
        measure: Width-of-string function for the font the lines will be
            drawn with.

    Returns:
        Lines in drawing order. Every line shares the anchor x; alignment is
        applied uniformly by the rasterizer via ``plan.text_align``.
    """
    if not wrapped:
        return [LayoutLine(text=text, x=plan.x, y=plan.y)]

    lines: list[LayoutLine] = []
    y = plan.y
    for paragraph in text.split("\n"):
        for line in _wrap_paragraph(paragraph, plan.max_line_width_px, measure):
            lines.append(LayoutLine(text=line, x=plan.x, y=y))
            y += plan.line_height_px
    return lines
