"""Certificate rendering - PNG compositing and PDF derivation.

This module handles the visual aspects of a certificate:
- Drawing the caller's text onto the template image (Pillow)
- Wrapping the rendered PNG into a full-bleed single page PDF (CairoSVG)

Publishing the results is the job of services/certificates_service.py.
"""

import base64
import io
import re
from pathlib import PurePosixPath

from PIL import Image, ImageDraw, UnidentifiedImageError

from core.exceptions import InvalidInputError, RenderFailureError
from core.logger import get_logger
from rendering.fonts import FontRegistry
from rendering.geometry import resolve_layout
from rendering.layout import layout_text
from schemas import ArtifactKind, RenderedArtifact, TextAlign, TextPlacement

logger = get_logger(__name__)

PNG_MIME_TYPE = "image/png"
PDF_MIME_TYPE = "application/pdf"

# Pillow anchors: horizontal (l/m/r) + vertical middle
_PILLOW_ANCHORS: dict[TextAlign, str] = {
    TextAlign.LEFT: "lm",
    TextAlign.CENTER: "mm",
    TextAlign.RIGHT: "rm",
}

_DATA_URL_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,", re.IGNORECASE)


def decode_file_data(file_data: str) -> bytes:
    """Decode a base64 payload, with or without a ``data:...;base64,`` prefix.

    Raises:
        InvalidInputError: If the payload is not valid base64.
    """
    payload = _DATA_URL_PREFIX.sub("", file_data.strip(), count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except ValueError as e:
        raise InvalidInputError(f"fileData is not valid base64: {e}") from e


def artifact_name(file_name: str, kind: ArtifactKind) -> str:
    """Derive the artifact file name from the caller's template name."""
    stem = PurePosixPath(file_name).stem or "certificate"
    stem = re.sub(r"[^A-Za-z0-9._-]+", "-", stem).strip("-") or "certificate"
    return f"{stem}.{kind.value}"


def render_certificate_png(
    base_image: bytes,
    placement: TextPlacement,
    text: str,
    *,
    wrapped: bool,
    fonts: FontRegistry,
    file_name: str,
) -> RenderedArtifact:
    """Composite ``text`` onto the template and encode the result as PNG.

    The template is drawn unscaled at the origin, so the PNG has exactly the
    template's pixel dimensions.

    Raises:
        InvalidGeometryError: If the template or preview size is degenerate.
        RenderFailureError: If the template cannot be decoded or drawn on.
    """
    try:
        with Image.open(io.BytesIO(base_image)) as template:
            template.load()
            canvas = template.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise RenderFailureError(f"Could not decode template image: {e}") from e

    width, height = canvas.size
    plan = resolve_layout(placement, width, height)
    font = fonts.get_font(plan.font_size_px)
    lines = layout_text(text, plan, wrapped=wrapped, measure=font.getlength)

    draw = ImageDraw.Draw(canvas)
    anchor = _PILLOW_ANCHORS[plan.text_align]
    try:
        for line in lines:
            draw.text(
                (line.x, line.y),
                line.text,
                font=font,
                fill=placement.font_color,
                anchor=anchor,
                align=plan.text_align.value,
            )
    except ValueError as e:
        # Unknown colour names and unsupported anchors surface as ValueError
        raise RenderFailureError(f"Could not draw certificate text: {e}") from e

    buffer = io.BytesIO()
    canvas.save(buffer, format="PNG")

    logger.info(
        "certificate.rendered",
        width=width,
        height=height,
        lines=len(lines),
        font_size_px=plan.font_size_px,
        text_align=plan.text_align.value,
        fallback_font=fonts.using_fallback,
    )

    return RenderedArtifact(
        kind=ArtifactKind.PNG,
        content=buffer.getvalue(),
        suggested_name=artifact_name(file_name, ArtifactKind.PNG),
        mime_type=PNG_MIME_TYPE,
    )


def _png_page_svg(png_bytes: bytes, width: int, height: int) -> str:
    encoded = base64.b64encode(png_bytes).decode("ascii")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<svg xmlns="http://www.w3.org/2000/svg" '
        'xmlns:xlink="http://www.w3.org/1999/xlink" '
        f'width="{width}" height="{height}" viewBox="0 0 {width} {height}">'
        f'<image x="0" y="0" width="{width}" height="{height}" '
        f'xlink:href="data:image/png;base64,{encoded}"/>'
        "</svg>"
    )


def png_to_pdf(png_bytes: bytes) -> bytes:
    """Embed a PNG as a single full-bleed PDF page.

    Page size in points equals the image size in pixels (rendered at 72 dpi).

    Raises:
        RuntimeError: If cairo library is not installed on the system
    """
    try:
        import cairosvg
    except OSError as e:
        if "cairo" in str(e).lower():
            raise RuntimeError(
                "PDF generation requires the Cairo library. "
                "On macOS: brew install cairo. "
                "On Ubuntu/Debian: apt-get install libcairo2-dev. "
                "On Alpine: apk add cairo-dev."
            ) from e
        raise

    with Image.open(io.BytesIO(png_bytes)) as image:
        width, height = image.size

    svg = _png_page_svg(png_bytes, width, height)
    return cairosvg.svg2pdf(bytestring=svg.encode("utf-8"), dpi=72)


def derive_pdf_artifact(png: RenderedArtifact) -> RenderedArtifact:
    """Derive the print-ready PDF artifact from a rendered PNG artifact."""
    stem = PurePosixPath(png.suggested_name).stem
    return RenderedArtifact(
        kind=ArtifactKind.PDF,
        content=png_to_pdf(png.content),
        suggested_name=f"{stem}.{ArtifactKind.PDF.value}",
        mime_type=PDF_MIME_TYPE,
    )
