"""Rendering module for presentation concerns.

This module handles all presentation/rendering logic:
- Geometry: preview-relative placement -> template pixels
- Text layout and word wrapping
- PNG compositing with Pillow
- PDF derivation

This separates presentation concerns from publishing logic in services.
"""

from rendering.certificates import (
    decode_file_data,
    derive_pdf_artifact,
    png_to_pdf,
    render_certificate_png,
)
from rendering.fonts import FontRegistry, get_font_registry
from rendering.geometry import resolve_layout, text_align_for_anchor
from rendering.layout import layout_text

__all__ = [
    "FontRegistry",
    "decode_file_data",
    "derive_pdf_artifact",
    "get_font_registry",
    "layout_text",
    "png_to_pdf",
    "render_certificate_png",
    "resolve_layout",
    "text_align_for_anchor",
]
