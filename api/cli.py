#!/usr/bin/env python3
"""CLI for Certificate API maintenance tasks.

Usage:
    python -m cli <command>

Commands:
    render      Render a certificate locally (PNG, optionally PDF) without publishing
    check-font  Report whether the configured certificate font can be registered

Set DEBUG=true to run without catalog or blob credentials.
"""

import argparse
import sys
from pathlib import Path

from core.logger import configure_logging, get_logger

logger = get_logger(__name__)


def cmd_render(args: argparse.Namespace) -> int:
    """Render a certificate to local files using the production layout rules."""
    from PIL import Image

    from core.exceptions import CertificateApiError
    from rendering.certificates import derive_pdf_artifact, render_certificate_png
    from rendering.fonts import get_font_registry
    from schemas import TextPlacement

    template_path = Path(args.template)
    if not template_path.is_file():
        logger.error("cli.render.template_missing", template=str(template_path))
        return 1

    with Image.open(template_path) as template:
        width, height = template.size
    preview_width = args.preview_width or width
    preview_height = args.preview_height or height

    placement = TextPlacement(
        preview_width=preview_width,
        preview_height=preview_height,
        horizontal_anchor_percent=args.left,
        vertical_anchor_percent=args.top,
        font_size_pt=args.font_size,
        font_color=args.color,
    )

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        png = render_certificate_png(
            template_path.read_bytes(),
            placement,
            args.text.replace("\\n", "\n"),
            wrapped=args.wrap,
            fonts=get_font_registry(),
            file_name=template_path.name,
        )
        png_path = output_dir / png.suggested_name
        png_path.write_bytes(png.content)
        logger.info("cli.render.png_written", path=str(png_path))

        if args.pdf:
            pdf = derive_pdf_artifact(png)
            pdf_path = output_dir / pdf.suggested_name
            pdf_path.write_bytes(pdf.content)
            logger.info("cli.render.pdf_written", path=str(pdf_path))
    except CertificateApiError as e:
        logger.error("cli.render.failed", error=e.message, error_type=e.error_type)
        return 1

    return 0


def cmd_check_font() -> int:
    """Register the configured font and report whether the fallback is in use."""
    from rendering.fonts import get_font_registry

    registry = get_font_registry()
    if registry.register():
        logger.info("cli.font.ok", font=registry.font_source)
        return 0
    logger.warning("cli.font.fallback", font=registry.font_source)
    return 1


def main() -> int:
    configure_logging()

    parser = argparse.ArgumentParser(
        description="Certificate API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    render = subparsers.add_parser(
        "render",
        help="Render a certificate locally without publishing",
    )
    render.add_argument("template", help="Path to the template image")
    render.add_argument("text", help="Text to composite (use \\n for paragraphs)")
    render.add_argument("--left", type=float, default=50.0, help="Anchor x percent")
    render.add_argument("--top", type=float, default=50.0, help="Anchor y percent")
    render.add_argument("--font-size", type=float, default=48.0)
    render.add_argument("--color", default="#000000")
    render.add_argument("--wrap", action="store_true", help="Word-wrap the text")
    render.add_argument("--pdf", action="store_true", help="Also derive the PDF")
    render.add_argument("--preview-width", type=float, default=None)
    render.add_argument("--preview-height", type=float, default=None)
    render.add_argument("--output-dir", default=".")

    subparsers.add_parser(
        "check-font",
        help="Check that the configured certificate font loads",
    )

    args = parser.parse_args()

    if args.command == "render":
        return cmd_render(args)
    elif args.command == "check-font":
        return cmd_check_font()
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
