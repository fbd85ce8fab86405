"""Tests for certificate rendering module."""

import base64
import io
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from core.exceptions import InvalidGeometryError, InvalidInputError, RenderFailureError
from rendering.certificates import (
    PDF_MIME_TYPE,
    PNG_MIME_TYPE,
    artifact_name,
    decode_file_data,
    derive_pdf_artifact,
    png_to_pdf,
    render_certificate_png,
)
from schemas import ArtifactKind, TextPlacement

pytestmark = pytest.mark.unit


def _placement(**overrides) -> TextPlacement:
    values = {
        "preview_width": 200,
        "preview_height": 150,
        "horizontal_anchor_percent": 50,
        "vertical_anchor_percent": 50,
        "font_size_pt": 60,
        "font_color": "#000000",
    }
    values.update(overrides)
    return TextPlacement(**values)


class TestDecodeFileData:
    def test_strips_data_url_prefix(self):
        encoded = base64.b64encode(b"png-bytes").decode()
        assert decode_file_data(f"data:image/png;base64,{encoded}") == b"png-bytes"

    def test_accepts_bare_base64(self):
        encoded = base64.b64encode(b"raw").decode()
        assert decode_file_data(encoded) == b"raw"

    def test_accepts_non_image_data_url(self):
        encoded = base64.b64encode(b"%PDF").decode()
        assert decode_file_data(f"data:application/pdf;base64,{encoded}") == b"%PDF"

    def test_rejects_invalid_base64(self):
        with pytest.raises(InvalidInputError, match="base64"):
            decode_file_data("data:image/png;base64,not*base64!")


class TestArtifactName:
    @pytest.mark.parametrize(
        ("file_name", "kind", "expected"),
        [
            ("award.png", ArtifactKind.PNG, "award.png"),
            ("award.jpeg", ArtifactKind.PDF, "award.pdf"),
            ("My Award (final).png", ArtifactKind.PNG, "My-Award-final.png"),
            ("", ArtifactKind.PNG, "certificate.png"),
        ],
    )
    def test_names(self, file_name, kind, expected):
        assert artifact_name(file_name, kind) == expected


class TestRenderCertificatePng:
    def test_preserves_template_dimensions(self, template_png, fallback_fonts):
        artifact = render_certificate_png(
            template_png,
            _placement(),
            "Jane Doe",
            wrapped=False,
            fonts=fallback_fonts,
            file_name="award.png",
        )

        assert artifact.kind is ArtifactKind.PNG
        assert artifact.mime_type == PNG_MIME_TYPE
        assert artifact.suggested_name == "award.png"
        with Image.open(io.BytesIO(artifact.content)) as image:
            assert image.format == "PNG"
            assert image.size == (400, 300)

    def test_draws_text_onto_template(self, template_png, fallback_fonts):
        artifact = render_certificate_png(
            template_png,
            _placement(),
            "Jane Doe",
            wrapped=True,
            fonts=fallback_fonts,
            file_name="award.png",
        )

        with Image.open(io.BytesIO(artifact.content)) as image:
            darkest = min(channel[0] for channel in image.convert("RGB").getextrema())
        assert darkest < 128

    def test_falls_back_when_font_missing(self, template_png, fallback_fonts):
        render_certificate_png(
            template_png,
            _placement(),
            "Jane Doe",
            wrapped=False,
            fonts=fallback_fonts,
            file_name="award.png",
        )

        assert fallback_fonts.using_fallback is True

    def test_undecodable_template(self, fallback_fonts):
        with pytest.raises(RenderFailureError, match="decode"):
            render_certificate_png(
                b"not an image",
                _placement(),
                "Jane",
                wrapped=False,
                fonts=fallback_fonts,
                file_name="award.png",
            )

    def test_unknown_colour(self, template_png, fallback_fonts):
        with pytest.raises(RenderFailureError, match="draw"):
            render_certificate_png(
                template_png,
                _placement(font_color="not-a-colour"),
                "Jane",
                wrapped=False,
                fonts=fallback_fonts,
                file_name="award.png",
            )

    def test_degenerate_preview(self, template_png, fallback_fonts):
        with pytest.raises(InvalidGeometryError):
            render_certificate_png(
                template_png,
                _placement(preview_width=0),
                "Jane",
                wrapped=False,
                fonts=fallback_fonts,
                file_name="award.png",
            )


class TestPngToPdf:
    def test_raises_runtime_error_without_cairo(self, template_png):
        with patch.dict("sys.modules", {"cairosvg": None}):
            with patch(
                "builtins.__import__",
                side_effect=OSError("cannot load library 'cairo'"),
            ):
                with pytest.raises(RuntimeError, match="Cairo library"):
                    png_to_pdf(template_png)

    def test_page_matches_pixel_size(self, template_png):
        mock_cairosvg = MagicMock()
        mock_cairosvg.svg2pdf.return_value = b"%PDF-1.7 mock"

        with patch.dict("sys.modules", {"cairosvg": mock_cairosvg}):
            assert png_to_pdf(template_png) == b"%PDF-1.7 mock"

        kwargs = mock_cairosvg.svg2pdf.call_args.kwargs
        svg = kwargs["bytestring"].decode()
        assert kwargs["dpi"] == 72
        assert 'width="400" height="300"' in svg
        assert "data:image/png;base64," in svg

    def test_derive_pdf_artifact(self, png_artifact):
        mock_cairosvg = MagicMock()
        mock_cairosvg.svg2pdf.return_value = b"%PDF-1.7 mock"

        with patch.dict("sys.modules", {"cairosvg": mock_cairosvg}):
            pdf = derive_pdf_artifact(png_artifact)

        assert pdf.kind is ArtifactKind.PDF
        assert pdf.mime_type == PDF_MIME_TYPE
        assert pdf.suggested_name == "award.pdf"
        assert pdf.content == b"%PDF-1.7 mock"
