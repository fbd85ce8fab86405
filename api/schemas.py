"""Pydantic schemas for API request/response validation, plus pipeline DTOs."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Accepts and emits the camelCase keys used by the storefront client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PositionIn(_CamelModel):
    x: float = Field(ge=0, le=100)
    y: float = Field(ge=0, le=100)


class TextSettingsIn(_CamelModel):
    """Text style as authored in the storefront preview."""

    font_size: float = Field(gt=0, le=1000)
    font_color: str = "#000000"
    left_pos: float | None = Field(default=None, ge=0, le=100)
    top_pos: float | None = Field(default=None, ge=0, le=100)

    @field_validator("font_color")
    @classmethod
    def validate_font_color(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("fontColor must not be empty")
        return cleaned


class PreviewDimensionsIn(_CamelModel):
    # Positivity is checked by the geometry resolver (InvalidGeometry)
    width: float
    height: float


# Wire names, in the order they are reported when missing
REQUIRED_CREATE_FIELDS: tuple[str, ...] = (
    "fileData|imageUrl",
    "text",
    "position",
    "textSettings",
    "fileName",
    "mimeType",
    "previewDimensions",
)


class CertificateCreateRequest(_CamelModel):
    """Body of POST /api/certificates/create.

    Every field is optional at the schema level so that absent fields can be
    reported together as one enumerated 400 instead of pydantic's 422.
    """

    file_data: str | None = None
    image_url: str | None = None
    file_name: str | None = Field(default=None, max_length=255)
    mime_type: str | None = Field(default=None, max_length=100)
    position: PositionIn | None = None
    text_settings: TextSettingsIn | None = None
    preview_dimensions: PreviewDimensionsIn | None = None
    text: str | None = Field(default=None, max_length=5000)
    is_fetched_text: bool = False

    def missing_fields(self) -> list[str]:
        present = {
            "fileData|imageUrl": bool(self.file_data or self.image_url),
            "text": bool(self.text),
            "position": self.position is not None,
            "textSettings": self.text_settings is not None,
            "fileName": bool(self.file_name),
            "mimeType": bool(self.mime_type),
            "previewDimensions": self.preview_dimensions is not None,
        }
        return [name for name in REQUIRED_CREATE_FIELDS if not present[name]]

    def to_placement(self) -> "TextPlacement":
        """Collapse the validated request into the geometry resolver's input.

        ``leftPos``/``topPos`` are the anchor; ``position`` is the fallback
        when the client did not send them.
        """
        assert self.position is not None
        assert self.text_settings is not None
        assert self.preview_dimensions is not None
        settings = self.text_settings
        return TextPlacement(
            preview_width=self.preview_dimensions.width,
            preview_height=self.preview_dimensions.height,
            horizontal_anchor_percent=(
                settings.left_pos if settings.left_pos is not None else self.position.x
            ),
            vertical_anchor_percent=(
                settings.top_pos if settings.top_pos is not None else self.position.y
            ),
            font_size_pt=settings.font_size,
            font_color=settings.font_color,
        )


class PublishedFileResponse(BaseModel):
    id: str | None
    url: str
    alt: str
    blob_url: str = Field(serialization_alias="blobUrl")


class CertificateFilesResponse(BaseModel):
    png: PublishedFileResponse
    pdf: PublishedFileResponse | None = None


class CertificateCreateResponse(BaseModel):
    """Success body. ``files.pdf`` is omitted when the PDF branch degraded."""

    success: Literal[True] = True
    files: CertificateFilesResponse


class ErrorResponse(BaseModel):
    error: str
    message: str
    type: str | None = None
    blob_url: str | None = Field(default=None, serialization_alias="blobUrl")
    pdf_blob_url: str | None = Field(default=None, serialization_alias="pdfBlobUrl")
    missing_fields: list[str] | None = Field(
        default=None, serialization_alias="missingFields"
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


# =============================================================================
# Pipeline DTOs (service/rendering layer, never serialized directly)
# =============================================================================


class TextAlign(StrEnum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class ArtifactKind(StrEnum):
    PNG = "png"
    PDF = "pdf"


@dataclass(frozen=True)
class TextPlacement:
    """Preview-relative text geometry and style authored by the caller."""

    preview_width: float
    preview_height: float
    horizontal_anchor_percent: float
    vertical_anchor_percent: float
    font_size_pt: float
    font_color: str = "#000000"


@dataclass(frozen=True)
class LayoutPlan:
    """Absolute placement of text on the full-resolution template."""

    x: float
    y: float
    font_size_px: float
    max_line_width_px: float
    line_height_px: float
    text_align: TextAlign


@dataclass(frozen=True)
class LayoutLine:
    """A drawable line. ``y`` is the vertical center of the line."""

    text: str
    x: float
    y: float


@dataclass(frozen=True)
class RenderedArtifact:
    kind: ArtifactKind
    content: bytes = field(repr=False)
    suggested_name: str
    mime_type: str


@dataclass(frozen=True)
class PublishedAsset:
    """An artifact reachable at ``retrieval_url``.

    ``catalog_id`` stays None until catalog registration succeeds.
    """

    retrieval_url: str
    catalog_alt: str
    catalog_id: str | None = None
    preview_url: str | None = None

    @property
    def is_registered(self) -> bool:
        return self.catalog_id is not None


@dataclass(frozen=True)
class PipelineResult:
    png: PublishedAsset
    pdf: PublishedAsset | None = None
