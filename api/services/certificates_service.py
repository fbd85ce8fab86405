"""Certificate publication pipeline.

This module sequences one certificate request end to end:

    RENDER -> PUBLISH_PNG_BLOB -> REGISTER_PNG
           -> (DERIVE_PDF -> PUBLISH_PDF_BLOB -> REGISTER_PDF)? -> DONE

The PNG is the primary deliverable: any failure up to and including its
catalog registration aborts the request. The PDF is a derived convenience
artifact and is published best effort; its failures are logged and the
request still succeeds with the PNG. Nothing is retried.

Routes should delegate all certificate publishing logic to this module.
"""

import asyncio
from enum import StrEnum

from core.config import Settings
from core.exceptions import (
    CertificateApiError,
    InvalidInputError,
    PublicationFailedError,
)
from core.logger import get_logger
from rendering.certificates import (
    decode_file_data,
    derive_pdf_artifact,
    render_certificate_png,
)
from rendering.fonts import FontRegistry
from schemas import (
    CertificateCreateRequest,
    PipelineResult,
    PublishedAsset,
    RenderedArtifact,
)
from services.blob_service import BlobPublisher, fetch_template
from services.catalog_service import CatalogRegistrar

logger = get_logger(__name__)


class Stage(StrEnum):
    RENDER = "render"
    PUBLISH_PNG_BLOB = "publish_png_blob"
    REGISTER_PNG = "register_png"
    DERIVE_PDF = "derive_pdf"
    PUBLISH_PDF_BLOB = "publish_pdf_blob"
    REGISTER_PDF = "register_pdf"


def validate_request(request: CertificateCreateRequest) -> None:
    """Raise InvalidInputError listing every required field that is absent."""
    missing = request.missing_fields()
    if missing:
        raise InvalidInputError(
            f"Missing required fields: {', '.join(missing)}",
            missing_fields=missing,
        )


async def load_template(request: CertificateCreateRequest, *, max_bytes: int) -> bytes:
    """Return the template bytes from ``fileData`` or, failing that, ``imageUrl``."""
    if request.file_data:
        content = decode_file_data(request.file_data)
        if len(content) > max_bytes:
            raise InvalidInputError(f"fileData exceeds {max_bytes} bytes")
        return content
    assert request.image_url is not None
    return await fetch_template(request.image_url, max_bytes=max_bytes)


async def _render(
    request: CertificateCreateRequest,
    *,
    fonts: FontRegistry,
    max_bytes: int,
) -> RenderedArtifact:
    assert request.text is not None and request.file_name is not None
    template = await load_template(request, max_bytes=max_bytes)
    # Pillow work is CPU-bound; keep it off the event loop
    return await asyncio.to_thread(
        render_certificate_png,
        template,
        request.to_placement(),
        request.text,
        wrapped=request.is_fetched_text,
        fonts=fonts,
        file_name=request.file_name,
    )


async def _publish_pdf(
    png: RenderedArtifact,
    *,
    publisher: BlobPublisher,
    registrar: CatalogRegistrar,
) -> PublishedAsset | None:
    """Best-effort PDF branch. Never raises for pipeline failures."""
    stage = Stage.DERIVE_PDF
    pdf_blob_url: str | None = None
    try:
        pdf = await asyncio.to_thread(derive_pdf_artifact, png)

        stage = Stage.PUBLISH_PDF_BLOB
        pdf_blob_url = await publisher.publish(pdf)

        stage = Stage.REGISTER_PDF
        asset = await registrar.register(pdf, pdf_blob_url)
    except Exception as e:
        logger.warning(
            "certificate.pdf.failed",
            stage=stage.value,
            error=str(e),
            error_type=getattr(e, "error_type", type(e).__name__),
            pdf_blob_url=pdf_blob_url,
            exc_info=True,
        )
        if pdf_blob_url is None:
            return None
        # Uploaded but not in the catalog: keep the durable URL
        return PublishedAsset(retrieval_url=pdf_blob_url, catalog_alt=pdf.suggested_name)

    logger.info(
        "certificate.pdf.published",
        blob_url=pdf_blob_url,
        catalog_id=asset.catalog_id,
    )
    return asset


async def create_certificate(
    request: CertificateCreateRequest,
    *,
    settings: Settings,
    fonts: FontRegistry,
    publisher: BlobPublisher,
    registrar: CatalogRegistrar,
) -> PipelineResult:
    """Render, publish and register a certificate.

    Raises:
        InvalidInputError: If required fields are missing or malformed.
        PublicationFailedError: If rendering or any PNG stage fails. Carries
            the failed stage, the original error and any blob URL obtained.
    """
    validate_request(request)

    stage = Stage.RENDER
    blob_url: str | None = None
    try:
        png = await _render(request, fonts=fonts, max_bytes=settings.max_upload_bytes)

        stage = Stage.PUBLISH_PNG_BLOB
        blob_url = await publisher.publish(png)

        stage = Stage.REGISTER_PNG
        png_asset = await registrar.register(png, blob_url)
    except InvalidInputError:
        raise
    except CertificateApiError as e:
        logger.error(
            "certificate.failed",
            stage=stage.value,
            error=e.message,
            error_type=e.error_type,
            blob_url=blob_url,
        )
        raise PublicationFailedError(stage.value, e, blob_url=blob_url) from e
    except Exception as e:
        logger.exception(
            "certificate.failed",
            stage=stage.value,
            error=str(e),
            error_type=type(e).__name__,
            blob_url=blob_url,
        )
        raise PublicationFailedError(stage.value, e, blob_url=blob_url) from e

    logger.info(
        "certificate.png.published",
        blob_url=blob_url,
        catalog_id=png_asset.catalog_id,
    )

    pdf_asset = None
    if settings.generate_pdf:
        pdf_asset = await _publish_pdf(png, publisher=publisher, registrar=registrar)

    return PipelineResult(png=png_asset, pdf=pdf_asset)
