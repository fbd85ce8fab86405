"""Certificate creation endpoint.

POST renders and publishes; OPTIONS answers CORS preflight for clients that
reach the route directly; every other verb is answered with a JSON 405.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from core.config import Settings, get_settings
from core.exceptions import (
    CertificateApiError,
    InvalidInputError,
    PublicationFailedError,
)
from core.logger import get_logger
from core.ratelimit import CERTIFICATE_CREATE_LIMIT, limiter
from rendering.fonts import FontRegistry, get_font_registry
from schemas import (
    CertificateCreateRequest,
    CertificateCreateResponse,
    CertificateFilesResponse,
    ErrorResponse,
    PublishedAsset,
    PublishedFileResponse,
)
from services.blob_service import BlobPublisher
from services.catalog_service import CatalogRegistrar, get_catalog_registrar
from services.certificates_service import create_certificate

logger = get_logger(__name__)

router = APIRouter(prefix="/api/certificates", tags=["certificates"])


def get_blob_publisher() -> BlobPublisher:
    return BlobPublisher.from_settings(get_settings())


def get_registrar() -> CatalogRegistrar:
    return get_catalog_registrar(get_settings())


AppSettings = Annotated[Settings, Depends(get_settings)]
Fonts = Annotated[FontRegistry, Depends(get_font_registry)]
Publisher = Annotated[BlobPublisher, Depends(get_blob_publisher)]
Registrar = Annotated[CatalogRegistrar, Depends(get_registrar)]


def _file_response(asset: PublishedAsset) -> PublishedFileResponse:
    return PublishedFileResponse(
        id=asset.catalog_id,
        url=asset.preview_url or asset.retrieval_url,
        alt=asset.catalog_alt,
        blob_url=asset.retrieval_url,
    )


def error_response(exc: CertificateApiError) -> JSONResponse:
    """Serialize a pipeline error; message and type are passed through verbatim."""
    if isinstance(exc, InvalidInputError) and exc.missing_fields:
        body = ErrorResponse(
            error="Missing required fields",
            message=exc.message,
            type=exc.error_type,
            missing_fields=exc.missing_fields,
        )
    elif isinstance(exc, PublicationFailedError):
        body = ErrorResponse(
            error="Invalid request"
            if exc.status_code == 400
            else "Failed to create certificate",
            message=exc.message,
            type=exc.error_type,
            blob_url=exc.blob_url,
            pdf_blob_url=exc.pdf_blob_url,
        )
    else:
        body = ErrorResponse(
            error="Invalid request"
            if exc.status_code == 400
            else "Failed to create certificate",
            message=exc.message,
            type=exc.error_type,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(by_alias=True, exclude_unset=True),
    )


@router.options("/create", include_in_schema=False)
async def create_certificate_preflight() -> Response:
    """CORS preflight: always 200, no body."""
    return Response(status_code=200)


@router.api_route(
    "/create",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def create_certificate_method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"error": "Method not allowed"},
        headers={"Allow": "POST, OPTIONS"},
    )


@router.post(
    "/create",
    response_model=CertificateCreateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid input"},
        500: {"model": ErrorResponse, "description": "Pipeline failure"},
    },
)
@limiter.limit(CERTIFICATE_CREATE_LIMIT)
async def create_certificate_endpoint(
    request: Request,
    body: CertificateCreateRequest,
    settings: AppSettings,
    fonts: Fonts,
    publisher: Publisher,
    registrar: Registrar,
) -> JSONResponse:
    """Render a certificate onto its template and publish PNG (and PDF)."""
    logger.info(
        "certificate.requested",
        file_name=body.file_name,
        mime_type=body.mime_type,
        wrapped=body.is_fetched_text,
        source="imageUrl" if not body.file_data and body.image_url else "fileData",
    )

    try:
        result = await create_certificate(
            body,
            settings=settings,
            fonts=fonts,
            publisher=publisher,
            registrar=registrar,
        )
    except CertificateApiError as e:
        return error_response(e)

    published = {"png": _file_response(result.png)}
    if result.pdf is not None:
        published["pdf"] = _file_response(result.pdf)

    response = CertificateCreateResponse(
        success=True, files=CertificateFilesResponse(**published)
    )
    return JSONResponse(
        status_code=200,
        content=response.model_dump(by_alias=True, exclude_unset=True),
    )
