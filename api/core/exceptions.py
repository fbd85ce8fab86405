"""Error taxonomy shared by rendering, publishing and the HTTP layer.

Every error carries an ``error_type`` (returned to callers as ``type``) and the
HTTP status the route layer answers with. Routes never inspect messages.
"""

from __future__ import annotations


class CertificateApiError(Exception):
    """Base class for all expected certificate pipeline failures."""

    error_type = "CertificateApiError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(CertificateApiError):
    """Missing or malformed request fields. Never retried."""

    error_type = "InvalidInput"
    status_code = 400

    def __init__(self, message: str, missing_fields: list[str] | None = None):
        super().__init__(message)
        self.missing_fields = missing_fields or []


class InvalidGeometryError(CertificateApiError):
    """Preview or target dimensions are not strictly positive."""

    error_type = "InvalidGeometry"
    status_code = 400


class RenderFailureError(CertificateApiError):
    """The template could not be decoded or the text could not be drawn."""

    error_type = "RenderFailure"


class UpstreamTransportError(CertificateApiError):
    """Network or HTTP failure talking to the blob store or the catalog."""

    error_type = "UpstreamTransportError"

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        upstream_body: str | None = None,
    ):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body


class _CatalogRejection(CertificateApiError):
    """The catalog answered, but refused the operation."""

    def __init__(self, message: str, messages: list[str] | None = None):
        super().__init__(message)
        self.messages = messages or [message]


class RegistrationRejectedError(_CatalogRejection):
    error_type = "RegistrationRejected"


class StagingFailedError(_CatalogRejection):
    error_type = "StagingFailed"


class TransferFailedError(_CatalogRejection):
    error_type = "TransferFailed"


class PublicationFailedError(CertificateApiError):
    """A fatal pipeline stage failed.

    Carries the original cause plus whatever blob URLs were obtained before
    the failure, so callers can diagnose a half-finished publish.
    """

    def __init__(
        self,
        stage: str,
        cause: Exception,
        blob_url: str | None = None,
        pdf_blob_url: str | None = None,
    ):
        message = getattr(cause, "message", None) or str(cause)
        super().__init__(message)
        self.stage = stage
        self.cause = cause
        self.blob_url = blob_url
        self.pdf_blob_url = pdf_blob_url

    @property
    def error_type(self) -> str:  # type: ignore[override]
        return getattr(self.cause, "error_type", type(self.cause).__name__)

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return getattr(self.cause, "status_code", 500)
