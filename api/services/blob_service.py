"""Durable blob storage for rendered artifacts.

Artifacts are uploaded with a single authenticated PUT to a Vercel Blob
compatible endpoint, which answers with the public retrieval URL. The same
module downloads remote templates when a request references ``imageUrl``
instead of inlining ``fileData``.
"""

from __future__ import annotations

from urllib.parse import quote, urlparse

import httpx

from core.config import Settings
from core.exceptions import InvalidInputError, UpstreamTransportError
from core.http_client import get_http_client
from core.logger import get_logger
from schemas import RenderedArtifact

logger = get_logger(__name__)

BLOB_API_VERSION = "7"
BLOB_PATH_PREFIX = "certificates"

# Upstream bodies are echoed into errors and logs; keep them bounded
_MAX_ERROR_BODY = 2000


def _upstream_error(
    action: str, response: httpx.Response
) -> UpstreamTransportError:
    body = response.text[:_MAX_ERROR_BODY]
    return UpstreamTransportError(
        f"{action} failed with HTTP {response.status_code}: {body}",
        upstream_status=response.status_code,
        upstream_body=body,
    )


class BlobPublisher:
    """Publishes artifact bytes and returns a stable retrieval URL."""

    def __init__(
        self,
        api_url: str,
        token: str,
        *,
        add_random_suffix: bool = True,
    ):
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.add_random_suffix = add_random_suffix

    @classmethod
    def from_settings(cls, settings: Settings) -> BlobPublisher:
        return cls(
            settings.blob_api_url,
            settings.blob_read_write_token,
            add_random_suffix=settings.blob_add_random_suffix,
        )

    async def publish(self, artifact: RenderedArtifact) -> str:
        """Upload ``artifact`` and return its public URL.

        Raises:
            UpstreamTransportError: On network failure, a non-2xx answer or a
                response without a ``url``.
        """
        pathname = f"{BLOB_PATH_PREFIX}/{artifact.suggested_name}"
        headers = {
            "Authorization": f"Bearer {self.token}",
            "x-api-version": BLOB_API_VERSION,
            "x-content-type": artifact.mime_type,
            "x-add-random-suffix": "1" if self.add_random_suffix else "0",
        }

        client = await get_http_client()
        try:
            response = await client.put(
                f"{self.api_url}/{quote(pathname)}",
                content=artifact.content,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise UpstreamTransportError(f"Blob upload failed: {e}") from e

        if not response.is_success:
            raise _upstream_error("Blob upload", response)

        try:
            url = response.json()["url"]
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamTransportError(
                "Blob upload returned no url",
                upstream_status=response.status_code,
                upstream_body=response.text[:_MAX_ERROR_BODY],
            ) from e

        logger.info(
            "blob.published",
            pathname=pathname,
            url=url,
            size_bytes=len(artifact.content),
        )
        return url


def _is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


async def fetch_template(url: str, *, max_bytes: int) -> bytes:
    """Download a template image referenced by URL.

    Raises:
        InvalidInputError: If the URL is malformed or the image is too large.
        UpstreamTransportError: On network failure or a non-2xx answer.
    """
    if not _is_valid_url(url):
        raise InvalidInputError(f"imageUrl is not a valid http(s) URL: {url}")

    client = await get_http_client()
    try:
        response = await client.get(url)
    except httpx.HTTPError as e:
        raise UpstreamTransportError(f"Template download failed: {e}") from e

    if not response.is_success:
        raise _upstream_error("Template download", response)

    if len(response.content) > max_bytes:
        raise InvalidInputError(
            f"Template image exceeds {max_bytes} bytes"
        )
    return response.content
