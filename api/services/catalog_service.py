"""Registers published artifacts as assets in the remote catalog.

The catalog is a Shopify Admin GraphQL API. Two upload protocols exist and
are selected per deployment with ``CATALOG_UPLOAD_PROTOCOL``:

- ``url`` (UrlRegistrationProtocol): a single ``fileCreate`` pointing at the
  artifact's blob URL; the catalog fetches the bytes itself.
- ``staged`` (StagedUploadProtocol): ``stagedUploadsCreate`` for a one-time
  upload target, a multipart POST of the bytes to that target, then
  ``fileCreate`` pointing at the staged resource.

Both return the same PublishedAsset; callers never care which ran.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from core.config import Settings
from core.exceptions import (
    RegistrationRejectedError,
    StagingFailedError,
    TransferFailedError,
    UpstreamTransportError,
)
from core.http_client import get_http_client
from core.logger import get_logger
from schemas import PublishedAsset, RenderedArtifact

logger = get_logger(__name__)

_MAX_ERROR_BODY = 2000

FILE_CREATE_MUTATION = """
mutation fileCreate($files: [FileCreateInput!]!) {
  fileCreate(files: $files) {
    files {
      id
      alt
      fileStatus
      preview {
        image {
          url
        }
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""

STAGED_UPLOADS_CREATE_MUTATION = """
mutation stagedUploadsCreate($input: [StagedUploadInput!]!) {
  stagedUploadsCreate(input: $input) {
    stagedTargets {
      url
      resourceUrl
      parameters {
        name
        value
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""


def content_type_for(mime_type: str) -> str:
    """Catalog content category for a MIME type (IMAGE, VIDEO or FILE)."""
    if mime_type.startswith("image/"):
        return "IMAGE"
    if mime_type.startswith("video/"):
        return "VIDEO"
    return "FILE"


def staged_resource_for(mime_type: str) -> str:
    return "IMAGE" if mime_type.startswith("image/") else "FILE"


def _user_error_messages(user_errors: list[dict[str, Any]] | None) -> list[str]:
    messages = []
    for error in user_errors or []:
        field = error.get("field")
        message = error.get("message") or "Unknown error"
        if field:
            path = ".".join(str(part) for part in field)
            messages.append(f"{path}: {message}")
        else:
            messages.append(message)
    return messages


class CatalogRegistrar(Protocol):
    """Strategy interface shared by both upload protocols."""

    async def register(
        self, artifact: RenderedArtifact, retrieval_url: str
    ) -> PublishedAsset: ...


class ShopifyCatalogClient:
    """Minimal GraphQL transport for the Shopify Admin API."""

    def __init__(self, graphql_url: str, access_token: str):
        self.graphql_url = graphql_url
        self.access_token = access_token

    async def execute(
        self,
        query: str,
        variables: dict[str, Any],
        *,
        rejection: type[RegistrationRejectedError | StagingFailedError],
    ) -> dict[str, Any]:
        """Run a GraphQL operation and return its ``data``.

        Raises:
            UpstreamTransportError: Network failure or non-2xx response.
            rejection: When the response carries top-level GraphQL errors.
        """
        client = await get_http_client()
        try:
            response = await client.post(
                self.graphql_url,
                json={"query": query, "variables": variables},
                headers={
                    "X-Shopify-Access-Token": self.access_token,
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise UpstreamTransportError(f"Catalog request failed: {e}") from e

        if not response.is_success:
            body = response.text[:_MAX_ERROR_BODY]
            raise UpstreamTransportError(
                f"Catalog request failed with HTTP {response.status_code}: {body}",
                upstream_status=response.status_code,
                upstream_body=body,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamTransportError(
                "Catalog returned a non-JSON response",
                upstream_status=response.status_code,
                upstream_body=response.text[:_MAX_ERROR_BODY],
            ) from e

        errors = payload.get("errors")
        if errors:
            if isinstance(errors, list):
                messages = [
                    e.get("message", str(e)) if isinstance(e, dict) else str(e)
                    for e in errors
                ]
            else:
                messages = [str(errors)]
            raise rejection("; ".join(messages), messages)

        return payload.get("data") or {}


class _FileCreateMixin:
    catalog: ShopifyCatalogClient

    async def _file_create(
        self, artifact: RenderedArtifact, source_url: str, retrieval_url: str
    ) -> PublishedAsset:
        alt = artifact.suggested_name
        data = await self.catalog.execute(
            FILE_CREATE_MUTATION,
            {
                "files": [
                    {
                        "contentType": content_type_for(artifact.mime_type),
                        "originalSource": source_url,
                        "alt": alt,
                    }
                ]
            },
            rejection=RegistrationRejectedError,
        )
        result = data.get("fileCreate") or {}

        messages = _user_error_messages(result.get("userErrors"))
        if messages:
            raise RegistrationRejectedError("; ".join(messages), messages)

        files = result.get("files") or []
        if not files or not files[0].get("id"):
            raise RegistrationRejectedError("Catalog did not return a file id")

        created = files[0]
        preview_url = ((created.get("preview") or {}).get("image") or {}).get("url")

        logger.info(
            "catalog.registered",
            catalog_id=created["id"],
            name=artifact.suggested_name,
            file_status=created.get("fileStatus"),
        )
        return PublishedAsset(
            retrieval_url=retrieval_url,
            catalog_alt=created.get("alt") or alt,
            catalog_id=created["id"],
            preview_url=preview_url,
        )


class UrlRegistrationProtocol(_FileCreateMixin):
    """Protocol A: the catalog pulls the bytes from the durable blob URL."""

    def __init__(self, catalog: ShopifyCatalogClient):
        self.catalog = catalog

    async def register(
        self, artifact: RenderedArtifact, retrieval_url: str
    ) -> PublishedAsset:
        return await self._file_create(artifact, retrieval_url, retrieval_url)


@dataclass(frozen=True)
class StagedTarget:
    """One-time upload target; ``parameters`` keep the catalog's order."""

    url: str
    resource_url: str
    parameters: tuple[tuple[str, str], ...]


def _parse_staged_target(raw: Any) -> StagedTarget:
    if not isinstance(raw, dict) or not raw.get("url") or not raw.get("resourceUrl"):
        raise StagingFailedError("Catalog did not return a staged upload target")

    parameters = []
    for parameter in raw.get("parameters") or []:
        name = parameter.get("name") if isinstance(parameter, dict) else None
        value = parameter.get("value") if isinstance(parameter, dict) else None
        if not isinstance(name, str) or not name or not isinstance(value, str):
            raise StagingFailedError(
                f"Catalog returned a malformed staged upload parameter: {parameter!r}"
            )
        parameters.append((name, value))

    return StagedTarget(
        url=raw["url"],
        resource_url=raw["resourceUrl"],
        parameters=tuple(parameters),
    )


class StagedUploadProtocol(_FileCreateMixin):
    """Protocol B: stage, transfer, commit.

    A phase that fails stops the protocol; the commit never runs after a
    failed transfer.
    """

    def __init__(self, catalog: ShopifyCatalogClient):
        self.catalog = catalog

    async def stage(self, artifact: RenderedArtifact) -> StagedTarget:
        data = await self.catalog.execute(
            STAGED_UPLOADS_CREATE_MUTATION,
            {
                "input": [
                    {
                        "filename": artifact.suggested_name,
                        "mimeType": artifact.mime_type,
                        "resource": staged_resource_for(artifact.mime_type),
                        "httpMethod": "POST",
                        "fileSize": str(len(artifact.content)),
                    }
                ]
            },
            rejection=StagingFailedError,
        )
        result = data.get("stagedUploadsCreate") or {}

        messages = _user_error_messages(result.get("userErrors"))
        if messages:
            raise StagingFailedError("; ".join(messages), messages)

        targets = result.get("stagedTargets") or []
        target = _parse_staged_target(targets[0] if targets else None)

        logger.info(
            "catalog.staged",
            name=artifact.suggested_name,
            parameters=len(target.parameters),
        )
        return target

    async def transfer(self, artifact: RenderedArtifact, target: StagedTarget) -> None:
        """Multipart POST: staged parameters verbatim and in order, file last.

        Every parameter is its own part, so repeated names keep their
        original position.
        """
        parts: list[tuple[str, tuple[str | None, str | bytes, str | None]]] = [
            (name, (None, value, None)) for name, value in target.parameters
        ]
        parts.append(
            ("file", (artifact.suggested_name, artifact.content, artifact.mime_type))
        )

        client = await get_http_client()
        try:
            response = await client.post(target.url, files=parts)
        except httpx.HTTPError as e:
            raise UpstreamTransportError(f"Staged transfer failed: {e}") from e

        if not response.is_success:
            body = response.text[:_MAX_ERROR_BODY]
            raise TransferFailedError(
                f"Staged transfer rejected with HTTP {response.status_code}: {body}"
            )

        logger.info(
            "catalog.transferred",
            name=artifact.suggested_name,
            size_bytes=len(artifact.content),
        )

    async def register(
        self, artifact: RenderedArtifact, retrieval_url: str
    ) -> PublishedAsset:
        target = await self.stage(artifact)
        await self.transfer(artifact, target)
        return await self._file_create(artifact, target.resource_url, retrieval_url)


def get_catalog_registrar(settings: Settings) -> CatalogRegistrar:
    """Build the registrar for the deployment's configured upload protocol."""
    catalog = ShopifyCatalogClient(
        settings.shopify_graphql_url, settings.shopify_access_token
    )
    if settings.catalog_upload_protocol == "staged":
        return StagedUploadProtocol(catalog)
    return UrlRegistrationProtocol(catalog)
