"""Application configuration using pydantic-settings."""

from functools import cached_property, lru_cache
from typing import Literal, Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Remote asset catalog (Shopify Admin GraphQL API)
    shopify_shop_domain: str = ""
    shopify_access_token: str = ""
    shopify_api_version: str = "2024-01"

    # "url": register a self-hosted blob URL with fileCreate
    # "staged": stagedUploadsCreate -> multipart transfer -> fileCreate
    catalog_upload_protocol: Literal["url", "staged"] = "url"

    # Durable blob store (Vercel Blob compatible PUT API)
    blob_read_write_token: str = ""
    blob_api_url: str = "https://blob.vercel-storage.com"
    blob_add_random_suffix: bool = True

    # Derive and publish a PDF alongside the PNG (best effort)
    generate_pdf: bool = True

    # Font used for compositing. font_path wins; otherwise
    # "{font_family}-{Font_weight}.ttf" is looked up in the system font dirs.
    font_path: str = ""
    font_family: str = "DejaVuSans"
    font_weight: str = "bold"

    http_timeout: float = 30.0

    # Decoded template image size limit (10 MB request body in production)
    max_upload_bytes: int = 10 * 1024 * 1024

    # Comma-separated list of allowed CORS origins
    cors_allowed_origins: str = "https://gwrstore.com"

    # Use "redis://host:port" in production for distributed rate limiting
    ratelimit_storage_uri: str = "memory://"

    debug: bool = False
    enable_docs: bool = False

    @model_validator(mode="after")
    def validate_config(self) -> Self:
        if not self.debug:
            if not self.shopify_shop_domain or not self.shopify_access_token:
                raise ValueError(
                    "SHOPIFY_SHOP_DOMAIN and SHOPIFY_ACCESS_TOKEN must be set. "
                    "Set DEBUG=true to skip this check in development."
                )
            if not self.blob_read_write_token:
                raise ValueError(
                    "BLOB_READ_WRITE_TOKEN must be set. "
                    "Set DEBUG=true to skip this check in development."
                )
        return self

    @property
    def shopify_graphql_url(self) -> str:
        return (
            f"https://{self.shopify_shop_domain}"
            f"/admin/api/{self.shopify_api_version}/graphql.json"
        )

    @cached_property
    def allowed_origins(self) -> list[str]:
        """Configured origins plus localhost origins in debug mode."""
        origins: list[str] = []

        if self.debug:
            origins.extend(
                [
                    "http://localhost:3000",
                    "http://localhost:5173",
                ]
            )

        if self.cors_allowed_origins:
            for origin in self.cors_allowed_origins.split(","):
                origin = origin.strip()
                if origin and origin not in origins:
                    origins.append(origin)

        return origins


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this in tests to reset settings between test cases.
    After clearing, the next get_settings() call will create
    a fresh Settings instance with current environment variables.
    """
    get_settings.cache_clear()
