"""Process-wide font registration for the compositing backend.

The certificate font is loaded once per process. Concurrent requests render
in worker threads, so registration is guarded by a lock and a flag that is
set once and only read afterwards. A font that cannot be loaded never aborts
a render: the registry logs a warning and serves Pillow's built-in font.
"""

from __future__ import annotations

import threading
from functools import lru_cache

from PIL import ImageFont

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


class FontRegistry:
    """Loads the configured TrueType font once and hands out sized instances."""

    def __init__(self, font_source: str):
        self.font_source = font_source
        self._lock = threading.Lock()
        self._registered = False
        self._font_path: str | None = None

    @property
    def registered(self) -> bool:
        return self._registered

    @property
    def using_fallback(self) -> bool:
        return self._registered and self._font_path is None

    def register(self) -> bool:
        """Register the font. Returns True if the configured font is in use.

        Idempotent: calls after the first one return the cached outcome.
        """
        if self._registered:
            return self._font_path is not None

        with self._lock:
            if self._registered:
                return self._font_path is not None

            try:
                # Probe load; FreeType resolves bare filenames in system dirs
                probe = ImageFont.truetype(self.font_source, 12)
                self._font_path = probe.path
                logger.info("font.registered", font=self.font_source)
            except OSError as e:
                self._font_path = None
                logger.warning(
                    "font.register_failed",
                    font=self.font_source,
                    error=str(e),
                    fallback="pillow-default",
                )
            self._registered = True
            return self._font_path is not None

    def get_font(self, size_px: float) -> FontType:
        """Return a font instance of ``size_px`` pixels, registering if needed."""
        self.register()
        size = max(1, round(size_px))
        return _load_font(self._font_path, size)


@lru_cache(maxsize=64)
def _load_font(font_path: str | None, size: int) -> FontType:
    if font_path is None:
        return ImageFont.load_default(size=size)
    return ImageFont.truetype(font_path, size)


def _configured_font_source() -> str:
    settings = get_settings()
    if settings.font_path:
        return settings.font_path
    return f"{settings.font_family}-{settings.font_weight.capitalize()}.ttf"


_registry: FontRegistry | None = None
_registry_lock = threading.Lock()


def get_font_registry() -> FontRegistry:
    """Get the process-wide font registry."""
    global _registry

    if _registry is not None:
        return _registry

    with _registry_lock:
        if _registry is None:
            _registry = FontRegistry(_configured_font_source())
        return _registry


def reset_font_registry() -> None:
    """Forget the process-wide registry. Used by tests."""
    global _registry
    with _registry_lock:
        _registry = None
    _load_font.cache_clear()
