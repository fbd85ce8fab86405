"""FastAPI application for the Certificate API."""

import asyncio
from contextlib import asynccontextmanager

import fastapi
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from core.config import get_settings
from core.http_client import close_http_client
from core.logger import configure_logging, get_logger
from core.middleware import PreflightCORSMiddleware, RequestContextMiddleware
from core.ratelimit import limiter, rate_limit_exceeded_handler
from rendering.fonts import get_font_registry
from routes import certificates_router, health_router

configure_logging()
logger = get_logger(__name__)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        exc_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) or "An unexpected error occurred.",
            "type": type(exc).__name__,
        },
    )


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Malformed request bodies are bad input (400), not 422."""
    if not isinstance(exc, RequestValidationError):
        return JSONResponse(status_code=500, content={"error": "Unexpected error"})

    errors = exc.errors()
    logger.warning(
        "request.validation_error",
        path=request.url.path,
        method=request.method,
        error_count=len(errors),
    )
    fields = [".".join(str(part) for part in error.get("loc", ())) for error in errors]
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "message": f"Invalid fields: {', '.join(fields)}",
            "type": "InvalidInput",
            "details": [
                {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
                for error in errors
            ],
        },
    )


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Register the certificate font at startup, close HTTP pools on shutdown."""
    fonts = get_font_registry()
    await asyncio.to_thread(fonts.register)
    logger.info("init.complete", fallback_font=fonts.using_fallback)

    try:
        yield
    finally:
        await close_http_client()


_settings = get_settings()

app = fastapi.FastAPI(
    title="Certificate API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if _settings.enable_docs or _settings.debug else None,
    redoc_url="/redoc" if _settings.enable_docs or _settings.debug else None,
    openapi_url=("/openapi.json" if _settings.enable_docs or _settings.debug else None),
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=_settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["X-Request-Id"],
    max_age=86400,
)
# Outermost, so CORS preflights and errors are logged with a request id too
app.add_middleware(RequestContextMiddleware)

app.include_router(health_router)
app.include_router(certificates_router)
