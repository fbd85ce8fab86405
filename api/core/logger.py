"""structlog setup for the certificate service.

Every module logs through ``get_logger(__name__)`` with a dotted event name
and key/value context, e.g.::

    logger.info("certificate.png.published", blob_url=url, catalog_id=gid)

Lines are rendered as JSON when ``LOG_FORMAT=json`` (log shipping in
production) and as coloured console output otherwise. Request-scoped values
bound with ``bind_contextvars`` (the request id, method and path) are merged
into every line until ``clear_contextvars`` runs.
"""

import logging
import os
import sys

import structlog
from structlog.types import Processor

# Upstream clients and imaging libraries log per request or per glyph at
# INFO/DEBUG; only their warnings are interesting here.
QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "uvicorn.access",
    "PIL",
    "cairosvg",
    "multipart",
)


def _log_level() -> int:
    name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, name, logging.INFO)


def _renderer() -> Processor:
    if os.environ.get("LOG_FORMAT", "").lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True, exception_formatter=structlog.dev.plain_traceback
    )


def configure_logging() -> None:
    """Route structlog and stdlib records through one stdout handler.

    Safe to call more than once; the root handler is replaced, not stacked.
    """
    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                _renderer(),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_log_level())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_contextvars(**kwargs: object) -> None:
    """Bind request-scoped values that every later log line will carry."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_contextvars() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)
