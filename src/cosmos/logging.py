import logging
from typing import Any

import structlog


def configure_logging(level: int | str = logging.INFO, *, json_logs: bool = True) -> None:
    """Configure structlog on top of stdlib logging.

    The API and the sentinel emit JSON lines; the CLI passes ``json_logs=False``
    to get the human-readable console renderer instead.
    """

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Bind contextual fields for downstream logs."""

    return structlog.get_logger().bind(**kwargs)


def application_logger(application: str, **kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Logger bound to one monitored application."""

    return bind_context(application=application, **kwargs)
