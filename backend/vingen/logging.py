"""Logging configuration using structlog over the standard library."""

import logging
import sys
from typing import TextIO

import structlog
from structlog.typing import Processor

from vingen.config import settings


def configure_logging(stream: TextIO | None = None) -> None:
    """Configure structlog with key-value console output.

    The API logs to stdout. The CLI passes ``sys.stderr`` so that generated
    codes on stdout can be piped or redirected without log lines mixed in.
    Colors are only used when the stream is a terminal.

    Sequence events (backend choice, resets, soft-limit warnings) carry
    ``prefix`` and ``backend`` keys so they can be grepped per prefix.
    """
    stream = stream or sys.stdout

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        # uvicorn and redis log through plain stdlib loggers
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(
                colors=stream.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ],
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    logging.getLogger("asyncio").setLevel(logging.INFO)
    logging.getLogger("redis").setLevel(logging.WARNING)


_configured = False


def setup_logging(stream: TextIO | None = None) -> None:
    """Setup logging once. Safe to call multiple times."""
    global _configured
    if not _configured:
        configure_logging(stream)
        _configured = True
