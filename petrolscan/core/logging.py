import logging
import sys
from pathlib import Path
from typing import Any

import structlog


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure structured logging for the crawler process."""

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if fmt.lower() == "json":
        # Production: JSON logs
        processors = shared_processors + [
            structlog.processors.JSONRenderer(ensure_ascii=False)
        ]
    else:
        # Development: Pretty console logs
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer()
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    # Add FileHandler if logs directory exists
    log_file = Path("logs/petrolscan.log")
    if log_file.parent.exists():
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        format="%(message)s",
        handlers=handlers,
        level=level.upper(),
        force=True,
    )


def get_run_logger(run_id: str, station: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a logger bound to one crawl run (and optionally one station).

    The returned logger is passed explicitly into pipeline components so every
    line they emit carries the run and station context.
    """
    logger = structlog.get_logger("petrolscan.pipeline").bind(run_id=run_id)
    if station is not None:
        logger = logger.bind(station=station)
    return logger
