"""structlog setup for the watcher process.

The watcher runs as a swarm service whose stderr is collected by the daemon,
so entries are JSON unless a person is watching a terminal. docker-py,
urllib3 and httpx log through stdlib logging and are routed into the same
renderer.
"""

import logging
import sys
from typing import cast

import structlog


def configure_logging(service_name: str = "healthcheck-watcher", level: str = "INFO") -> None:
    """Route structlog and stdlib logging through one renderer.

    Call once from the CLI before the daemon starts; watch threads and
    notifier workers pick the configuration up through the root logger.

    Args:
        service_name: Bound as ``service`` so alerts in aggregated logs can
            be told apart from the services being watched
        level: Root level name, e.g. "INFO" or "DEBUG" for --verbose
    """
    log_level = getattr(logging, level.upper())
    is_tty = sys.stderr.isatty()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.dev.ConsoleRenderer()
        if is_tty
        else structlog.processors.JSONRenderer()
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processor=renderer,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # urllib3 logs every chunked read of the event stream at DEBUG
    logging.getLogger("urllib3").setLevel(max(log_level, logging.INFO))

    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Logger for CLI code; library modules call structlog.get_logger() directly."""
    return cast(structlog.BoundLogger, structlog.get_logger(name))
