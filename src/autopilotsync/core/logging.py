"""
autopilotsync Logging

Routes structlog through the standard library so that every event lands on
the console and, when a log path is configured, in a durable JSON-lines run
transcript.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import structlog

from autopilotsync.core.exceptions import ConfigurationError


_SHARED_PROCESSORS: List[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def configure_logging(log_path: Optional[Path] = None, verbose: bool = False) -> None:
    """
    Configure structlog and the root logger.

    Args:
        log_path: Transcript file, appended to; parent directories are created
        verbose: Log DEBUG events instead of INFO

    Raises:
        ConfigurationError: If the transcript file cannot be opened; console
            logging is already in place when this is raised
    """
    level = logging.DEBUG if verbose else logging.INFO

    structlog.configure(
        processors=_SHARED_PROCESSORS
        + [
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=_SHARED_PROCESSORS,
        )
    )
    root.addHandler(console)

    if log_path is not None:
        log_path = Path(log_path)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            transcript = logging.FileHandler(log_path, encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot open log file {log_path}: {e}") from e
        transcript.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.format_exc_info,
                    structlog.processors.JSONRenderer(),
                ],
                foreign_pre_chain=_SHARED_PROCESSORS,
            )
        )
        root.addHandler(transcript)
