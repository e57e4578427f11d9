"""Logging setup.

stdlib ``logging`` (``basicConfig``) serves the ``startup`` and uvicorn
loggers; ``structlog`` module loggers print rendered events to stdout
through their own logger factory, filtered at the same level.
"""

from __future__ import annotations

import logging
import sys
from typing import List

import structlog


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """
    Configure stdlib logging and structlog once per process.

    Args:
        level: Level name (DEBUG, INFO, ...); unknown names fall back to INFO
        fmt: "console" for human-readable lines, "json" for one JSON per line
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stdout,
    )

    processors: List[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats exc_info itself
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )

    for name in ("startup", "uvicorn.error"):
        logger = logging.getLogger(name)
        if logger.level == logging.NOTSET:
            logger.setLevel(numeric_level)
