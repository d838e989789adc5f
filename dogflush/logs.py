# dogflush/logs.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from colorlog import ColoredFormatter, StreamHandler

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "light_blue",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def setup_logging(level: str = "info", logger_name: str = "dogflush") -> logging.Logger:
    """
    Attach a colored stderr handler to the package logger.
    Only the CLI calls this; as a library dogflush leaves handlers to the host app.
    """
    logger = logging.getLogger(logger_name)
    if not any(isinstance(h, StreamHandler) for h in logger.handlers):
        handler = StreamHandler()
        handler.setFormatter(
            ColoredFormatter(
                "%(asctime)s %(log_color)s%(name)s:%(levelname)s%(reset)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
                log_colors=LOG_COLORS,
                reset=True,
            )
        )
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    return logger


def log_errors(logger: Optional[logging.Logger] = None, what: str = "periodic flush") -> Callable[[Exception], None]:
    """Error sink for Ticker/Periodic/Aggregator that logs instead of dropping."""
    logger = logger or logging.getLogger("dogflush")

    def sink(err: Exception):
        logger.error("%s failed: %s", what, err)

    return sink
