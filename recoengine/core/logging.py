# recoengine/core/logging.py
import logging
import sys
from typing import Optional, Union

import colorlog

LOG_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s [%(name)s]%(reset)s %(message)s"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Third-party loggers that drown the engine's own output below WARNING
NOISY_LOGGERS = ("pymongo", "motor", "httpx")


def _resolve_level(level: Union[int, str, None], debug: bool) -> int:
    if level is None:
        return logging.DEBUG if debug else logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(level: Union[int, str, None] = None, *, debug: bool = False, stream: Optional[object] = None) -> int:
    """
    Install a single colored stdout handler on the root logger.

    `level` wins over `debug`; both uvicorn loggers follow the engine level so request
    lines and scorer timings interleave in one stream. Returns the level applied.
    """
    resolved = _resolve_level(level, debug)

    handler = colorlog.StreamHandler(stream or sys.stdout)
    handler.setFormatter(colorlog.ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS))

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)
    root_logger.handlers = [handler]

    for name in ("recoengine", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(resolved)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))

    return resolved
