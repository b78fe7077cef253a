"""Process-wide logging configuration."""

from __future__ import annotations

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
HANDLER_NAME = "meeting_assistant_stream"


def _build_stream_handler(level: int) -> logging.StreamHandler:  # type: ignore[type-arg]
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, "%H:%M:%S"))
    handler.setLevel(level)
    handler.name = HANDLER_NAME
    return handler


def configure_logging(level: str = "INFO") -> None:
    """Route the root and uvicorn loggers through one stream handler.

    Safe to call more than once; the handler is replaced, not duplicated.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    handler = _build_stream_handler(numeric)

    root = logging.getLogger()
    root.setLevel(numeric)
    root.handlers = [h for h in root.handlers if h.name != HANDLER_NAME]
    root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = [handler]
        uv_logger.propagate = False

    # Third-party HTTP clients are chatty at INFO.
    for name in ("httpx", "httpcore", "hpack"):
        logging.getLogger(name).setLevel(logging.WARNING)
