"""
Logging utilities: console/file setup and forwarding of log records to a
queue so a UI console can display upload and build progress.
"""
from __future__ import annotations

import logging
from pathlib import Path
from queue import Queue
from typing import Optional

PACKAGE_LOGGER = "photobook_toolkit"
DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure the package logger with a console handler and optional file.

    Calling this again replaces the handlers it installed before.

    Args:
        level: Minimum level for the package logger.
        log_file: Optional path for a UTF-8 log file.
        fmt: Format string shared by the handlers.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_photobook_managed", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(fmt)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._photobook_managed = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


class QueueLogHandler(logging.Handler):
    """
    A logging handler that sends ``(message, level)`` tuples to a queue.

    DEBUG records are reported as INFO for display.
    """

    def __init__(self, log_queue: Queue, level: int = logging.INFO):
        super().__init__(level)
        self.log_queue = log_queue
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            level = record.levelname
            if level == "DEBUG":
                level = "INFO"
            self.log_queue.put((message, level))
        except Exception:
            self.handleError(record)


def attach_queue_handler(
    log_queue: Queue,
    logger_name: Optional[str] = PACKAGE_LOGGER,
    level: int = logging.INFO,
) -> QueueLogHandler:
    """
    Attach a QueueLogHandler to a logger (the package logger by default).

    Returns:
        The attached handler (for later removal).
    """
    handler = QueueLogHandler(log_queue, level)
    logging.getLogger(logger_name).addHandler(handler)
    return handler


def detach_queue_handler(handler: QueueLogHandler, logger_name: Optional[str] = PACKAGE_LOGGER) -> None:
    """Remove a handler added by attach_queue_handler."""
    logging.getLogger(logger_name).removeHandler(handler)
