"""
Common utilities shared across photobook_toolkit packages.
"""

from .logging_utils import (
    PACKAGE_LOGGER,
    QueueLogHandler,
    attach_queue_handler,
    configure_logging,
    detach_queue_handler,
)

__all__ = [
    "PACKAGE_LOGGER",
    "QueueLogHandler",
    "attach_queue_handler",
    "configure_logging",
    "detach_queue_handler",
]
