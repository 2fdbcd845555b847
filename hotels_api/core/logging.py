"""Logging setup.

Configures the root logger once and routes the sanitization audit logger
through a bounded queue so audit writes never block the request path.
When the queue is full, records are dropped and counted.
"""

from __future__ import annotations

import logging
import queue
from logging.handlers import QueueHandler, QueueListener

from hotels_api.core.config import Settings

AUDIT_LOGGER_NAME = "hotels_api.audit.discards"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_listener: QueueListener | None = None


class DroppingQueueHandler(QueueHandler):
    """``QueueHandler`` that drops records instead of blocking when full."""

    def __init__(self, log_queue: queue.Queue) -> None:
        super().__init__(log_queue)
        self.dropped = 0

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1


def configure_logging(settings: Settings) -> DroppingQueueHandler:
    """Configure root logging and the non-blocking audit handler.

    Safe to call more than once; the previous audit listener is stopped
    and replaced.

    Returns:
        The installed ``DroppingQueueHandler`` (exposes ``dropped``).
    """
    global _listener

    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=_LOG_FORMAT)

    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    for handler in list(audit_logger.handlers):
        if isinstance(handler, DroppingQueueHandler):
            audit_logger.removeHandler(handler)
    if _listener is not None:
        _listener.stop()

    log_queue: queue.Queue = queue.Queue(maxsize=settings.AUDIT_QUEUE_SIZE)
    queue_handler = DroppingQueueHandler(log_queue)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    _listener = QueueListener(log_queue, stream_handler, respect_handler_level=True)
    _listener.start()

    audit_logger.addHandler(queue_handler)
    audit_logger.propagate = False
    return queue_handler


def shutdown_logging() -> None:
    """Flush and stop the audit listener."""
    global _listener
    if _listener is not None:
        _listener.stop()
        _listener = None
