from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

DEFAULT_CAPACITY = 1000


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    level: str
    logger: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "logger": self.logger,
            "message": self.message,
            "context": self.context,
            "error": self.error,
        }


class RingBufferHandler(logging.Handler):
    """
    Keeps the last `capacity` log records in memory.
    Context passed as `extra={"context": {...}}` is kept alongside the message.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, level: int = logging.DEBUG):
        super().__init__(level=level)
        self.capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            context = getattr(record, "context", None)
            error = None
            if record.exc_info and record.exc_info[1] is not None:
                error = str(record.exc_info[1])
            entry = LogEntry(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname,
                logger=record.name,
                message=record.getMessage(),
                context=dict(context) if isinstance(context, dict) else {},
                error=error,
            )
        except Exception:
            self.handleError(record)
            return

        self.acquire()
        try:
            self._entries.append(entry)
        finally:
            self.release()

    def entries(self, level: Optional[str] = None) -> List[LogEntry]:
        self.acquire()
        try:
            items = list(self._entries)
        finally:
            self.release()
        if level:
            items = [e for e in items if e.level == level.upper()]
        return items

    def clear(self) -> None:
        self.acquire()
        try:
            self._entries.clear()
        finally:
            self.release()


def build_logger(name: str, capacity: int = DEFAULT_CAPACITY, level: int = logging.DEBUG) -> logging.Logger:
    """Logger with a ring buffer attached. Reuses the buffer if one is already there."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if ring_buffer(logger) is None:
        logger.addHandler(RingBufferHandler(capacity=capacity))
    return logger


def ring_buffer(logger: logging.Logger) -> Optional[RingBufferHandler]:
    for h in logger.handlers:
        if isinstance(h, RingBufferHandler):
            return h
    return None
