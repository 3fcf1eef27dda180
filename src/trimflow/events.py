"""Progress, log and completion notifications for whatever drives the pipeline.

The pipeline only ever calls ``EventSink.emit``. A front end either passes
callbacks (``CallbackSink``) or drains a queue on its own thread
(``QueueSink``); the pipeline never waits for events to be consumed.
"""

from __future__ import annotations

import logging
import queue
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator, Optional, Union

PACKAGE_LOGGER = "trimflow"


class RunState(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Progress:
    percentage: int     # 0-100
    status: str


@dataclass(frozen=True)
class LogLine:
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    level: int = logging.INFO


@dataclass(frozen=True)
class Completion:
    state: RunState
    message: str
    diagnostics: Optional[str] = None   # captured FFmpeg output for process failures

    @property
    def success(self) -> bool:
        return self.state is RunState.SUCCEEDED


Event = Union[Progress, LogLine, Completion]


class EventSink:
    """Receives pipeline events. The base class discards them."""

    def emit(self, event: Event) -> None:
        pass


class CallbackSink(EventSink):
    def __init__(
        self,
        on_progress: Callable[[Progress], None] | None = None,
        on_log: Callable[[LogLine], None] | None = None,
        on_completion: Callable[[Completion], None] | None = None,
    ) -> None:
        self._on_progress = on_progress
        self._on_log = on_log
        self._on_completion = on_completion

    def emit(self, event: Event) -> None:
        if isinstance(event, Progress) and self._on_progress:
            self._on_progress(event)
        elif isinstance(event, LogLine) and self._on_log:
            self._on_log(event)
        elif isinstance(event, Completion) and self._on_completion:
            self._on_completion(event)


class QueueSink(EventSink):
    """Puts every event on an unbounded queue for another thread to consume."""

    def __init__(self, events: queue.SimpleQueue | None = None) -> None:
        self.events: queue.SimpleQueue = events if events is not None else queue.SimpleQueue()

    def emit(self, event: Event) -> None:
        self.events.put_nowait(event)


class ListSink(EventSink):
    """Collects events in memory."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, kind: type) -> list:
        return [e for e in self.events if isinstance(e, kind)]


class _SinkHandler(logging.Handler):
    def __init__(self, sink: EventSink, level: int) -> None:
        super().__init__(level)
        self._sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
        except Exception:
            self.handleError(record)
            return
        self._sink.emit(LogLine(
            message=message,
            timestamp=datetime.fromtimestamp(record.created),
            level=record.levelno,
        ))


@contextmanager
def forward_logs(sink: EventSink, level: int = logging.INFO) -> Iterator[None]:
    """Mirror ``trimflow.*`` log records at *level* and above to *sink* as LogLine events."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    handler = _SinkHandler(sink, level)
    previous_level = logger.level
    if previous_level == logging.NOTSET or previous_level > level:
        logger.setLevel(level)
    logger.addHandler(handler)
    try:
        yield
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)
