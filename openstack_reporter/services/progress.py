"""
Progress reporting for report collection.

The report builder emits lifecycle events through a ProgressReporter without
knowing how (or whether) they are delivered. Reporters never block and never
raise into the caller: an event that cannot be delivered is dropped.
"""
import logging
import queue
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional


logger = logging.getLogger(__name__)


class ProgressEventType(str, Enum):
    START = 'start'
    PROGRESS = 'progress'
    RESOURCE_START = 'resource_start'
    RESOURCE_COMPLETE = 'resource_complete'
    RESOURCE_ERROR = 'resource_error'
    PROJECT_START = 'project_start'
    PROJECT_COMPLETE = 'project_complete'
    PROJECT_ERROR = 'project_error'
    COMPLETE = 'complete'
    ERROR = 'error'
    SUMMARY = 'summary'


# Events after which a stream consumer can stop listening
TERMINAL_EVENTS = frozenset({ProgressEventType.COMPLETE, ProgressEventType.ERROR})


@dataclass(frozen=True)
class ProgressEvent:
    type: ProgressEventType
    message: str
    current_step: int = 0
    total_steps: int = 0
    project: str = ''
    resource_type: str = ''
    count: int = 0
    summary: Optional[Dict[str, int]] = None

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for a push channel, omitting empty fields."""
        data: Dict[str, Any] = {'type': self.type.value, 'message': self.message}
        if self.current_step:
            data['current_step'] = self.current_step
        if self.total_steps:
            data['total_steps'] = self.total_steps
        if self.project:
            data['project'] = self.project
        if self.resource_type:
            data['resource_type'] = self.resource_type
        if self.count:
            data['count'] = self.count
        if self.summary:
            data['summary'] = dict(self.summary)
        return data


class ProgressReporter(ABC):
    """Sink for progress events."""

    def send(
        self,
        event_type: ProgressEventType,
        message: str,
        current_step: int = 0,
        total_steps: int = 0,
        project: str = '',
        resource_type: str = '',
        count: int = 0,
        summary: Optional[Dict[str, int]] = None
    ) -> None:
        """Build an event and hand it to ``emit``. Never raises."""
        event = ProgressEvent(
            type=ProgressEventType(event_type),
            message=message,
            current_step=current_step,
            total_steps=total_steps,
            project=project,
            resource_type=resource_type,
            count=count,
            summary=summary,
        )
        try:
            self.emit(event)
        except Exception as e:
            logger.debug(f"Dropped progress event {event.type.value}: {e}")

    @abstractmethod
    def emit(self, event: ProgressEvent) -> None:
        """Deliver one event. Must not block."""
        pass


class NullProgressReporter(ProgressReporter):
    """Discards every event."""

    def emit(self, event: ProgressEvent) -> None:
        pass


class QueueProgressReporter(ProgressReporter):
    """Delivers events into a bounded queue for a separate consumer.

    When the queue is full, or the reporter has been closed because the
    consumer went away, events are dropped instead of stalling collection.
    """

    def __init__(self, event_queue: Optional['queue.Queue[ProgressEvent]'] = None, maxsize: int = 100):
        self.queue = event_queue if event_queue is not None else queue.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    def emit(self, event: ProgressEvent) -> None:
        if self._closed:
            self.dropped += 1
            return
        try:
            self.queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1

    def close(self) -> None:
        """Stop accepting events."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


class CallbackProgressReporter(ProgressReporter):
    """Calls a function synchronously for each event."""

    def __init__(self, callback: Callable[[ProgressEvent], None]):
        self.callback = callback

    def emit(self, event: ProgressEvent) -> None:
        self.callback(event)
