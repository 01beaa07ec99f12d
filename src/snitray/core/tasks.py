"""Engine task definitions

Every unit of work that crosses onto the worker thread travels as an
EngineTask. The task is tagged with what it does (kind) and how the
submitter waits for it (mode), so ordering and failures can be inspected.
"""

import itertools
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

_task_ids = itertools.count(1)


class TaskKind(Enum):
    """What a task does"""

    PROPERTY_CHANGE = "property_change"
    MENU_MUTATION = "menu_mutation"
    INBOUND_EVENT = "inbound_event"
    LIFECYCLE = "lifecycle"
    CALL = "call"


class DeliveryMode(Enum):
    """How the submitter waits"""

    BLOCKING = "blocking"
    ASYNC = "async"


class TaskStatus(Enum):
    """Task status"""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"  # the callable raised
    ABORTED = "aborted"  # the engine went away before/while running it


@dataclass
class EngineTask:
    """A tagged unit of work for the worker thread"""

    fn: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    kind: TaskKind = TaskKind.CALL
    mode: DeliveryMode = DeliveryMode.BLOCKING
    task_id: int = field(default_factory=lambda: next(_task_ids))
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    error: Optional[BaseException] = None
    created_at: float = field(default_factory=time.monotonic)
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    done: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def name(self) -> str:
        return getattr(self.fn, "__qualname__", repr(self.fn))

    def mark_running(self) -> None:
        self.status = TaskStatus.RUNNING
        self.started_at = time.monotonic()

    def finish(self, status: TaskStatus, result: Any = None,
               error: Optional[BaseException] = None) -> None:
        """Record the outcome and release anyone waiting on the task"""
        if self.done.is_set():
            return
        self.status = status
        self.result = result
        self.error = error
        self.completed_at = time.monotonic()
        self.done.set()


def make_task(fn: Callable[..., Any], *args: Any,
              kind: TaskKind = TaskKind.CALL,
              mode: DeliveryMode = DeliveryMode.BLOCKING,
              **kwargs: Any) -> EngineTask:
    """Shorthand for building a task around a call"""
    return EngineTask(fn=fn, args=args, kwargs=kwargs, kind=kind, mode=mode)
