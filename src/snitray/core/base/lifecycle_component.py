"""Lifecycle base class for components that own a thread or a connection"""

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

from ...utils import app_logger


class ComponentState(Enum):
    """Component lifecycle states"""

    STOPPED = "stopped"  # initial state
    RUNNING = "running"
    ERROR = "error"  # last transition failed; start() may be retried


class LifecycleComponent(ABC):
    """Start/stop state machine

    Subclasses implement _do_start() and _do_stop(); each returns True on
    success. Exceptions raised there are logged and turn into ERROR, never
    into a raise from start()/stop().

    Transitions are serialized: racing start() calls run _do_start() once.

    Example:
        class Worker(LifecycleComponent):
            def _do_start(self) -> bool:
                self._thread = spawn_worker()
                return True

            def _do_stop(self) -> bool:
                self._thread.join()
                return True
    """

    def __init__(self, component_name: str):
        self._component_name = component_name
        self._state = ComponentState.STOPPED
        self._transition_lock = threading.RLock()

    def start(self) -> bool:
        """Bring the component up; True if it is running afterwards"""
        return self._transition("start", ComponentState.RUNNING, self._do_start)

    def stop(self) -> bool:
        """Shut the component down; True if it is stopped afterwards"""
        return self._transition("stop", ComponentState.STOPPED, self._do_stop)

    def _transition(self, action: str, target: ComponentState,
                    step: Callable[[], bool]) -> bool:
        with self._transition_lock:
            if self._state == target:
                return True

            name = self._component_name
            app_logger.log_engine_event(f"{name} {action} requested", {
                "component": name, "from": self._state.value,
            })
            try:
                ok = step()
            except Exception as e:
                app_logger.log_error(e, f"{name}_{action}")
                ok = False

            self._state = target if ok else ComponentState.ERROR
            app_logger.log_engine_event(f"{name} {action} {'done' if ok else 'failed'}", {
                "component": name, "state": self._state.value,
            })
            return ok

    def _mark_failed(self) -> bool:
        """Put a running component into ERROR outside start/stop

        Never blocks: when a transition holds the lock, that transition sets
        the final state and this returns False.
        """
        if not self._transition_lock.acquire(blocking=False):
            return False
        try:
            self._state = ComponentState.ERROR
            return True
        finally:
            self._transition_lock.release()

    @abstractmethod
    def _do_start(self) -> bool:
        pass

    @abstractmethod
    def _do_stop(self) -> bool:
        pass

    @property
    def is_running(self) -> bool:
        return self._state == ComponentState.RUNNING

    @property
    def state(self) -> ComponentState:
        return self._state

    @property
    def component_name(self) -> str:
        return self._component_name
