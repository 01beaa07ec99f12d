"""Call-marshaling engine

One dedicated worker thread runs an asyncio event loop. Every piece of bus
state (connections, exported objects, menu trees, tray properties) is only
ever touched from that thread; other threads hand work over as EngineTask
objects and either wait for the result or fire and forget.

Rules the engine guarantees:
- a blocking submission made *from* the worker thread runs inline, so a task
  may call back into the engine without deadlocking itself;
- tasks submitted from one thread run in submission order;
- stop() runs everything already queued before the loop exits;
- a blocked caller is always released, either with the task outcome or with
  EngineShuttingDown (stop, crash, or a worker that silently died).
"""

import asyncio
import threading
from typing import Any, Callable, Dict, Optional

from ..utils import (
    app_logger,
    logger,
    EngineError,
    EngineNotStarted,
    EngineShuttingDown,
    TrayError,
)
from ..utils.unified_logger import LogCategory
from .base.lifecycle_component import LifecycleComponent
from .services.config import ConfigKeys
from .tasks import DeliveryMode, EngineTask, TaskKind, TaskStatus, make_task


class Engine(LifecycleComponent):
    """Owns the worker thread and its event loop

    Construct one per process (or one per test) and hand it to every
    TraySession; nothing here is global.
    """

    def __init__(self, config=None, name: str = "TrayEngine"):
        """
        Args:
            config: optional ConfigReader (anything with get_setting)
            name: component name, also used for the worker thread name
        """
        super().__init__(name)

        self._config = config
        self._start_timeout = float(self._setting(ConfigKeys.ENGINE_START_TIMEOUT_S, 5.0))
        self._join_timeout = float(self._setting(ConfigKeys.ENGINE_JOIN_TIMEOUT_S, 5.0))
        self._poll_interval = float(self._setting(ConfigKeys.ENGINE_POLL_INTERVAL_S, 0.05))

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._worker_ident: Optional[int] = None
        self._ready = threading.Event()

        # Guards _accepting, _pending and scheduling onto the loop, so that a
        # task accepted before stop() is always queued ahead of loop.stop.
        self._submit_lock = threading.Lock()
        self._accepting = False
        self._pending: Dict[int, EngineTask] = {}
        self._crash: Optional[BaseException] = None

        self._stats_lock = threading.Lock()
        self._stats = {
            kind.value: {"submitted": 0, "completed": 0, "failed": 0, "aborted": 0}
            for kind in TaskKind
        }

    def _setting(self, key: str, default: Any) -> Any:
        if self._config is not None:
            return self._config.get_setting(key, default)
        return default

    # ==================== Lifecycle ====================

    def ensure_started(self) -> None:
        """Start the worker once; later calls are no-ops

        Raises:
            EngineNotStarted: the worker did not come up
        """
        if self.is_running and self._worker_alive():
            return
        if not self.start():
            raise EngineNotStarted(
                f"{self.component_name} worker failed to start",
                context={"start_timeout_s": self._start_timeout},
            )

    def _do_start(self) -> bool:
        # a crashed worker may still be unwinding; its cleanup must not
        # overlap the new worker's state
        previous = self._thread
        if previous is not None and previous is not threading.current_thread():
            previous.join(timeout=self._join_timeout)

        self._ready.clear()
        self._crash = None

        self._thread = threading.Thread(
            target=self._run, name=f"{self.component_name}-worker", daemon=True
        )
        self._thread.start()

        if not self._ready.wait(self._start_timeout):
            app_logger.warning(
                "Engine worker did not become ready in time",
                LogCategory.ENGINE,
                {"timeout_s": self._start_timeout},
            )
            return False

        with self._submit_lock:
            self._accepting = True
        return True

    def _do_stop(self) -> bool:
        with self._submit_lock:
            self._accepting = False
            loop = self._loop
            if loop is not None and not loop.is_closed():
                try:
                    loop.call_soon_threadsafe(loop.stop)
                except RuntimeError:
                    pass  # closed between the check and the call

        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True

        thread.join(timeout=self._join_timeout)
        if thread.is_alive():
            app_logger.warning(
                "Engine worker did not exit before the join timeout",
                LogCategory.ENGINE,
                {"join_timeout_s": self._join_timeout, "pending": self.pending_count},
            )
            return False
        return True

    def _run(self) -> None:
        """Worker thread body"""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._worker_ident = threading.get_ident()
        loop.call_soon(self._ready.set)

        reason = "engine stopped"
        try:
            loop.run_forever()
        except BaseException as e:
            self._crash = e
            self._mark_failed()
            reason = f"engine worker crashed: {type(e).__name__}"
            logger.critical("Engine worker crashed", e, LogCategory.ENGINE,
                            {"pending": len(self._pending)}, self.component_name)
        finally:
            with self._submit_lock:
                self._accepting = False
            self._abort_pending(reason)
            self._cancel_leftovers(loop)
            loop.close()
            if self._worker_ident == threading.get_ident():
                self._worker_ident = None
            app_logger.log_engine_event("Worker loop exited", {"reason": reason})

    def _abort_pending(self, reason: str) -> None:
        with self._submit_lock:
            pending = list(self._pending.values())
            self._pending.clear()

        for task in pending:
            if task.done.is_set():
                continue
            task.finish(TaskStatus.ABORTED, error=EngineShuttingDown(
                f"Task {task.name} was not completed: {reason}",
                context={"task_id": task.task_id, "kind": task.kind.value},
            ))
            self._count(task.kind, "aborted")

        if pending:
            app_logger.warning(
                "Released pending tasks on shutdown",
                LogCategory.ENGINE,
                {"count": len(pending), "reason": reason},
            )

    def _cancel_leftovers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Cancel asyncio tasks still alive after the loop stopped"""
        try:
            leftovers = [t for t in asyncio.all_tasks(loop) if not t.done()]
            for t in leftovers:
                t.cancel()
            if leftovers:
                loop.run_until_complete(asyncio.wait(leftovers, timeout=1.0))
            loop.run_until_complete(loop.shutdown_asyncgens())
        except Exception as e:
            app_logger.log_error(e, "engine_cancel_leftovers")

    # ==================== Submission ====================

    def in_worker_thread(self) -> bool:
        """True when called from the engine's own worker thread"""
        return self._worker_ident is not None and threading.get_ident() == self._worker_ident

    def submit_blocking(self, task: EngineTask) -> EngineTask:
        """Run a task on the worker thread and wait for it

        Failures raised by the task are recorded on it (status FAILED) and
        never raised here.

        Raises:
            EngineNotStarted: the engine was never started
            EngineShuttingDown: the engine stopped or crashed first
        """
        task.mode = DeliveryMode.BLOCKING

        if self.in_worker_thread():
            with self._submit_lock:
                self._pending[task.task_id] = task
            self._count(task.kind, "submitted")
            self._execute(task, inline=True)
            return task

        self._enqueue(task)
        self._wait(task)

        if task.status == TaskStatus.ABORTED:
            raise task.error
        return task

    def submit_async(self, task: EngineTask) -> EngineTask:
        """Queue a task and return immediately

        Raises:
            EngineNotStarted: the engine was never started
            EngineShuttingDown: the engine is stopping
        """
        task.mode = DeliveryMode.ASYNC
        self._enqueue(task)
        return task

    def call(self, fn: Callable[..., Any], *args: Any,
             kind: TaskKind = TaskKind.CALL, **kwargs: Any) -> Any:
        """Run ``fn`` on the worker thread and return its result

        ``fn`` may be a coroutine function, except when called from the
        worker thread itself. A TrayError raised by ``fn`` is re-raised
        here; any other failure is logged on the worker and yields None.
        """
        task = self.submit_blocking(make_task(fn, *args, kind=kind, **kwargs))
        if task.status == TaskStatus.FAILED and isinstance(task.error, TrayError):
            raise task.error
        return task.result

    def run_coroutine(self, coro_fn: Callable[..., Any], *args: Any,
                      kind: TaskKind = TaskKind.LIFECYCLE, **kwargs: Any) -> Any:
        """Run a coroutine function on the worker loop and wait for its result

        Raises:
            EngineError: called from the worker thread
        """
        if self.in_worker_thread():
            raise EngineError(
                "run_coroutine cannot wait on the worker thread",
                context={"coroutine": getattr(coro_fn, "__qualname__", repr(coro_fn))},
            )
        return self.call(coro_fn, *args, kind=kind, **kwargs)

    def call_async(self, fn: Callable[..., Any], *args: Any,
                   kind: TaskKind = TaskKind.CALL, **kwargs: Any) -> EngineTask:
        """Fire-and-forget counterpart of call()"""
        return self.submit_async(
            make_task(fn, *args, kind=kind, mode=DeliveryMode.ASYNC, **kwargs)
        )

    def _enqueue(self, task: EngineTask) -> None:
        with self._submit_lock:
            if not self._accepting:
                raise self._rejection_error()

            self._pending[task.task_id] = task
            try:
                self._loop.call_soon_threadsafe(self._execute, task)
            except RuntimeError as e:
                del self._pending[task.task_id]
                raise EngineShuttingDown(
                    "Engine loop is closed", context={"error": str(e)}
                )

        self._count(task.kind, "submitted")

    def _rejection_error(self) -> EngineError:
        if self._thread is None:
            return EngineNotStarted()
        if self._crash is not None:
            return EngineShuttingDown(
                "Engine worker crashed", context={"crash": repr(self._crash)}
            )
        return EngineShuttingDown()

    def _wait(self, task: EngineTask) -> None:
        # Poll worker liveness so a dead worker can never strand the caller.
        while not task.done.wait(self._poll_interval):
            if not self._worker_alive():
                task.finish(TaskStatus.ABORTED, error=EngineShuttingDown(
                    "Engine worker is no longer running",
                    context={"task_id": task.task_id},
                ))
                with self._submit_lock:
                    self._pending.pop(task.task_id, None)
                self._count(task.kind, "aborted")

    def _worker_alive(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    # ==================== Execution (worker thread) ====================

    def _execute(self, task: EngineTask, inline: bool = False) -> None:
        if task.done.is_set():
            return  # aborted while queued

        task.mark_running()
        try:
            result = task.fn(*task.args, **task.kwargs)
        except Exception as e:
            self._fail(task, e)
            return
        except BaseException as e:
            self._complete(task, TaskStatus.ABORTED, error=EngineShuttingDown(
                f"Engine worker died while running {task.name}",
                context={"task_id": task.task_id, "fault": type(e).__name__},
            ))
            raise

        if asyncio.iscoroutine(result):
            if inline:
                result.close()
                self._fail(task, EngineError(
                    "Coroutine tasks cannot be awaited from the worker thread",
                    context={"task": task.name},
                ))
                return
            aio_task = asyncio.ensure_future(result)
            aio_task.add_done_callback(lambda f, t=task: self._finish_coroutine(t, f))
            return

        self._complete(task, TaskStatus.COMPLETED, result=result)

    def _finish_coroutine(self, task: EngineTask, future: "asyncio.Future") -> None:
        if future.cancelled():
            self._complete(task, TaskStatus.ABORTED, error=EngineShuttingDown(
                f"Coroutine task {task.name} was cancelled",
                context={"task_id": task.task_id},
            ))
            return
        error = future.exception()
        if error is not None:
            self._fail(task, error)
            return
        self._complete(task, TaskStatus.COMPLETED, result=future.result())

    def _fail(self, task: EngineTask, error: BaseException) -> None:
        details = {"task": task.name, "kind": task.kind.value, "mode": task.mode.value}
        if isinstance(error, TrayError):
            app_logger.warning(f"Task {task.name} failed: {error}", LogCategory.ENGINE,
                               details, self.component_name)
        else:
            app_logger.log_error(error, f"engine_task_{task.kind.value}", details)
        self._complete(task, TaskStatus.FAILED, error=error)

    def _complete(self, task: EngineTask, status: TaskStatus, result: Any = None,
                  error: Optional[BaseException] = None) -> None:
        with self._submit_lock:
            self._pending.pop(task.task_id, None)
        if task.done.is_set():
            return
        task.finish(status, result=result, error=error)
        self._count(task.kind, {
            TaskStatus.COMPLETED: "completed",
            TaskStatus.FAILED: "failed",
            TaskStatus.ABORTED: "aborted",
        }[status])

    # ==================== Inspection ====================

    def _count(self, kind: TaskKind, key: str) -> None:
        with self._stats_lock:
            self._stats[kind.value][key] += 1

    def stats(self) -> Dict[str, Dict[str, int]]:
        """Per-kind task counters"""
        with self._stats_lock:
            return {kind: dict(counts) for kind, counts in self._stats.items()}

    @property
    def pending_count(self) -> int:
        with self._submit_lock:
            return len(self._pending)

    @property
    def crashed(self) -> bool:
        return self._crash is not None
