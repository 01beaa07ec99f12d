"""Tray manager - explicit owner of the engine, the sessions and the menus

Replaces process-wide singletons: construct one TrayManager (or several in
tests, each with its own Engine) and go through it for everything.

The manager counts live sessions. When the count drops to zero the engine is
stopped after a short grace delay; creating a session before the delay
expires cancels the pending teardown. Teardown runs at most once per cycle,
however many paths trigger it; a later create_tray() starts the engine again.
"""

import threading
from typing import Callable, List, Optional

from ..bus.connection import BusConnection, session_bus_factory
from ..menu.bridge import MenuBridge
from ..menu.model import CheckResult, ItemHandle
from ..tray.session import TraySession
from ..utils import InvalidArgument, TrayError, app_logger, logger
from .engine import Engine
from .services.config import AppInfo, ConfigKeys

BusFactory = Callable[[str], BusConnection]


class TrayManager:
    """Entry point: tray sessions and context menus"""

    def __init__(self, engine: Optional[Engine] = None, config=None,
                 bus_factory: BusFactory = session_bus_factory):
        """
        Args:
            engine: engine to run on (a new one by default)
            config: optional ConfigReader
            bus_factory: builds one private bus connection per session
        """
        self._config = config
        if config is not None:
            logger.set_config_service(config)
        app_logger.log_startup({"version": AppInfo.VERSION})

        self._engine = engine or Engine(config)
        self._bus_factory = bus_factory
        self._menus = MenuBridge(self._engine)

        self._lock = threading.Lock()
        self._teardown_lock = threading.Lock()
        self._sessions: List[TraySession] = []
        self._live = 0
        self._active = False
        self._shutdown_timer: Optional[threading.Timer] = None
        self._shutdown_count = 0
        self._grace_s = float(
            self._load_config_setting(ConfigKeys.ENGINE_SHUTDOWN_GRACE_MS, 100)
        ) / 1000.0

    def _load_config_setting(self, key, default):
        if self._config is not None:
            return self._config.get_setting(key, default)
        return default

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def menus(self) -> MenuBridge:
        return self._menus

    @property
    def live_sessions(self) -> int:
        with self._lock:
            return self._live

    @property
    def shutdown_count(self) -> int:
        """How many times the engine was torn down"""
        with self._lock:
            return self._shutdown_count

    # ==================== Sessions ====================

    def create_tray(self, tray_id: str) -> TraySession:
        """Create and publish a tray session

        Raises:
            InvalidArgument: empty ``tray_id``
            BusRegistrationFailed: the session could not be published
        """
        if not tray_id:
            raise InvalidArgument("tray_id must be a non-empty string", field="tray_id")

        # a teardown in progress finishes (engine stopped) before this starts it again
        with self._teardown_lock:
            with self._lock:
                self._cancel_timer()
                self._live += 1
                self._active = True

            try:
                self._engine.ensure_started()
                session = TraySession.create(
                    tray_id, self._engine, self._bus_factory(tray_id), self._config
                )
            except Exception:
                self._release()
                raise

            with self._lock:
                self._sessions.append(session)
        app_logger.log_session_event(tray_id, "Created", {"service": session.service_name})
        return session

    def destroy_tray(self, session: TraySession) -> bool:
        """Close a session; returns False if this manager does not own it"""
        with self._lock:
            if session not in self._sessions:
                return False
            self._sessions.remove(session)

        try:
            session.close()
        except TrayError as e:
            app_logger.log_error(e, "tray_manager_destroy_tray", {"tray_id": session.id})
        finally:
            self._release()
        return True

    def set_context_menu(self, session: TraySession, menu: Optional[ItemHandle]) -> bool:
        """Attach the menu behind ``menu`` (any of its handles) or detach with None"""
        target = self._menus.lookup(menu) if menu is not None else None
        return session.set_context_menu(target)

    def _release(self) -> None:
        with self._lock:
            self._live = max(self._live - 1, 0)
            if self._live or not self._active:
                return
            self._cancel_timer()
            timer = threading.Timer(self._grace_s, self._shutdown_if_idle)
            timer.daemon = True
            self._shutdown_timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        if self._shutdown_timer is not None:
            self._shutdown_timer.cancel()
            self._shutdown_timer = None

    def _shutdown_if_idle(self) -> None:
        self._shutdown(require_idle=True)

    def shutdown(self) -> bool:
        """Close every session, destroy every menu and stop the engine

        Returns:
            False if there was nothing to tear down (already shut down)
        """
        return self._shutdown(require_idle=False)

    def _shutdown(self, require_idle: bool) -> bool:
        # on the worker a create_tray() may be holding the teardown lock while it
        # waits for this very thread, so never block there
        on_worker = self._engine.in_worker_thread()
        locked = self._teardown_lock.acquire(blocking=not on_worker)
        try:
            with self._lock:
                if not self._active or (require_idle and self._live):
                    return False
                self._active = False
                self._cancel_timer()
                sessions, self._sessions = self._sessions, []
                self._live = 0
                self._shutdown_count += 1

            for session in sessions:
                try:
                    session.close()
                except TrayError as e:
                    app_logger.log_error(e, "tray_manager_shutdown", {"tray_id": session.id})
            try:
                self._menus.destroy_all()
            except TrayError as e:
                app_logger.log_error(e, "tray_manager_shutdown_menus")

            self._engine.stop()
        finally:
            if locked:
                self._teardown_lock.release()
        app_logger.log_shutdown()
        return True

    # ==================== Menus ====================

    def create_menu(self) -> ItemHandle:
        self._engine.ensure_started()
        return self._menus.create_menu()

    def destroy_menu(self, menu: ItemHandle) -> None:
        self._menus.destroy_menu(menu)

    def add_action(self, parent: ItemHandle, text: str, callback=None) -> ItemHandle:
        return self._menus.add_action(parent, text, callback)

    def add_checkable_action(self, parent: ItemHandle, text: str, checked: bool = False,
                             callback=None) -> ItemHandle:
        return self._menus.add_checkable_action(parent, text, checked, callback)

    def add_disabled_action(self, parent: ItemHandle, text: str, callback=None) -> ItemHandle:
        return self._menus.add_disabled_action(parent, text, callback)

    def add_separator(self, parent: ItemHandle) -> ItemHandle:
        return self._menus.add_separator(parent)

    def add_submenu(self, parent: ItemHandle, text: str) -> ItemHandle:
        return self._menus.add_submenu(parent, text)

    def set_text(self, item: ItemHandle, text: str) -> bool:
        return self._menus.set_text(item, text)

    def set_enabled(self, item: ItemHandle, enabled: bool) -> bool:
        return self._menus.set_enabled(item, enabled)

    def set_checked(self, item: ItemHandle, checked: bool) -> CheckResult:
        return self._menus.set_checked(item, checked)

    def set_icon(self, item: ItemHandle, icon: str) -> bool:
        return self._menus.set_icon(item, icon)

    def remove(self, parent: ItemHandle, item: ItemHandle) -> None:
        self._menus.remove(parent, item)

    def clear(self, parent: ItemHandle) -> int:
        return self._menus.clear(parent)
