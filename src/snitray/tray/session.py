"""Tray session state machine

One TraySession per published tray icon. A session owns a private bus
connection, the StatusNotifierItem object on it, and (while a menu is
attached) a MenuExport. All of that state belongs to the engine worker
thread: public methods marshal onto it through Engine.call, and inbound bus
calls already arrive there.

States: UNREGISTERED -> REGISTERING -> REGISTERED <-> REREGISTERING, and
CLOSED once close() ran (terminal).
"""

import dataclasses
import itertools
import os
import weakref
from enum import Enum
from typing import Any, Callable, List, Optional

from ..bus.connection import BusConnection
from ..bus.constants import (
    ITEM_PATH,
    ITEM_SERVICE_PREFIX,
    MENU_PATH,
    WATCHER_INTERFACE,
    WATCHER_PATH,
    WATCHER_REGISTER_METHOD,
    WATCHER_SERVICE,
)
from ..bus.notifications import send_notification
from ..core.engine import Engine
from ..core.services.config import ConfigKeys
from ..core.tasks import TaskKind
from ..icons import (
    FALLBACK_SIZES,
    LAST_RESORT_SIZE,
    IconSource,
    icon_from_path,
    icon_to_pixmap_list,
)
from ..menu.export import MenuExport
from ..menu.model import Menu
from ..utils import BusRegistrationFailed, InvalidArgument, StaleHandle, app_logger
from ..utils.unified_logger import LogCategory
from .menu_path import AUTO, no_menu_path
from .properties import (
    IconSpec,
    Orientation,
    PropertyGroup,
    TrayProperties,
    TrayStatus,
)
from .sni_adaptor import StatusNotifierItemAdaptor

_service_counter = itertools.count(1)

ActivateCallback = Callable[[int, int], None]
ScrollCallback = Callable[[int, Orientation], None]
ChangeListener = Callable[[PropertyGroup], None]


class SessionState(Enum):
    UNREGISTERED = "unregistered"
    REGISTERING = "registering"
    REGISTERED = "registered"
    REREGISTERING = "reregistering"
    CLOSED = "closed"


def _require_str(value: Optional[str], field: str, allow_empty: bool = False) -> str:
    if value is None or (not allow_empty and not value):
        raise InvalidArgument(f"{field} must be a non-empty string", field=field)
    if not isinstance(value, str):
        raise InvalidArgument(f"{field} must be a string", field=field,
                              context={"type": type(value).__name__})
    return value


class TraySession:
    """A published StatusNotifierItem

    Build one with TraySession.create(); the constructor alone does not
    touch the bus.
    """

    def __init__(self, tray_id: str, engine: Engine, connection: BusConnection,
                 config=None):
        self._id = _require_str(tray_id, "tray_id")
        self._engine = engine
        self._connection = connection
        self._config = config

        self._service_name = f"{ITEM_SERVICE_PREFIX}-{os.getpid()}-{next(_service_counter)}"
        self._state = SessionState.UNREGISTERED
        self._published = False
        self._registration_count = 0

        self._props = TrayProperties(
            id=self._id,
            title=self._load_config_setting(ConfigKeys.SESSION_DEFAULT_TITLE, ""),
            status=TrayStatus.parse(
                self._load_config_setting(ConfigKeys.SESSION_DEFAULT_STATUS, "Active")
            ),
            category=self._load_config_setting(
                ConfigKeys.SESSION_DEFAULT_CATEGORY, "ApplicationStatus"
            ),
        )
        self._adaptor = StatusNotifierItemAdaptor(self)

        self._menu_ref: Optional[weakref.ref] = None
        self._menu_export: Optional[MenuExport] = None

        self._listeners: List[ChangeListener] = []
        self._activate_callback: Optional[ActivateCallback] = None
        self._secondary_activate_callback: Optional[ActivateCallback] = None
        self._scroll_callback: Optional[ScrollCallback] = None

    @classmethod
    def create(cls, tray_id: str, engine: Engine, connection: BusConnection,
               config=None) -> "TraySession":
        """Create a session and publish it on the bus

        Must not be called from the engine worker thread.

        Raises:
            InvalidArgument: empty ``tray_id``
            BusRegistrationFailed: the bus connection or export failed
            EngineNotStarted / EngineShuttingDown: no worker to run on
        """
        session = cls(tray_id, engine, connection, config)
        engine.run_coroutine(session._publish)
        return session

    def __repr__(self) -> str:
        return f"<TraySession {self._id!r} {self._state.value}>"

    # ==================== Helpers ====================

    def _load_config_setting(self, key: str, default: Any) -> Any:
        if self._config is not None:
            return self._config.get_setting(key, default)
        return default

    def _log_event(self, event: str, details: Optional[dict] = None) -> None:
        app_logger.log_session_event(self._id, event, details)

    def _call(self, fn: Callable, *args, kind: TaskKind = TaskKind.PROPERTY_CHANGE):
        return self._engine.call(fn, *args, kind=kind)

    def _require_open(self) -> None:
        if self._state == SessionState.CLOSED:
            raise StaleHandle("Tray session is closed", context={"tray_id": self._id})

    def _no_menu_path(self) -> str:
        return no_menu_path(self._load_config_setting(ConfigKeys.MENU_NO_MENU_PATH, AUTO))

    # ==================== Read-only state ====================

    @property
    def id(self) -> str:
        return self._id

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def registration_count(self) -> int:
        """How many RegisterStatusNotifierItem calls were issued"""
        return self._registration_count

    @property
    def properties(self) -> TrayProperties:
        """Live property set; worker thread only (use snapshot() elsewhere)"""
        return self._props

    @property
    def adaptor(self) -> StatusNotifierItemAdaptor:
        return self._adaptor

    @property
    def attached_menu(self) -> Optional[Menu]:
        menu = self._menu_ref() if self._menu_ref is not None else None
        if menu is None or menu.destroyed:
            return None
        return menu

    @property
    def menu_export(self) -> Optional[MenuExport]:
        return self._menu_export

    def snapshot(self) -> TrayProperties:
        """Copy of every property, read on the worker thread"""
        return self._call(lambda: dataclasses.replace(self._props), kind=TaskKind.CALL)

    # ==================== Registration ====================

    async def _publish(self) -> None:
        self._state = SessionState.REGISTERING
        try:
            await self._connection.connect()
            self._connection.export(ITEM_PATH, self._adaptor)
        except BusRegistrationFailed:
            self._abandon()
            raise
        except Exception as e:
            self._abandon()
            raise BusRegistrationFailed(
                f"Could not publish tray item {self._id}: {e}",
                context={"tray_id": self._id, "service": self._service_name},
                original_exception=e,
            )

        self._published = True
        if not await self._connection.request_name(self._service_name):
            self._log_event("Service name not acquired", {"service": self._service_name})

        # initial path, set silently: nobody has read the object yet
        self._props.menu_path = self._no_menu_path()

        self._register_with_host()
        self._state = SessionState.REGISTERED

        try:
            await self._connection.watch_name_owner(WATCHER_SERVICE, self._on_watcher_owner_changed)
        except Exception as e:
            app_logger.log_error(e, "session_watch_watcher", {"tray_id": self._id})

        app_logger.log_bus_event("Tray item published", {
            "tray_id": self._id,
            "service": self._service_name,
            "unique_name": self._connection.unique_name,
            "menu_path": self._props.menu_path,
        })

    def _abandon(self) -> None:
        self._state = SessionState.CLOSED
        self._published = False
        try:
            self._connection.disconnect()
        except Exception as e:
            app_logger.log_error(e, "session_abandon", {"tray_id": self._id})

    def _register_with_host(self) -> None:
        # Fire-and-forget: the watcher's reply is never awaited or checked.
        self._registration_count += 1
        self._connection.call_async(
            WATCHER_SERVICE,
            WATCHER_PATH,
            WATCHER_INTERFACE,
            WATCHER_REGISTER_METHOD,
            "s",
            [self._connection.unique_name],
        )
        self._log_event("Registration sent", {"attempt": self._registration_count})

    def _on_watcher_owner_changed(self, old_owner: str, new_owner: str) -> None:
        if self._state == SessionState.CLOSED or not new_owner:
            return
        self._state = SessionState.REREGISTERING
        self._log_event("Watcher owner changed", {"old": old_owner, "new": new_owner})
        self._register_with_host()
        self._state = SessionState.REGISTERED

    # ==================== Change notification ====================

    def add_change_listener(self, listener: ChangeListener) -> None:
        """Call ``listener(group)`` on the worker thread after every notification"""
        self._call(self._listeners.append, listener, kind=TaskKind.CALL)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        self._call(_remove, kind=TaskKind.CALL)

    def _notify(self, group: PropertyGroup) -> None:
        self._log_event("Property changed", {"group": group.value})
        if self._published:
            self._adaptor.announce(group)
        for listener in list(self._listeners):
            try:
                listener(group)
            except Exception as e:
                app_logger.log_error(e, "session_change_listener", {"group": group.value})

    def _update(self, group: PropertyGroup, attr: str, value: Any) -> bool:
        self._require_open()
        if getattr(self._props, attr) == value:
            return False
        setattr(self._props, attr, value)
        self._notify(group)
        return True

    def _icon_sizes(self):
        fallback = self._load_config_setting(ConfigKeys.ICON_FALLBACK_SIZES, None)
        last_resort = self._load_config_setting(ConfigKeys.ICON_LAST_RESORT_SIZE, None)
        return (FALLBACK_SIZES if fallback is None else fallback,
                LAST_RESORT_SIZE if last_resort is None else last_resort)

    def _worker_safe(self, source: IconSource) -> IconSource:
        """Caller-thread half of a pixmap setter"""
        if source is None:
            raise InvalidArgument("Icon source is required", field="source")
        if source.gui_thread_only:
            return source.prerender(*self._icon_sizes())
        return source

    def _encode(self, source: IconSource) -> IconSpec:
        pixmaps = icon_to_pixmap_list(source, *self._icon_sizes())
        return IconSpec.by_pixmaps(pixmaps, source.cache_key())

    def _update_pixmap(self, group: PropertyGroup, attr: str, source: IconSource) -> bool:
        self._require_open()
        if getattr(self._props, attr).cache_key == source.cache_key():
            return False
        return self._update(group, attr, self._encode(source))

    def _update_tooltip(self, **changes: Any) -> bool:
        return self._update(
            PropertyGroup.TOOLTIP, "tooltip", dataclasses.replace(self._props.tooltip, **changes)
        )

    # ==================== Setters ====================
    # Each returns True when the value changed (one notification emitted).

    def set_title(self, title: str) -> bool:
        _require_str(title, "title")
        return self._call(self._update, PropertyGroup.TITLE, "title", title)

    def set_status(self, status: Any) -> bool:
        parsed = TrayStatus.parse(status)
        return self._call(self._update, PropertyGroup.STATUS, "status", parsed)

    def set_category(self, category: str) -> bool:
        _require_str(category, "category")
        return self._call(self._update, PropertyGroup.CATEGORY, "category", category)

    def set_icon_by_name(self, name: str) -> bool:
        _require_str(name, "name", allow_empty=True)
        return self._call(self._update, PropertyGroup.ICON, "icon", IconSpec.by_name(name))

    def set_icon_by_pixmap(self, source: IconSource) -> bool:
        source = self._worker_safe(source)
        return self._call(self._update_pixmap, PropertyGroup.ICON, "icon", source)

    def set_icon_by_path(self, path: str) -> bool:
        """Load an image file as the icon

        Raises:
            InvalidArgument: empty path, or the file cannot be read as an image
        """
        _require_str(path, "path")
        source = icon_from_path(path)
        if source is None:
            raise InvalidArgument("Icon file is missing or unreadable", field="path",
                                  context={"path": path})
        return self.set_icon_by_pixmap(source)

    def set_overlay_icon_by_name(self, name: str) -> bool:
        _require_str(name, "name", allow_empty=True)
        return self._call(self._update, PropertyGroup.OVERLAY_ICON, "overlay_icon",
                          IconSpec.by_name(name))

    def set_overlay_icon_by_pixmap(self, source: IconSource) -> bool:
        source = self._worker_safe(source)
        return self._call(self._update_pixmap, PropertyGroup.OVERLAY_ICON, "overlay_icon", source)

    def set_attention_icon_by_name(self, name: str) -> bool:
        _require_str(name, "name", allow_empty=True)
        return self._call(self._update, PropertyGroup.ATTENTION_ICON, "attention_icon",
                          IconSpec.by_name(name))

    def set_attention_icon_by_pixmap(self, source: IconSource) -> bool:
        source = self._worker_safe(source)
        return self._call(self._update_pixmap, PropertyGroup.ATTENTION_ICON, "attention_icon",
                          source)

    def set_tooltip_title(self, title: str) -> bool:
        _require_str(title, "title", allow_empty=True)
        return self._call(lambda: self._update_tooltip(title=title))

    def set_tooltip_subtitle(self, subtitle: str) -> bool:
        _require_str(subtitle, "subtitle", allow_empty=True)
        return self._call(lambda: self._update_tooltip(subtitle=subtitle))

    def set_tooltip_icon_by_name(self, name: str) -> bool:
        _require_str(name, "name", allow_empty=True)
        return self._call(lambda: self._update_tooltip(icon=IconSpec.by_name(name)))

    def set_tooltip_icon_by_pixmap(self, source: IconSource) -> bool:
        source = self._worker_safe(source)

        def _apply() -> bool:
            self._require_open()
            if self._props.tooltip.icon.cache_key == source.cache_key():
                return False
            return self._update_tooltip(icon=self._encode(source))

        return self._call(_apply)

    def force_update(self) -> None:
        """Re-announce icon, tooltip and status even though nothing changed"""
        def _force() -> None:
            self._require_open()
            for group in (PropertyGroup.ICON, PropertyGroup.TOOLTIP, PropertyGroup.STATUS):
                self._notify(group)

        self._call(_force)

    # ==================== Menu ====================

    def set_context_menu(self, menu: Optional[Menu]) -> bool:
        """Attach ``menu`` (exported at /MenuBar) or detach with None

        The session only holds the menu weakly; destroying the menu detaches
        it automatically.

        Returns:
            False when nothing changed (same menu, or already detached)
        """
        return self._call(self._apply_context_menu, menu, kind=TaskKind.MENU_MUTATION)

    def _apply_context_menu(self, menu: Optional[Menu]) -> bool:
        self._require_open()
        current = self.attached_menu
        if menu is current:
            return False
        if menu is not None and menu.destroyed:
            raise StaleHandle("Cannot attach a destroyed menu",
                              context={"menu_id": menu.menu_id})

        self._teardown_menu()

        if menu is None:
            self._update(PropertyGroup.MENU, "menu_path", self._no_menu_path())
            self._log_event("Menu detached")
            return True

        self._menu_ref = weakref.ref(menu)
        menu.add_destroy_listener(self._on_menu_destroyed)
        self._menu_export = MenuExport(menu, self._connection, MENU_PATH,
                                       dispatch=self._dispatch_menu_event)
        self._update(PropertyGroup.MENU, "menu_path", MENU_PATH)
        self._log_event("Menu attached", {"menu_id": menu.menu_id})
        return True

    def _teardown_menu(self) -> None:
        if self._menu_export is not None:
            self._menu_export.close()
            self._menu_export = None
        menu = self._menu_ref() if self._menu_ref is not None else None
        if menu is not None:
            menu.remove_destroy_listener(self._on_menu_destroyed)
        self._menu_ref = None

    def _on_menu_destroyed(self, menu: Menu) -> None:
        attached = self._menu_ref() if self._menu_ref is not None else None
        if attached is not menu or self._state == SessionState.CLOSED:
            return
        self._teardown_menu()
        self._update(PropertyGroup.MENU, "menu_path", self._no_menu_path())
        self._log_event("Menu destroyed, detached", {"menu_id": menu.menu_id})

    def _dispatch_menu_event(self, fn: Callable, *args: Any) -> Any:
        return self._engine.call(fn, *args, kind=TaskKind.INBOUND_EVENT)

    # ==================== Inbound actions ====================

    def set_activate_callback(self, callback: Optional[ActivateCallback]) -> None:
        self._call(setattr, self, "_activate_callback", callback, kind=TaskKind.CALL)

    def set_secondary_activate_callback(self, callback: Optional[ActivateCallback]) -> None:
        self._call(setattr, self, "_secondary_activate_callback", callback, kind=TaskKind.CALL)

    def set_scroll_callback(self, callback: Optional[ScrollCallback]) -> None:
        self._call(setattr, self, "_scroll_callback", callback, kind=TaskKind.CALL)

    def _clear_attention(self) -> None:
        if self._props.status == TrayStatus.NEEDS_ATTENTION:
            self._update(PropertyGroup.STATUS, "status", TrayStatus.ACTIVE)

    def _invoke(self, name: str, callback: Optional[Callable], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            app_logger.log_error(e, f"session_{name}_callback", {"tray_id": self._id})

    def activate(self, x: int, y: int) -> None:
        """Primary activation (usually a left click)"""
        def _activate() -> None:
            self._require_open()
            self._clear_attention()
            self._log_event("Activate", {"x": x, "y": y})
            self._invoke("activate", self._activate_callback, x, y)

        self._call(_activate, kind=TaskKind.INBOUND_EVENT)

    def secondary_activate(self, x: int, y: int) -> None:
        """Secondary activation (usually a middle click)"""
        def _secondary() -> None:
            self._require_open()
            self._clear_attention()
            self._log_event("SecondaryActivate", {"x": x, "y": y})
            self._invoke("secondary_activate", self._secondary_activate_callback, x, y)

        self._call(_secondary, kind=TaskKind.INBOUND_EVENT)

    def scroll(self, delta: int, orientation: Any) -> None:
        """Scroll over the icon; orientation is "horizontal" or "vertical" in any case"""
        if not isinstance(orientation, Orientation):
            orientation = Orientation.from_wire(orientation)

        def _scroll() -> None:
            self._require_open()
            self._clear_attention()
            self._log_event("Scroll", {"delta": delta, "orientation": orientation.value})
            self._invoke("scroll", self._scroll_callback, delta, orientation)

        self._call(_scroll, kind=TaskKind.INBOUND_EVENT)

    def context_menu(self, x: int, y: int) -> None:
        """Toggle the attached menu; no-op without one"""
        def _context_menu() -> None:
            self._require_open()
            self._clear_attention()
            menu = self.attached_menu
            if menu is None:
                return
            if menu.visible:
                menu.hide()
            else:
                menu.popup(x, y)

        self._call(_context_menu, kind=TaskKind.INBOUND_EVENT)

    # ==================== Side channel ====================

    def show_message(self, title: str, body: str, icon_name: str = "",
                     timeout_s: Optional[float] = None) -> None:
        """Desktop notification through org.freedesktop.Notifications (best effort)"""
        _require_str(title, "title", allow_empty=True)
        _require_str(body, "body", allow_empty=True)
        if timeout_s is None:
            timeout_s = self._load_config_setting(ConfigKeys.NOTIFICATIONS_DEFAULT_TIMEOUT_S, 5)

        def _show() -> None:
            self._require_open()
            if not self._published:
                return
            send_notification(self._connection, self._props.title, title, body,
                              icon_name or "", timeout_s)

        self._call(_show, kind=TaskKind.CALL)

    # ==================== Teardown ====================

    def close(self) -> None:
        """Unpublish and disconnect; the session cannot be used afterwards"""
        self._call(self._close, kind=TaskKind.LIFECYCLE)

    def _close(self) -> None:
        if self._state == SessionState.CLOSED:
            return
        self._teardown_menu()
        if self._published:
            try:
                self._connection.unexport(ITEM_PATH, self._adaptor)
            except Exception as e:
                app_logger.log_error(e, "session_unexport", {"tray_id": self._id})
        self._published = False
        self._state = SessionState.CLOSED
        self._listeners.clear()
        try:
            self._connection.disconnect()
        except Exception as e:
            app_logger.log_error(e, "session_disconnect", {"tray_id": self._id})
        app_logger.info("Tray item closed", LogCategory.SESSION,
                        {"tray_id": self._id, "service": self._service_name})
