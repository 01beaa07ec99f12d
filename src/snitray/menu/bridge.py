"""Thread-safe menu API

Every call is marshaled onto the engine worker thread as a MENU_MUTATION
task, so concurrent callers see one linear sequence of structural updates.
Menus themselves live in a registry owned by the worker thread; callers
only ever hold ItemHandles.
"""

import os
from typing import Callable, Dict, Optional, Tuple

from PySide6.QtGui import QGuiApplication, QIcon

from ..core.engine import Engine
from ..core.tasks import TaskKind
from ..icons import icon_from_path, image_to_png
from ..utils import InvalidArgument, StaleHandle, app_logger
from .model import ActionCallback, CheckResult, ItemHandle, Menu


def _require_text(text: Optional[str], field: str = "text") -> str:
    if not text:
        raise InvalidArgument(f"{field} must be a non-empty string", field=field)
    return text


def resolve_menu_icon(value: str) -> Optional[Tuple[str, bytes]]:
    """(icon_name, png_bytes) for a theme name or an image path

    Theme lookup comes first. Without a QGuiApplication the theme cannot be
    queried, so any value that is not an existing file and has no path
    separator is taken as a theme name.

    Returns:
        None when the value is neither
    """
    if QGuiApplication.instance() is not None and QIcon.hasThemeIcon(value):
        return value, b""

    if os.path.isfile(value):
        icon = icon_from_path(value)
        if icon is not None:
            width, height = max(icon.available_sizes(), key=lambda s: s[0] * s[1])
            data = image_to_png(icon.render(width, height))
            if data:
                return "", data
        return None

    if QGuiApplication.instance() is None and os.sep not in value:
        return value, b""
    return None


class MenuBridge:
    """Registry of menus plus the marshaled operations on them"""

    def __init__(self, engine: Engine):
        self._engine = engine
        self._menus: Dict[int, Menu] = {}

    def _call(self, fn: Callable, *args, **kwargs):
        return self._engine.call(fn, *args, kind=TaskKind.MENU_MUTATION, **kwargs)

    def _menu(self, handle: ItemHandle) -> Menu:
        if handle is None:
            raise InvalidArgument("Menu handle is required", field="handle")
        menu = self._menus.get(handle.menu_id)
        if menu is None:
            raise StaleHandle("Menu does not exist or was destroyed",
                              context={"menu_id": handle.menu_id})
        return menu

    # ==================== Menus ====================

    def create_menu(self) -> ItemHandle:
        """Create an empty menu and return its root handle"""
        def _create() -> ItemHandle:
            menu = Menu()
            self._menus[menu.menu_id] = menu
            app_logger.log_menu_event("Created", {"menu_id": menu.menu_id})
            return menu.root

        return self._call(_create)

    def destroy_menu(self, handle: ItemHandle) -> None:
        """Destroy a menu; sessions showing it detach automatically"""
        def _destroy() -> None:
            menu = self._menu(handle)
            del self._menus[menu.menu_id]
            menu.destroy()

        self._call(_destroy)

    def lookup(self, handle: ItemHandle) -> Menu:
        """The Menu behind a handle (the object may only be used on the worker)"""
        return self._call(self._menu, handle)

    def destroy_all(self) -> None:
        def _destroy_all() -> None:
            menus = list(self._menus.values())
            self._menus.clear()
            for menu in menus:
                menu.destroy()

        self._call(_destroy_all)

    @property
    def menu_count(self) -> int:
        return self._call(len, self._menus)

    def is_valid(self, handle: ItemHandle) -> bool:
        def _is_valid() -> bool:
            menu = self._menus.get(handle.menu_id)
            return menu is not None and handle in menu

        return self._call(_is_valid)

    # ==================== Items ====================

    def add_action(self, parent: ItemHandle, text: str,
                   callback: Optional[ActionCallback] = None) -> ItemHandle:
        _require_text(text)
        return self._call(lambda: self._menu(parent).add_action(parent, text, callback))

    def add_checkable_action(self, parent: ItemHandle, text: str, checked: bool = False,
                             callback: Optional[ActionCallback] = None) -> ItemHandle:
        _require_text(text)
        return self._call(lambda: self._menu(parent).add_action(
            parent, text, callback, checkable=True, checked=checked
        ))

    def add_disabled_action(self, parent: ItemHandle, text: str,
                            callback: Optional[ActionCallback] = None) -> ItemHandle:
        _require_text(text)
        return self._call(lambda: self._menu(parent).add_action(
            parent, text, callback, enabled=False
        ))

    def add_separator(self, parent: ItemHandle) -> ItemHandle:
        return self._call(lambda: self._menu(parent).add_separator(parent))

    def add_submenu(self, parent: ItemHandle, text: str) -> ItemHandle:
        _require_text(text)
        return self._call(lambda: self._menu(parent).add_submenu(parent, text))

    def set_text(self, handle: ItemHandle, text: str) -> bool:
        _require_text(text)
        return self._call(lambda: self._menu(handle).set_text(handle, text))

    def set_enabled(self, handle: ItemHandle, enabled: bool) -> bool:
        return self._call(lambda: self._menu(handle).set_enabled(handle, bool(enabled)))

    def set_checked(self, handle: ItemHandle, checked: bool) -> CheckResult:
        return self._call(lambda: self._menu(handle).set_checked(handle, bool(checked)))

    def set_icon(self, handle: ItemHandle, icon: str) -> bool:
        """Set an item icon from a theme name or an image path

        The theme lookup and any file read happen here, on the calling
        thread; only the resolved name and PNG bytes are marshaled.

        Returns:
            False when ``icon`` is neither; the item icon is cleared then
        """
        resolved = resolve_menu_icon(icon) if icon else None

        def _set_icon() -> bool:
            menu = self._menu(handle)
            if resolved is None:
                menu.set_icon(handle)
                if icon:
                    app_logger.log_menu_event("Icon not found",
                                              {"icon": icon, "item_id": handle.item_id})
                return False
            name, data = resolved
            menu.set_icon(handle, icon_name=name, icon_data=data)
            return True

        return self._call(_set_icon)

    def remove(self, parent: ItemHandle, handle: ItemHandle) -> None:
        """Remove an item; its handle and every descendant handle go stale"""
        self._call(lambda: self._menu(parent).remove(parent, handle))

    def clear(self, parent: ItemHandle) -> int:
        return self._call(lambda: self._menu(parent).clear(parent))

    def trigger(self, handle: ItemHandle) -> bool:
        """Invoke an item locally, exactly as a bus click would"""
        return self._call(lambda: self._menu(handle).trigger(handle))
