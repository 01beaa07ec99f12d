"""Bus mirror of a Menu (com.canonical.dbusmenu at /MenuBar)"""

import weakref
from typing import Any, Callable, Dict, List, Optional

from dbus_fast import Variant

from ..bus.connection import BusConnection
from ..bus.constants import MENU_PATH
from ..bus.dbusmenu_adaptor import DBusMenuAdaptor, wrap_layout
from ..utils import app_logger
from .model import Menu, MenuItemKind, MenuNode, MenuObserver

# property name -> dbus signature
ITEM_PROPERTIES = {
    "type": "s",
    "label": "s",
    "enabled": "b",
    "visible": "b",
    "toggle-type": "s",
    "toggle-state": "i",
    "children-display": "s",
    "icon-name": "s",
    "icon-data": "ay",
}

Dispatcher = Callable[..., Any]


def node_properties(node: MenuNode) -> Dict[str, Any]:
    """Plain values of every non-default dbusmenu property of ``node``"""
    props: Dict[str, Any] = {}
    if node.kind == MenuItemKind.SEPARATOR:
        props["type"] = "separator"
        return props

    if node.text:
        props["label"] = node.text
    if not node.enabled:
        props["enabled"] = False
    if node.kind == MenuItemKind.CHECKABLE:
        props["toggle-type"] = "checkmark"
        props["toggle-state"] = 1 if node.checked else 0
    if node.kind == MenuItemKind.SUBMENU:
        props["children-display"] = "submenu"
    if node.icon_name:
        props["icon-name"] = node.icon_name
    elif node.icon_data:
        props["icon-data"] = node.icon_data
    return props


def _variants(props: Dict[str, Any], names: Optional[List[str]] = None) -> Dict[str, Variant]:
    return {
        name: Variant(ITEM_PROPERTIES[name], value)
        for name, value in props.items()
        if not names or name in names
    }


class MenuExport(MenuObserver):
    """Keeps one Menu published on a bus connection

    Holds the menu weakly; the session owning this export learns about the
    menu's destruction through the menu's destroy listeners.
    """

    def __init__(self, menu: Menu, connection: BusConnection, path: str = MENU_PATH,
                 dispatch: Optional[Dispatcher] = None):
        """
        Args:
            menu: menu to mirror
            connection: bus connection to export on
            path: object path
            dispatch: runs inbound item activations (defaults to a direct call)
        """
        self._menu_ref = weakref.ref(menu)
        self._connection = connection
        self._path = path
        self._dispatch = dispatch or (lambda fn, *args: fn(*args))
        self._revision = 1
        self._closed = False

        self._adaptor = DBusMenuAdaptor(self)
        connection.export(path, self._adaptor)
        menu.add_observer(self)
        app_logger.log_menu_event("Exported", {"menu_id": menu.menu_id, "path": path})

    @property
    def menu(self) -> Optional[Menu]:
        menu = self._menu_ref()
        if menu is None or menu.destroyed:
            return None
        return menu

    @property
    def path(self) -> str:
        return self._path

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def adaptor(self) -> DBusMenuAdaptor:
        return self._adaptor

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        menu = self._menu_ref()
        if menu is not None:
            menu.remove_observer(self)
        self._connection.unexport(self._path, self._adaptor)
        app_logger.log_menu_event("Unexported", {"path": self._path})

    # ==================== Queries (bus side) ====================

    def has_item(self, item_id: int) -> bool:
        menu = self.menu
        return menu is not None and menu.node(item_id) is not None

    def layout(self, parent_id: int, depth: int, names: Optional[List[str]] = None) -> List[Any]:
        """``(ia{sv}av)`` value for ``parent_id``; depth -1 means unlimited"""
        menu = self.menu
        node = menu.node(parent_id) if menu is not None else None
        if node is None:
            return [parent_id, {}, []]

        children: List[Variant] = []
        if depth != 0:
            for child in menu.children(parent_id):
                child_layout = self.layout(child.item_id, depth - 1 if depth > 0 else -1, names)
                children.append(wrap_layout(*child_layout))
        return [parent_id, _variants(node_properties(node), names), children]

    def group_properties(self, ids: List[int], names: Optional[List[str]] = None) -> List[List[Any]]:
        menu = self.menu
        if menu is None:
            return []
        if not ids:
            nodes = [n for n in menu.walk() if n.item_id != 0]
        else:
            nodes = [menu.node(i) for i in ids if menu.node(i) is not None]
        return [[n.item_id, _variants(node_properties(n), names)] for n in nodes]

    def item_property(self, item_id: int, name: str) -> Optional[Variant]:
        menu = self.menu
        node = menu.node(item_id) if menu is not None else None
        if node is None:
            return None
        value = node_properties(node).get(name)
        if value is None:
            return None
        return Variant(ITEM_PROPERTIES[name], value)

    def handle_event(self, item_id: int, event_id: str, timestamp: int = 0) -> bool:
        """Route an inbound dbusmenu event; only "clicked" does anything"""
        menu = self.menu
        if menu is None or event_id != "clicked":
            return False
        node = menu.node(item_id)
        if node is None:
            return False
        app_logger.log_menu_event("Clicked", {"menu_id": menu.menu_id, "item_id": item_id})
        self._dispatch(menu.trigger, menu.handle(item_id))
        return True

    # ==================== MenuObserver ====================

    def on_layout_changed(self, parent_id: int) -> None:
        self._revision += 1
        self._adaptor.LayoutUpdated(self._revision, parent_id)

    def on_item_changed(self, item_id: int, properties: List[str]) -> None:
        menu = self.menu
        node = menu.node(item_id) if menu is not None else None
        if node is None:
            return
        current = node_properties(node)
        updated = {name: current[name] for name in properties if name in current}
        removed = [name for name in properties if name not in current]
        self._adaptor.ItemsPropertiesUpdated(
            [[item_id, _variants(updated)]] if updated else [],
            [[item_id, removed]] if removed else [],
        )
