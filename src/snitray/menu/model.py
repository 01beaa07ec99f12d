"""In-process menu tree

A Menu is a tree of MenuNodes addressed through opaque ItemHandles. The
tree is touched only on the engine worker thread (MenuBridge marshals every
call); observers such as MenuExport mirror it onto the bus.
"""

import itertools
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

from ..utils import InvalidArgument, StaleHandle, app_logger

ROOT_ID = 0

_menu_ids = itertools.count(1)

ActionCallback = Callable[[], None]


class MenuItemKind(Enum):
    """Menu node variants"""

    ACTION = "action"
    CHECKABLE = "checkable"
    SEPARATOR = "separator"
    SUBMENU = "submenu"


class CheckResult(Enum):
    """Outcome of set_checked"""

    APPLIED = "applied"
    NOT_CHECKABLE = "not_checkable"


@dataclass(frozen=True)
class ItemHandle:
    """Opaque reference to one node of one menu"""

    menu_id: int
    item_id: int

    @property
    def is_root(self) -> bool:
        return self.item_id == ROOT_ID


@dataclass
class MenuNode:
    item_id: int
    kind: MenuItemKind
    parent_id: Optional[int]
    text: str = ""
    enabled: bool = True
    checked: bool = False
    icon_name: str = ""
    icon_data: bytes = b""
    callback: Optional[ActionCallback] = field(default=None, repr=False)
    children: List[int] = field(default_factory=list)

    @property
    def is_container(self) -> bool:
        return self.kind == MenuItemKind.SUBMENU


class MenuObserver:
    """Receives structural and property changes of a Menu"""

    def on_layout_changed(self, parent_id: int) -> None:
        pass

    def on_item_changed(self, item_id: int, properties: List[str]) -> None:
        pass


class Menu:
    """A context menu tree"""

    def __init__(self):
        self.menu_id = next(_menu_ids)
        self._nodes: Dict[int, MenuNode] = {
            ROOT_ID: MenuNode(ROOT_ID, MenuItemKind.SUBMENU, None)
        }
        self._ids = itertools.count(ROOT_ID + 1)
        self._observers: List[MenuObserver] = []
        self._destroy_listeners: List[weakref.ref] = []
        self._destroyed = False
        self._visible = False
        self._popup_position: Optional[tuple] = None

    def __repr__(self) -> str:
        return f"<Menu {self.menu_id} items={len(self._nodes) - 1}>"

    # ==================== Handles ====================

    @property
    def root(self) -> ItemHandle:
        return ItemHandle(self.menu_id, ROOT_ID)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def handle(self, item_id: int) -> ItemHandle:
        return ItemHandle(self.menu_id, item_id)

    def resolve(self, handle: ItemHandle) -> MenuNode:
        """Node behind ``handle``

        Raises:
            StaleHandle: the handle was removed, belongs to another menu, or
                the menu is destroyed
        """
        if self._destroyed:
            raise StaleHandle("Menu has been destroyed",
                              context={"menu_id": self.menu_id})
        if handle.menu_id != self.menu_id or handle.item_id not in self._nodes:
            raise StaleHandle(
                "Menu item handle is no longer valid",
                context={"menu_id": handle.menu_id, "item_id": handle.item_id},
            )
        return self._nodes[handle.item_id]

    def _container(self, parent: ItemHandle) -> MenuNode:
        node = self.resolve(parent)
        if not node.is_container:
            raise InvalidArgument(
                "Parent handle is not a menu or submenu",
                field="parent",
                context={"item_id": parent.item_id, "kind": node.kind.value},
            )
        return node

    def node(self, item_id: int) -> Optional[MenuNode]:
        return self._nodes.get(item_id)

    def children(self, item_id: int) -> List[MenuNode]:
        node = self._nodes.get(item_id)
        if node is None:
            return []
        return [self._nodes[c] for c in node.children]

    def __contains__(self, handle: ItemHandle) -> bool:
        return (not self._destroyed and handle.menu_id == self.menu_id
                and handle.item_id in self._nodes)

    # ==================== Structure ====================

    def _append(self, parent: ItemHandle, node_factory) -> ItemHandle:
        container = self._container(parent)
        node = node_factory(next(self._ids), container.item_id)
        self._nodes[node.item_id] = node
        container.children.append(node.item_id)
        self._notify_layout(container.item_id)
        return self.handle(node.item_id)

    def add_action(self, parent: ItemHandle, text: str,
                   callback: Optional[ActionCallback] = None, *,
                   enabled: bool = True, checkable: bool = False,
                   checked: bool = False) -> ItemHandle:
        kind = MenuItemKind.CHECKABLE if checkable else MenuItemKind.ACTION
        return self._append(parent, lambda item_id, parent_id: MenuNode(
            item_id, kind, parent_id, text=text, enabled=enabled,
            checked=checkable and checked, callback=callback,
        ))

    def add_separator(self, parent: ItemHandle) -> ItemHandle:
        return self._append(parent, lambda item_id, parent_id: MenuNode(
            item_id, MenuItemKind.SEPARATOR, parent_id,
        ))

    def add_submenu(self, parent: ItemHandle, text: str) -> ItemHandle:
        return self._append(parent, lambda item_id, parent_id: MenuNode(
            item_id, MenuItemKind.SUBMENU, parent_id, text=text,
        ))

    def remove(self, parent: ItemHandle, handle: ItemHandle) -> None:
        """Remove ``handle`` (and its subtree) from ``parent``

        Raises:
            StaleHandle: either handle is invalid
            InvalidArgument: ``handle`` is the root or not a child of ``parent``
        """
        container = self._container(parent)
        node = self.resolve(handle)
        if handle.is_root:
            raise InvalidArgument("The menu root cannot be removed", field="handle")
        if node.parent_id != container.item_id:
            raise InvalidArgument(
                "Item is not a child of the given parent",
                field="parent",
                context={"item_id": node.item_id, "parent_id": container.item_id},
            )

        container.children.remove(node.item_id)
        self._drop_subtree(node.item_id)
        self._notify_layout(container.item_id)

    def clear(self, parent: ItemHandle) -> int:
        """Remove every child of ``parent``; returns how many were removed"""
        container = self._container(parent)
        removed = list(container.children)
        container.children.clear()
        for item_id in removed:
            self._drop_subtree(item_id)
        if removed:
            self._notify_layout(container.item_id)
        return len(removed)

    def _drop_subtree(self, item_id: int) -> None:
        node = self._nodes.pop(item_id, None)
        if node is None:
            return
        for child_id in node.children:
            self._drop_subtree(child_id)

    def walk(self, item_id: int = ROOT_ID) -> Iterator[MenuNode]:
        """Depth-first iteration starting at (and including) ``item_id``"""
        node = self._nodes.get(item_id)
        if node is None:
            return
        yield node
        for child_id in node.children:
            yield from self.walk(child_id)

    # ==================== Properties ====================

    def set_text(self, handle: ItemHandle, text: str) -> bool:
        node = self.resolve(handle)
        if node.text == text:
            return False
        node.text = text
        self._notify_item(node.item_id, ["label"])
        return True

    def set_enabled(self, handle: ItemHandle, enabled: bool) -> bool:
        node = self.resolve(handle)
        if node.enabled == enabled:
            return False
        node.enabled = enabled
        self._notify_item(node.item_id, ["enabled"])
        return True

    def set_checked(self, handle: ItemHandle, checked: bool) -> CheckResult:
        node = self.resolve(handle)
        if node.kind != MenuItemKind.CHECKABLE:
            return CheckResult.NOT_CHECKABLE
        if node.checked != checked:
            node.checked = checked
            self._notify_item(node.item_id, ["toggle-state"])
        return CheckResult.APPLIED

    def set_icon(self, handle: ItemHandle, icon_name: str = "", icon_data: bytes = b"") -> bool:
        """Set the item icon by theme name or PNG data (mutually exclusive)"""
        node = self.resolve(handle)
        if icon_name:
            icon_data = b""
        if node.icon_name == icon_name and node.icon_data == icon_data:
            return False
        node.icon_name = icon_name
        node.icon_data = icon_data
        self._notify_item(node.item_id, ["icon-name", "icon-data"])
        return True

    # ==================== Invocation ====================

    def trigger(self, handle: ItemHandle) -> bool:
        """Invoke an item as if it was clicked

        Checkable items toggle before their callback runs. Callback failures
        are logged, not raised.

        Returns:
            False when the item is disabled or cannot be invoked
        """
        node = self.resolve(handle)
        if not node.enabled or node.kind in (MenuItemKind.SEPARATOR, MenuItemKind.SUBMENU):
            return False

        if node.kind == MenuItemKind.CHECKABLE:
            self.set_checked(handle, not node.checked)

        if node.callback is not None:
            try:
                node.callback()
            except Exception as e:
                app_logger.log_error(e, "menu_item_callback",
                                     {"menu_id": self.menu_id, "item_id": node.item_id})
        return True

    # ==================== Visibility ====================

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def popup_position(self) -> Optional[tuple]:
        return self._popup_position

    def popup(self, x: int, y: int) -> None:
        self._visible = True
        self._popup_position = (x, y)
        app_logger.log_menu_event("Popup", {"menu_id": self.menu_id, "x": x, "y": y})

    def hide(self) -> None:
        self._visible = False
        app_logger.log_menu_event("Hide", {"menu_id": self.menu_id})

    # ==================== Observers ====================

    def add_observer(self, observer: MenuObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: MenuObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def add_destroy_listener(self, listener: Callable[["Menu"], None]) -> None:
        """Subscribe to destruction without keeping the subscriber alive

        Bound methods are held through WeakMethod, so a listener's owner can
        be collected while still subscribed.
        """
        if hasattr(listener, "__self__"):
            ref = weakref.WeakMethod(listener)
        else:
            ref = weakref.ref(listener)
        self._destroy_listeners.append(ref)

    def remove_destroy_listener(self, listener: Callable[["Menu"], None]) -> None:
        self._destroy_listeners = [
            ref for ref in self._destroy_listeners
            if ref() is not None and ref() != listener
        ]

    def destroy(self) -> None:
        """Invalidate every handle and tell destroy listeners"""
        if self._destroyed:
            return
        self._destroyed = True
        self._visible = False

        listeners = [ref() for ref in self._destroy_listeners]
        self._destroy_listeners.clear()
        for listener in listeners:
            if listener is None:
                continue
            try:
                listener(self)
            except Exception as e:
                app_logger.log_error(e, "menu_destroy_listener", {"menu_id": self.menu_id})

        self._observers.clear()
        self._nodes = {}
        app_logger.log_menu_event("Destroyed", {"menu_id": self.menu_id})

    def _notify_layout(self, parent_id: int) -> None:
        for observer in list(self._observers):
            observer.on_layout_changed(parent_id)

    def _notify_item(self, item_id: int, properties: List[str]) -> None:
        for observer in list(self._observers):
            observer.on_item_changed(item_id, properties)
