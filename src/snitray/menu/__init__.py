"""Context menus: the in-process tree, its dbusmenu mirror and the marshaled API"""

from .bridge import MenuBridge, resolve_menu_icon
from .export import MenuExport, node_properties
from .model import (
    ROOT_ID,
    CheckResult,
    ItemHandle,
    Menu,
    MenuItemKind,
    MenuNode,
    MenuObserver,
)

__all__ = [
    "MenuBridge",
    "resolve_menu_icon",
    "MenuExport",
    "node_properties",
    "ROOT_ID",
    "CheckResult",
    "ItemHandle",
    "Menu",
    "MenuItemKind",
    "MenuNode",
    "MenuObserver",
]
