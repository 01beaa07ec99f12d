"""com.canonical.dbusmenu object

Thin dbus-fast ServiceInterface; every call is answered by the MenuExport
that owns it. Signatures follow the dbusmenu protocol, version 3.
"""

from typing import Any, List

from dbus_fast import Variant
from dbus_fast.constants import ErrorType, PropertyAccess
from dbus_fast.errors import DBusError
from dbus_fast.service import ServiceInterface, dbus_property, method, signal

from .constants import MENU_INTERFACE, MENU_PROTOCOL_VERSION


class DBusMenuAdaptor(ServiceInterface):
    """Exposes a MenuExport on the bus"""

    def __init__(self, export):
        super().__init__(MENU_INTERFACE)
        self._export = export

    def _require_item(self, item_id: int) -> None:
        if not self._export.has_item(item_id):
            raise DBusError(ErrorType.INVALID_ARGS, f"Unknown menu item id {item_id}")

    # ==================== Methods ====================

    @method()
    def GetLayout(self, parent_id: "i", recursion_depth: "i",
                  property_names: "as") -> "u(ia{sv}av)":
        self._require_item(parent_id)
        return [self._export.revision,
                self._export.layout(parent_id, recursion_depth, property_names)]

    @method()
    def GetGroupProperties(self, ids: "ai", property_names: "as") -> "a(ia{sv})":
        return self._export.group_properties(ids, property_names)

    @method()
    def GetProperty(self, item_id: "i", name: "s") -> "v":
        self._require_item(item_id)
        value = self._export.item_property(item_id, name)
        if value is None:
            raise DBusError(ErrorType.INVALID_ARGS, f"Item {item_id} has no property {name}")
        return value

    @method()
    def Event(self, item_id: "i", event_id: "s", data: "v", timestamp: "u"):
        self._require_item(item_id)
        self._export.handle_event(item_id, event_id, timestamp)

    @method()
    def EventGroup(self, events: "a(isvu)") -> "ai":
        errors: List[int] = []
        for item_id, event_id, _data, timestamp in events:
            if self._export.has_item(item_id):
                self._export.handle_event(item_id, event_id, timestamp)
            else:
                errors.append(item_id)
        return errors

    @method()
    def AboutToShow(self, item_id: "i") -> "b":
        self._require_item(item_id)
        return False

    @method()
    def AboutToShowGroup(self, ids: "ai") -> "aiai":
        errors = [i for i in ids if not self._export.has_item(i)]
        return [[], errors]

    # ==================== Signals ====================

    @signal()
    def LayoutUpdated(self, revision, parent) -> "ui":
        return [revision, parent]

    @signal()
    def ItemsPropertiesUpdated(self, updated, removed) -> "a(ia{sv})a(ias)":
        return [updated, removed]

    @signal()
    def ItemActivationRequested(self, item_id, timestamp) -> "iu":
        return [item_id, timestamp]

    # ==================== Properties ====================

    @dbus_property(access=PropertyAccess.READ)
    def Version(self) -> "u":
        return MENU_PROTOCOL_VERSION

    @dbus_property(access=PropertyAccess.READ)
    def TextDirection(self) -> "s":
        return "ltr"

    @dbus_property(access=PropertyAccess.READ)
    def Status(self) -> "s":
        return "normal"

    @dbus_property(access=PropertyAccess.READ)
    def IconThemePath(self) -> "as":
        return []


def wrap_layout(item_id: int, properties: dict, children: List[Any]) -> Variant:
    """One ``(ia{sv}av)`` layout node as a Variant"""
    return Variant("(ia{sv}av)", [item_id, properties, children])
