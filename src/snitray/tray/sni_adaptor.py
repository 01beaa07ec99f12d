"""org.kde.StatusNotifierItem object

Reads every property straight from the owning session and hands inbound
method calls back to it. Runs on the engine worker thread only.
"""

from dbus_fast.constants import PropertyAccess
from dbus_fast.service import ServiceInterface, dbus_property, method, signal

from ..bus.constants import ITEM_INTERFACE
from .properties import PropertyGroup

# properties announced in PropertiesChanged for each notification group
GROUP_PROPERTIES = {
    PropertyGroup.TITLE: ("Title",),
    PropertyGroup.STATUS: ("Status",),
    PropertyGroup.CATEGORY: ("Category",),
    PropertyGroup.ICON: ("IconName", "IconPixmap"),
    PropertyGroup.OVERLAY_ICON: ("OverlayIconName", "OverlayIconPixmap"),
    PropertyGroup.ATTENTION_ICON: ("AttentionIconName", "AttentionIconPixmap"),
    PropertyGroup.TOOLTIP: ("ToolTip",),
    PropertyGroup.MENU: ("Menu",),
}


class StatusNotifierItemAdaptor(ServiceInterface):
    """Bus face of a TraySession"""

    def __init__(self, item):
        super().__init__(ITEM_INTERFACE)
        self._item = item

    @property
    def _props(self):
        return self._item.properties

    def announce(self, group: PropertyGroup) -> None:
        """Emit the change signals for one group"""
        props = self._props
        if group == PropertyGroup.TITLE:
            self.NewTitle()
        elif group == PropertyGroup.STATUS:
            self.NewStatus(props.status.value)
        elif group == PropertyGroup.ICON:
            self.NewIcon()
        elif group == PropertyGroup.OVERLAY_ICON:
            self.NewOverlayIcon()
        elif group == PropertyGroup.ATTENTION_ICON:
            self.NewAttentionIcon()
        elif group == PropertyGroup.TOOLTIP:
            self.NewToolTip()

        self.emit_properties_changed(
            {name: getattr(self, name) for name in GROUP_PROPERTIES[group]}, []
        )

    # ==================== Methods ====================

    @method()
    def Activate(self, x: "i", y: "i"):
        self._item.activate(x, y)

    @method()
    def SecondaryActivate(self, x: "i", y: "i"):
        self._item.secondary_activate(x, y)

    @method()
    def ContextMenu(self, x: "i", y: "i"):
        self._item.context_menu(x, y)

    @method()
    def Scroll(self, delta: "i", orientation: "s"):
        self._item.scroll(delta, orientation)

    # ==================== Signals ====================

    @signal()
    def NewTitle(self):
        pass

    @signal()
    def NewIcon(self):
        pass

    @signal()
    def NewAttentionIcon(self):
        pass

    @signal()
    def NewOverlayIcon(self):
        pass

    @signal()
    def NewToolTip(self):
        pass

    @signal()
    def NewStatus(self, status) -> "s":
        return status

    # ==================== Properties ====================

    @dbus_property(access=PropertyAccess.READ)
    def Id(self) -> "s":
        return self._props.id

    @dbus_property(access=PropertyAccess.READ)
    def Category(self) -> "s":
        return self._props.category

    @dbus_property(access=PropertyAccess.READ)
    def Status(self) -> "s":
        return self._props.status.value

    @dbus_property(access=PropertyAccess.READ)
    def Title(self) -> "s":
        return self._props.title

    @dbus_property(access=PropertyAccess.READ)
    def WindowId(self) -> "i":
        return 0

    @dbus_property(access=PropertyAccess.READ)
    def ItemIsMenu(self) -> "b":
        return False

    @dbus_property(access=PropertyAccess.READ)
    def IconThemePath(self) -> "s":
        return ""

    @dbus_property(access=PropertyAccess.READ)
    def Menu(self) -> "o":
        return self._props.menu_path

    @dbus_property(access=PropertyAccess.READ)
    def IconName(self) -> "s":
        return self._props.icon.name

    @dbus_property(access=PropertyAccess.READ)
    def IconPixmap(self) -> "a(iiay)":
        return self._props.icon.wire_pixmaps()

    @dbus_property(access=PropertyAccess.READ)
    def OverlayIconName(self) -> "s":
        return self._props.overlay_icon.name

    @dbus_property(access=PropertyAccess.READ)
    def OverlayIconPixmap(self) -> "a(iiay)":
        return self._props.overlay_icon.wire_pixmaps()

    @dbus_property(access=PropertyAccess.READ)
    def AttentionIconName(self) -> "s":
        return self._props.attention_icon.name

    @dbus_property(access=PropertyAccess.READ)
    def AttentionIconPixmap(self) -> "a(iiay)":
        return self._props.attention_icon.wire_pixmaps()

    @dbus_property(access=PropertyAccess.READ)
    def ToolTip(self) -> "(sa(iiay)ss)":
        return self._props.tooltip.to_wire()
