"""Session-bus boundary: connections, well-known names, dbusmenu object, notifications"""

from .connection import BusConnection, SessionBusConnection, session_bus_factory
from .dbusmenu_adaptor import DBusMenuAdaptor
from .notifications import build_notify_body, send_notification

__all__ = [
    "BusConnection",
    "SessionBusConnection",
    "session_bus_factory",
    "DBusMenuAdaptor",
    "build_notify_body",
    "send_notification",
]
