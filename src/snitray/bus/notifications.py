"""Desktop notification requests (org.freedesktop.Notifications.Notify)"""

from typing import Any, List

from .connection import BusConnection
from .constants import NOTIFY_INTERFACE, NOTIFY_PATH, NOTIFY_SERVICE, NOTIFY_SIGNATURE


def build_notify_body(app_name: str, title: str, body: str, icon: str,
                      timeout_s: float) -> List[Any]:
    """Argument list for Notify

    replaces_id is always 0 so every message is a new notification; no
    actions and no hints are sent.
    """
    return [app_name, 0, icon, title, body, [], {}, int(timeout_s * 1000)]


def send_notification(connection: BusConnection, app_name: str, title: str, body: str,
                      icon: str = "", timeout_s: float = 5) -> None:
    """Fire a Notify call; the reply (the notification id) is not awaited"""
    connection.call_async(
        NOTIFY_SERVICE,
        NOTIFY_PATH,
        NOTIFY_INTERFACE,
        "Notify",
        NOTIFY_SIGNATURE,
        build_notify_body(app_name, title, body, icon, timeout_s),
    )
