"""Well-known D-Bus names, paths and interfaces"""

# StatusNotifierItem
ITEM_PATH = "/StatusNotifierItem"
ITEM_INTERFACE = "org.kde.StatusNotifierItem"
ITEM_SERVICE_PREFIX = "org.freedesktop.StatusNotifierItem"

# StatusNotifierWatcher
WATCHER_SERVICE = "org.kde.StatusNotifierWatcher"
WATCHER_PATH = "/StatusNotifierWatcher"
WATCHER_INTERFACE = "org.kde.StatusNotifierWatcher"
WATCHER_REGISTER_METHOD = "RegisterStatusNotifierItem"

# dbusmenu
MENU_PATH = "/MenuBar"
MENU_INTERFACE = "com.canonical.dbusmenu"
MENU_PROTOCOL_VERSION = 3

# Menu object path when no menu is attached
NO_MENU_PATH_KDE = "/NO_DBUSMENU"
NO_MENU_PATH_DEFAULT = "/"

# Desktop notifications
NOTIFY_SERVICE = "org.freedesktop.Notifications"
NOTIFY_PATH = "/org/freedesktop/Notifications"
NOTIFY_INTERFACE = "org.freedesktop.Notifications"
NOTIFY_SIGNATURE = "susssasa{sv}i"

# Message bus daemon
DBUS_SERVICE = "org.freedesktop.DBus"
DBUS_PATH = "/org/freedesktop/DBus"
DBUS_INTERFACE = "org.freedesktop.DBus"
