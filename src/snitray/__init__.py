"""snitray - StatusNotifierItem tray icons over D-Bus, driven from any thread

All bus state lives on one engine worker thread; every public call is
marshaled onto it.
"""

__version__ = "0.3.0"
__description__ = "snitray"

from .core.engine import Engine
from .core.tray_manager import TrayManager
from .icons import FileIcon, ImageIcon, QtIcon
from .menu import CheckResult, ItemHandle
from .tray import Orientation, TraySession, TrayStatus
from .utils import app_logger

__all__ = [
    "Engine",
    "TrayManager",
    "FileIcon",
    "ImageIcon",
    "QtIcon",
    "CheckResult",
    "ItemHandle",
    "Orientation",
    "TraySession",
    "TrayStatus",
    "app_logger",
]
