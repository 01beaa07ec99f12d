"""Tray sessions: one published StatusNotifierItem each"""

from .menu_path import detect_no_menu_path, is_kde_session, no_menu_path
from .properties import (
    IconSpec,
    Orientation,
    PropertyGroup,
    ToolTip,
    TrayProperties,
    TrayStatus,
)
from .session import SessionState, TraySession
from .sni_adaptor import StatusNotifierItemAdaptor

__all__ = [
    "detect_no_menu_path",
    "is_kde_session",
    "no_menu_path",
    "IconSpec",
    "Orientation",
    "PropertyGroup",
    "ToolTip",
    "TrayProperties",
    "TrayStatus",
    "SessionState",
    "TraySession",
    "StatusNotifierItemAdaptor",
]
