"""Menu object path advertised while no menu is attached

KDE/Plasma hosts need "/NO_DBUSMENU" to tell "no menu" apart from "menu
not loaded yet"; everyone else gets the bus root.
"""

import os
from functools import lru_cache
from typing import Mapping, Optional

from ..bus.constants import NO_MENU_PATH_DEFAULT, NO_MENU_PATH_KDE

AUTO = "auto"


def is_kde_session(environ: Mapping[str, str]) -> bool:
    desktop = environ.get("XDG_CURRENT_DESKTOP", "").lower()
    session = environ.get("DESKTOP_SESSION", "").lower()
    markers = ("kde", "plasma")
    if any(m in desktop for m in markers) or any(m in session for m in markers):
        return True
    return "KDE_FULL_SESSION" in environ


def detect_no_menu_path(environ: Mapping[str, str]) -> str:
    return NO_MENU_PATH_KDE if is_kde_session(environ) else NO_MENU_PATH_DEFAULT


@lru_cache(maxsize=1)
def process_no_menu_path() -> str:
    """The detected path, sampled from the environment once per process"""
    return detect_no_menu_path(os.environ)


def no_menu_path(configured: Optional[str] = AUTO) -> str:
    """Path to advertise for "no menu"

    Args:
        configured: ``menu.no_menu_path`` setting; "auto" (or empty) detects
    """
    if configured and configured != AUTO:
        return configured
    return process_no_menu_path()
