"""Application identity and path constants."""

import os
from pathlib import Path


class AppInfo:
    """Application metadata constants."""

    NAME = "snitray"
    VERSION = "0.3.0"
    DESCRIPTION = "StatusNotifierItem tray icons over D-Bus, driven from any thread"


class Paths:
    """Path and filename constants."""

    CONFIG_DIR_NAME = "snitray"
    CONFIG_FILE_NAME = "config.json"
    CONFIG_ENV_VAR = "SNITRAY_CONFIG"


def default_config_path() -> Path:
    """Resolve the config file location ($SNITRAY_CONFIG, then XDG)"""
    explicit = os.getenv(Paths.CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit)
    config_home = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / Paths.CONFIG_DIR_NAME / Paths.CONFIG_FILE_NAME
