"""Configuration: defaults, keys and the file-backed reader"""

from .app_constants import AppInfo, Paths, default_config_path
from .config_defaults import get_default_config
from .config_keys import ConfigKeys
from .config_reader import ConfigReader, load_config

__all__ = [
    "AppInfo",
    "Paths",
    "default_config_path",
    "get_default_config",
    "ConfigKeys",
    "ConfigReader",
    "load_config",
]
