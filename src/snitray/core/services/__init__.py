"""Core services"""

from .config import ConfigKeys, ConfigReader, load_config

__all__ = ["ConfigKeys", "ConfigReader", "load_config"]
