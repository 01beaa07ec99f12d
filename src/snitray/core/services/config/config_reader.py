"""JSON config file reader with dotted-key access"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional, TypeVar

from ....utils import app_logger
from ....utils.unified_logger import LogCategory
from .app_constants import default_config_path
from .config_defaults import get_default_config

T = TypeVar("T")

_MISSING = object()


def _overlay(base: Dict[str, Any], update: Dict[str, Any]) -> None:
    """Write ``update`` into ``base`` in place; nested sections merge key by key"""
    for key, value in update.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _overlay(current, value)
        else:
            base[key] = copy.deepcopy(value)


class ConfigReader:
    """Defaults overlaid with the user's config file

    Missing keys in the file keep their defaults, unknown keys are kept as-is.
    set_setting() only changes the in-memory view; nothing is written back.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else default_config_path()
        self._config: Dict[str, Any] = get_default_config()

    def load_config(self) -> bool:
        """(Re)read the file

        Returns:
            False if the file exists but could not be parsed; the defaults
            are in effect afterwards
        """
        self._config = get_default_config()
        if not self.config_path.exists():
            app_logger.debug("No config file, using defaults", LogCategory.CONFIG,
                             {"config_path": str(self.config_path)})
            return True

        try:
            loaded = json.loads(self.config_path.read_text(encoding="utf-8"))
            if not isinstance(loaded, dict):
                raise ValueError(f"top level must be an object, got {type(loaded).__name__}")
        except (OSError, ValueError) as e:
            app_logger.log_error(e, "config_reader_load", {"config_path": str(self.config_path)})
            return False

        _overlay(self._config, loaded)
        app_logger.info("Configuration loaded", LogCategory.CONFIG, {
            "config_path": str(self.config_path),
            "sections": sorted(loaded),
        })
        return True

    def get_setting(self, key: str, default: Optional[T] = None) -> T:
        """Value at a dotted path such as ``"engine.shutdown_grace_ms"``"""
        node: Any = self._config
        for part in key.split("."):
            node = node.get(part, _MISSING) if isinstance(node, dict) else _MISSING
            if node is _MISSING:
                return default
        return node

    def set_setting(self, key: str, value: Any) -> None:
        *sections, leaf = key.split(".")
        node = self._config
        for part in sections:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value

    def get_all_settings(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)


def load_config(config_path: Optional[Path] = None) -> ConfigReader:
    reader = ConfigReader(config_path)
    reader.load_config()
    return reader
