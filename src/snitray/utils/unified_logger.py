"""snitray application log

Every component logs through one process-wide UnifiedLogger:
- records carry a category, so a noisy area (menu, icon) can be muted
  without touching the level;
- the file always gets a one-line record with the context as JSON;
- the console only gets errors, unless console output is switched on
  (SNITRAY_DEV, or logging.console_output in the config);
- performance records ignore the level filter.

Components normally go through ``app_logger``, whose helpers pick the
category for them:

    from snitray.utils import app_logger

    app_logger.log_session_event("demo", "Registration sent", {"attempt": 1})
"""

import json
import os
import sys
import threading
import time
import traceback
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union


class LogLevel(Enum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def parse(cls, value: Union[str, "LogLevel"]) -> "LogLevel":
        """Level from a member or a case-insensitive name; INFO if unknown"""
        if isinstance(value, cls):
            return value
        return cls.__members__.get(str(value).upper(), cls.INFO)


class LogCategory(Enum):
    ENGINE = "engine"
    BUS = "bus"
    SESSION = "session"
    MENU = "menu"
    ICON = "icon"
    CONFIG = "config"
    ERROR = "error"
    PERFORMANCE = "performance"


_LEVEL_COLORS = {
    LogLevel.DEBUG: "\033[36m",
    LogLevel.INFO: "\033[32m",
    LogLevel.WARNING: "\033[33m",
    LogLevel.ERROR: "\033[31m",
    LogLevel.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"


def _default_log_dir() -> Path:
    explicit = os.getenv("SNITRAY_LOG_DIR")
    if explicit:
        return Path(explicit)
    state_home = os.getenv("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return Path(state_home) / "snitray" / "logs"


def _json_default(obj: Any) -> str:
    if isinstance(obj, Enum):
        return f"{type(obj).__name__}.{obj.name}"
    if isinstance(obj, (bytes, bytearray)):
        return f"<{len(obj)} bytes>"
    return getattr(obj, "__name__", None) or str(obj)


class UnifiedLogger:
    """Process-wide logger (singleton)"""

    _instance = None
    _instance_lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if getattr(self, "_initialized", False):
            return
        self._initialized = True

        dev_mode = bool(os.getenv("SNITRAY_DEV"))
        self._min_level = LogLevel.DEBUG if dev_mode else LogLevel.INFO
        self._console = dev_mode
        self._categories = set(LogCategory)
        self._config_service = None
        self._lock = threading.RLock()
        self._log_file: Optional[Path] = self._open_log_dir()

    @staticmethod
    def _open_log_dir() -> Optional[Path]:
        try:
            log_dir = _default_log_dir()
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"[snitray] file logging disabled: {e}", file=sys.stderr)
            return None
        return log_dir / "snitray.log"

    # ============ Settings ============

    def set_config_service(self, config_service) -> None:
        """Take level, console output and categories from ``logging.*`` settings"""
        self._config_service = config_service
        try:
            level = config_service.get_setting("logging.level", "INFO")
            console = config_service.get_setting("logging.console_output", False)
            names = config_service.get_setting("logging.enabled_categories", [])
            categories = [LogCategory(name) for name in names] if names else list(LogCategory)
        except (AttributeError, ValueError) as e:
            print(f"[snitray] ignoring invalid logging settings: {e}", file=sys.stderr)
            return

        with self._lock:
            self._min_level = LogLevel.parse(level)
            self._console = bool(console)
            self._categories = set(categories)

    def set_log_level(self, level: Union[str, LogLevel]) -> None:
        with self._lock:
            self._min_level = LogLevel.parse(level)

    def set_console_output(self, enabled: bool) -> None:
        with self._lock:
            self._console = enabled

    def set_enabled_categories(self, categories: Iterable[LogCategory]) -> None:
        with self._lock:
            self._categories = set(categories)

    def get_log_level(self) -> LogLevel:
        return self._min_level

    def is_debug_enabled(self) -> bool:
        return self._min_level == LogLevel.DEBUG

    @property
    def log_file(self) -> Optional[Path]:
        return self._log_file

    # ============ Output ============

    def _console_line(self, level: LogLevel, category: LogCategory, message: str,
                      context: Optional[Dict[str, Any]]) -> str:
        color = _LEVEL_COLORS.get(level, "")
        line = f"[{time.strftime('%H:%M:%S')}] {color}{level.name}{_RESET} | {category.value} | {message}"
        # only errors and timings are worth the extra console noise
        if context and category in (LogCategory.ERROR, LogCategory.PERFORMANCE):
            details = " | ".join(f"{k}: {v}" for k, v in context.items() if k != "traceback")
            if details:
                line += f"\n  {details}"
        return line

    def _file_line(self, level: LogLevel, category: LogCategory, message: str,
                   context: Optional[Dict[str, Any]], component: Optional[str]) -> str:
        fields = [
            time.strftime("%Y-%m-%d %H:%M:%S"),
            level.name.ljust(8),
            category.value.ljust(11),
            threading.current_thread().name,
        ]
        if component:
            fields.append(f"[{component}]")
        fields.append(message)
        if context:
            fields.append("| " + json.dumps(context, ensure_ascii=False,
                                            separators=(",", ":"), default=_json_default))
        return " | ".join(fields)

    def _write(self, level: LogLevel, category: LogCategory, message: str,
               context: Optional[Dict[str, Any]] = None, component: Optional[str] = None) -> None:
        if category != LogCategory.PERFORMANCE and level.value < self._min_level.value:
            return
        if category not in self._categories:
            return

        with self._lock:
            if self._console or level.value >= LogLevel.ERROR.value:
                stream = sys.stderr if level.value >= LogLevel.ERROR.value else sys.stdout
                print(self._console_line(level, category, message, context),
                      file=stream, flush=True)

            if self._log_file is None:
                return
            try:
                with open(self._log_file, "a", encoding="utf-8") as f:
                    f.write(self._file_line(level, category, message, context, component) + "\n")
            except OSError as e:
                print(f"[snitray] log write failed: {e}", file=sys.stderr)

    # ============ Public API ============

    def debug(self, message: str, category: LogCategory = LogCategory.ENGINE,
              context: Dict[str, Any] = None, component: str = None) -> None:
        self._write(LogLevel.DEBUG, category, message, context, component)

    def info(self, message: str, category: LogCategory = LogCategory.ENGINE,
             context: Dict[str, Any] = None, component: str = None) -> None:
        self._write(LogLevel.INFO, category, message, context, component)

    def warning(self, message: str, category: LogCategory = LogCategory.ERROR,
                context: Dict[str, Any] = None, component: str = None) -> None:
        self._write(LogLevel.WARNING, category, message, context, component)

    def error(self, message: str, exception: BaseException = None,
              category: LogCategory = LogCategory.ERROR,
              context: Dict[str, Any] = None, component: str = None) -> None:
        self._write(LogLevel.ERROR, category, message,
                    self._with_exception(context, exception), component)

    def critical(self, message: str, exception: BaseException = None,
                 category: LogCategory = LogCategory.ERROR,
                 context: Dict[str, Any] = None, component: str = None) -> None:
        self._write(LogLevel.CRITICAL, category, message,
                    self._with_exception(context, exception), component)

    @staticmethod
    def _with_exception(context: Optional[Dict[str, Any]],
                        exception: Optional[BaseException]) -> Dict[str, Any]:
        ctx = dict(context or {})
        if exception is not None:
            ctx["exception"] = str(exception)
            ctx["exception_type"] = type(exception).__name__
        return ctx

    def performance(self, operation: str, duration: float,
                    details: Dict[str, Any] = None) -> None:
        """Timing record; written whatever the level"""
        ctx = dict(details or {})
        ctx["duration"] = f"{duration:.4f}s"
        self._write(LogLevel.INFO, LogCategory.PERFORMANCE,
                    f"{operation} took {duration * 1000:.2f}ms", ctx, "performance")


logger = UnifiedLogger()


class TrayLoggerAdapter:
    """Category-picking helpers used by the snitray components"""

    def __init__(self, logger_instance: UnifiedLogger):
        self._logger = logger_instance

    def debug(self, message: str, category: LogCategory = LogCategory.ENGINE,
              context: Dict[str, Any] = None, component: str = None) -> None:
        self._logger.debug(message, category, context, component)

    def info(self, message: str, category: LogCategory = LogCategory.ENGINE,
             context: Dict[str, Any] = None, component: str = None) -> None:
        self._logger.info(message, category, context, component)

    def warning(self, message: str, category: LogCategory = LogCategory.ERROR,
                context: Dict[str, Any] = None, component: str = None) -> None:
        self._logger.warning(message, category, context, component)

    def log_engine_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.debug(f"Engine: {event}", LogCategory.ENGINE, details, "engine")

    def log_bus_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.info(f"Bus: {event}", LogCategory.BUS, details, "bus")

    def log_session_event(self, session_id: str, event: str,
                          details: Dict[str, Any] = None) -> None:
        self._logger.debug(f"Session: {event}", LogCategory.SESSION,
                           {"session": session_id, **(details or {})}, "session")

    def log_menu_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.debug(f"Menu: {event}", LogCategory.MENU, details, "menu")

    def log_icon_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.debug(f"Icon: {event}", LogCategory.ICON, details, "icon")

    def log_error(self, error: BaseException, context: str,
                  details: Dict[str, Any] = None) -> None:
        """Error record with traceback; TrayErrors add their structured dict"""
        ctx: Dict[str, Any] = {
            "traceback": "".join(traceback.format_exception(
                type(error), error, error.__traceback__)),
            "error_details": str(error),
        }
        ctx.update(details or {})
        to_dict = getattr(error, "to_dict", None)
        if callable(to_dict):
            ctx["error"] = to_dict()
        self._logger.error(f"Error in {context}", error, LogCategory.ERROR, ctx, context)

    def log_startup(self, details: Dict[str, Any] = None) -> None:
        self._logger.info("snitray starting up", LogCategory.ENGINE, details, "startup")

    def log_shutdown(self) -> None:
        self._logger.info("snitray shutting down", LogCategory.ENGINE, component="shutdown")

    def is_debug_enabled(self) -> bool:
        return self._logger.is_debug_enabled()


app_logger = TrayLoggerAdapter(logger)


__all__ = [
    "logger",
    "app_logger",
    "UnifiedLogger",
    "TrayLoggerAdapter",
    "LogLevel",
    "LogCategory",
]
