"""snitray errors

Every error raised by the library derives from TrayError and carries a
category, a severity and a context dict, so ``app_logger.log_error`` can
write it out as structured data. Subclasses set their defaults as class
attributes; any of them can still be overridden per raise.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    ENGINE = "engine"
    BUS = "bus"
    MENU = "menu"
    ICON = "icon"
    VALIDATION = "validation"
    LIFECYCLE = "lifecycle"


class TrayError(Exception):
    """Base error: message plus classification and debugging context"""

    default_message = "snitray error"
    default_category = ErrorCategory.ENGINE
    default_severity = ErrorSeverity.MEDIUM
    default_suggestions: Tuple[str, ...] = ()

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        category: Optional[ErrorCategory] = None,
        severity: Optional[ErrorSeverity] = None,
        context: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[List[str]] = None,
        original_exception: Optional[BaseException] = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)

        self.category = category or self.default_category
        self.severity = severity or self.default_severity
        self.context = dict(context or {})
        self.context.setdefault("component", type(self).__name__)
        if recovery_suggestions is None:
            recovery_suggestions = list(self.default_suggestions)
        self.recovery_suggestions = recovery_suggestions
        self.original_exception = original_exception
        self.timestamp = time.time()
        self.error_code = error_code or f"{type(self).__name__.upper()}_{int(self.timestamp)}"

    def to_dict(self) -> Dict[str, Any]:
        original = self.original_exception
        return {
            "error_code": self.error_code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "context": self.context,
            "recovery_suggestions": self.recovery_suggestions,
            "timestamp": self.timestamp,
            "exception_type": type(self).__name__,
            "original_exception": str(original) if original is not None else None,
        }

    def is_recoverable(self) -> bool:
        """True when there is something to try and the error is not critical"""
        return bool(self.recovery_suggestions) and self.severity != ErrorSeverity.CRITICAL


# ============ Engine ============


class EngineError(TrayError):
    """Call-marshaling engine failure"""

    default_severity = ErrorSeverity.HIGH


class EngineNotStarted(EngineError):
    default_message = "Engine has not been started"
    default_suggestions = ("Call Engine.ensure_started() first",)


class EngineShuttingDown(EngineError):
    """The engine stopped (or crashed) before the task could run"""

    default_message = "Engine is shutting down"


# ============ Menus ============


class StaleHandle(TrayError):
    """A menu or item handle no longer refers to a live node"""

    default_category = ErrorCategory.MENU
    default_severity = ErrorSeverity.LOW


# ============ Validation ============


class InvalidArgument(TrayError):
    default_category = ErrorCategory.VALIDATION
    default_severity = ErrorSeverity.LOW

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if field:
            self.context["field"] = field


# ============ Bus ============


class BusRegistrationFailed(TrayError):
    """The session could not connect to or publish on the session bus"""

    default_category = ErrorCategory.BUS
    default_severity = ErrorSeverity.HIGH
    default_suggestions = (
        "Check that a D-Bus session bus is running",
        "Verify DBUS_SESSION_BUS_ADDRESS is set",
    )


# ============ Icons ============


class RenderFailed(TrayError):
    """An icon could not be rendered at a given resolution"""

    default_category = ErrorCategory.ICON
    default_severity = ErrorSeverity.LOW

    def __init__(self, message: str, size: Optional[Tuple[int, int]] = None, **kwargs):
        super().__init__(message, **kwargs)
        if size:
            self.context["size"] = "{}x{}".format(*size)


__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "TrayError",
    "EngineError",
    "EngineNotStarted",
    "EngineShuttingDown",
    "StaleHandle",
    "InvalidArgument",
    "BusRegistrationFailed",
    "RenderFailed",
]
