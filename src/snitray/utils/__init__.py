"""Shared utilities: logging and the exception hierarchy"""

from .exceptions import (  # noqa: F401
    ErrorSeverity,
    ErrorCategory,
    TrayError,
    EngineError,
    EngineNotStarted,
    EngineShuttingDown,
    StaleHandle,
    InvalidArgument,
    BusRegistrationFailed,
    RenderFailed,
)
from .unified_logger import (  # noqa: F401
    logger,
    app_logger,
    LogLevel,
    LogCategory,
)

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
    "logger",
    "app_logger",
    "LogLevel",
    "LogCategory",
]
