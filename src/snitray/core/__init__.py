"""Core: the call-marshaling engine, lifecycle base and configuration"""

from .base import ComponentState, LifecycleComponent
from .engine import Engine
from .services import ConfigKeys, ConfigReader, load_config
from .tasks import DeliveryMode, EngineTask, TaskKind, TaskStatus, make_task

__all__ = [
    "ComponentState",
    "LifecycleComponent",
    "Engine",
    "ConfigKeys",
    "ConfigReader",
    "load_config",
    "DeliveryMode",
    "EngineTask",
    "TaskKind",
    "TaskStatus",
    "make_task",
]
