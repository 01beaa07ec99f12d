"""Base classes for core components"""

from .lifecycle_component import ComponentState, LifecycleComponent

__all__ = ["ComponentState", "LifecycleComponent"]
