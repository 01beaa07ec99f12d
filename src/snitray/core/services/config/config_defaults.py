"""Default configuration values"""

from typing import Dict, Any


def get_default_config() -> Dict[str, Any]:
    """Return a fresh copy of the default configuration

    Returns:
        Default configuration dictionary
    """
    return {
        "engine": {
            "start_timeout_s": 5.0,
            "poll_interval_s": 0.05,
            "join_timeout_s": 5.0,
            "shutdown_grace_ms": 100,
        },
        "session": {
            "default_title": "",
            "default_status": "Active",
            "default_category": "ApplicationStatus",
        },
        "menu": {
            "no_menu_path": "auto",
        },
        "icon": {
            "fallback_sizes": [16, 22, 24, 32, 48],
            "last_resort_size": 32,
        },
        "notifications": {
            "default_timeout_s": 5,
        },
        "logging": {
            "level": "INFO",
            "console_output": False,
            "enabled_categories": [],
        },
    }
