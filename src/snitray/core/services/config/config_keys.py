"""Configuration key constants - typed access to dotted config paths

Usage:
    config.get_setting(ConfigKeys.ENGINE_SHUTDOWN_GRACE_MS)
"""


class ConfigKeys:
    """Central definition of every configuration path"""

    # ==================== Engine ====================
    ENGINE_START_TIMEOUT_S = "engine.start_timeout_s"
    """Seconds to wait for the worker loop to come up (float)"""

    ENGINE_POLL_INTERVAL_S = "engine.poll_interval_s"
    """Liveness poll interval for blocked callers (float)"""

    ENGINE_JOIN_TIMEOUT_S = "engine.join_timeout_s"
    """Seconds stop() waits for the worker thread to exit (float)"""

    ENGINE_SHUTDOWN_GRACE_MS = "engine.shutdown_grace_ms"
    """Delay between the last session going away and engine teardown (int)"""

    # ==================== Session ====================
    SESSION_DEFAULT_TITLE = "session.default_title"
    SESSION_DEFAULT_STATUS = "session.default_status"
    """"Passive" | "Active" | "NeedsAttention" """

    SESSION_DEFAULT_CATEGORY = "session.default_category"

    # ==================== Menu ====================
    MENU_NO_MENU_PATH = "menu.no_menu_path"
    """"auto" detects KDE/Plasma, anything else is used verbatim"""

    # ==================== Icon ====================
    ICON_FALLBACK_SIZES = "icon.fallback_sizes"
    """Square sizes rendered when an icon advertises none (List[int])"""

    ICON_LAST_RESORT_SIZE = "icon.last_resort_size"

    # ==================== Notifications ====================
    NOTIFICATIONS_DEFAULT_TIMEOUT_S = "notifications.default_timeout_s"

    # ==================== Logging ====================
    LOGGING_LEVEL = "logging.level"
    LOGGING_CONSOLE_OUTPUT = "logging.console_output"
    LOGGING_ENABLED_CATEGORIES = "logging.enabled_categories"
