"""Application log tests: file records, level and category filtering"""

import uuid

import pytest

from snitray.utils import LogCategory, LogLevel, StaleHandle, app_logger, logger


@pytest.fixture
def restore_logger():
    level = logger.get_log_level()
    yield logger
    logger.set_log_level(level)
    logger.set_enabled_categories(list(LogCategory))


def _log_text():
    if logger.log_file is None or not logger.log_file.exists():
        return ""
    return logger.log_file.read_text(encoding="utf-8")


def test_records_go_to_the_file_with_context(restore_logger):
    marker = uuid.uuid4().hex
    logger.set_log_level("INFO")

    app_logger.log_bus_event(f"published {marker}", {"service": "org.example"})

    text = _log_text()
    assert marker in text
    assert '"service":"org.example"' in text


def test_level_filter(restore_logger):
    marker = uuid.uuid4().hex
    logger.set_log_level(LogLevel.WARNING)

    app_logger.info(f"quiet {marker}", LogCategory.ENGINE)

    assert marker not in _log_text()


def test_category_filter(restore_logger):
    marker = uuid.uuid4().hex
    logger.set_log_level("DEBUG")
    logger.set_enabled_categories([LogCategory.ENGINE])

    app_logger.log_menu_event(f"muted {marker}")
    app_logger.log_engine_event(f"kept {marker}")

    text = _log_text()
    assert f"muted {marker}" not in text
    assert f"kept {marker}" in text


def test_tray_errors_are_logged_as_dicts(restore_logger):
    marker = uuid.uuid4().hex

    app_logger.log_error(StaleHandle(f"stale {marker}", context={"item_id": 3}), "test_case")

    text = _log_text()
    assert f"stale {marker}" in text
    assert '"item_id":3' in text


def test_config_drives_logger_settings(restore_logger, config):
    config.set_setting("logging.level", "ERROR")

    logger.set_config_service(config)

    assert logger.get_log_level() == LogLevel.ERROR
    assert logger.is_debug_enabled() is False
