"""Configuration reader tests"""

import json

from snitray.core.engine import Engine
from snitray.core.services.config import (
    ConfigKeys,
    ConfigReader,
    get_default_config,
    load_config,
)


class TestConfigReader:
    def test_defaults_without_file(self, tmp_path):
        reader = load_config(tmp_path / "missing.json")

        assert reader.get_setting(ConfigKeys.ENGINE_SHUTDOWN_GRACE_MS) == 100
        assert reader.get_setting(ConfigKeys.MENU_NO_MENU_PATH) == "auto"
        assert reader.get_setting(ConfigKeys.ICON_FALLBACK_SIZES) == [16, 22, 24, 32, 48]

    def test_file_values_merge_over_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"engine": {"shutdown_grace_ms": 250}}), encoding="utf-8")

        reader = load_config(path)

        assert reader.get_setting(ConfigKeys.ENGINE_SHUTDOWN_GRACE_MS) == 250
        # siblings keep their defaults
        assert reader.get_setting(ConfigKeys.ENGINE_START_TIMEOUT_S) == 5.0

    def test_unreadable_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        reader = ConfigReader(path)

        assert reader.load_config() is False
        assert reader.get_all_settings() == get_default_config()

    def test_missing_key_returns_default(self, tmp_path):
        reader = load_config(tmp_path / "missing.json")

        assert reader.get_setting("engine.nope", "fallback") == "fallback"
        assert reader.get_setting("nothing.at.all") is None

    def test_set_setting_creates_intermediate_sections(self, tmp_path):
        reader = load_config(tmp_path / "missing.json")

        reader.set_setting("custom.nested.value", 7)

        assert reader.get_setting("custom.nested.value") == 7

    def test_env_var_selects_config_file(self, tmp_path, monkeypatch):
        path = tmp_path / "from-env.json"
        path.write_text(json.dumps({"menu": {"no_menu_path": "/custom"}}), encoding="utf-8")
        monkeypatch.setenv("SNITRAY_CONFIG", str(path))

        reader = load_config()

        assert reader.config_path == path
        assert reader.get_setting(ConfigKeys.MENU_NO_MENU_PATH) == "/custom"

    def test_engine_reads_its_timeouts(self, tmp_path):
        reader = load_config(tmp_path / "missing.json")
        reader.set_setting(ConfigKeys.ENGINE_POLL_INTERVAL_S, 0.01)

        engine = Engine(reader)

        assert engine.start() is True
        try:
            assert engine.call(lambda: "configured") == "configured"
        finally:
            engine.stop()
