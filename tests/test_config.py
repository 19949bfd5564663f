"""
Tests for settings resolution: env over YAML file over defaults.
"""

from routine_timer import paths
from routine_timer.config import DEFAULT_LOG_LEVEL, DEFAULT_TZ, load_settings


def _write_config(text):
    path = paths.config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadSettings:
    def test_defaults(self):
        s = load_settings()
        assert s.default_tz == DEFAULT_TZ
        assert s.log_level == DEFAULT_LOG_LEVEL
        assert s.log_json is None

    def test_file_values(self):
        _write_config("default_tz: Asia/Tokyo\nlog_level: debug\nlog_json: true\n")
        s = load_settings()
        assert s.default_tz == "Asia/Tokyo"
        assert s.log_level == "DEBUG"
        assert s.log_json is True

    def test_env_overrides_file(self, monkeypatch):
        _write_config("default_tz: Asia/Tokyo\nlog_json: true\n")
        monkeypatch.setenv("ROUTINE_TIMER_TZ", "Europe/Berlin")
        monkeypatch.setenv("ROUTINE_TIMER_LOG_JSON", "0")
        s = load_settings()
        assert s.default_tz == "Europe/Berlin"
        assert s.log_json is False

    def test_broken_yaml_falls_back(self, caplog):
        _write_config("default_tz: [unclosed\n")
        assert load_settings().default_tz == DEFAULT_TZ
        assert "Failed to load config" in caplog.text

    def test_non_mapping_ignored(self):
        _write_config("- just\n- a list\n")
        assert load_settings().default_tz == DEFAULT_TZ

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "other.yaml"
        path.write_text("default_tz: America/New_York\n", encoding="utf-8")
        assert load_settings(path).default_tz == "America/New_York"

    def test_home_override(self, isolated_home):
        assert paths.app_home() == isolated_home.resolve()
        assert paths.config_path() == isolated_home.resolve() / "config" / "routine_timer.yaml"
