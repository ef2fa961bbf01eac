"""
Configuration Tests
===================

YAML loading, defaults and environment overrides.
"""

import pytest
from pydantic import ValidationError

from crowd_dashboard.config import Settings, load_config


ENV_VARS = [
    "DASHBOARD_API_URL",
    "DASHBOARD_API_KEY",
    "DASHBOARD_API_TIMEOUT",
    "DASHBOARD_PROJECT_ID",
    "DASHBOARD_AREA_ID",
    "DASHBOARD_LOOKBACK_HOURS",
    "DASHBOARD_REFRESH_INTERVAL",
    "DASHBOARD_LOG_LEVEL",
    "DASHBOARD_PORT",
    "PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "backend:\n"
        "  base_url: http://backend.internal/api/v1\n"
        "  timeout_seconds: 5\n"
        "dashboard:\n"
        "  project_id: stadium\n"
        "  lookback_hours: 6\n"
        "live:\n"
        "  refresh_interval_seconds: 15\n"
    )
    return str(path)


class TestLoadConfig:
    """Settings sources and precedence."""

    def test_defaults_without_file(self, tmp_path):
        settings = load_config(str(tmp_path / "missing.yaml"))
        assert settings == Settings()
        assert settings.density.ceiling == 6.0
        assert settings.density.cell_size == 1.0
        assert settings.live.refresh_interval_seconds == 30.0
        assert settings.live.countdown_step_seconds == 1.0
        assert settings.dashboard.lookback_hours == 3
        assert settings.dashboard.half_moving_avg_size == 2

    def test_yaml_values(self, config_file):
        settings = load_config(config_file)
        assert settings.backend.base_url == "http://backend.internal/api/v1"
        assert settings.backend.timeout_seconds == 5.0
        assert settings.dashboard.project_id == "stadium"
        assert settings.dashboard.lookback_hours == 6
        assert settings.live.refresh_interval_seconds == 15.0
        assert settings.server.port == 8080

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("DASHBOARD_API_URL", "http://other/api/v1")
        monkeypatch.setenv("DASHBOARD_API_KEY", "k")
        monkeypatch.setenv("DASHBOARD_PROJECT_ID", "arena")
        monkeypatch.setenv("DASHBOARD_AREA_ID", "gate-3")
        monkeypatch.setenv("DASHBOARD_LOOKBACK_HOURS", "12")
        monkeypatch.setenv("DASHBOARD_REFRESH_INTERVAL", "60")
        monkeypatch.setenv("DASHBOARD_LOG_LEVEL", "DEBUG")

        settings = load_config(config_file)

        assert settings.backend.base_url == "http://other/api/v1"
        assert settings.backend.api_key == "k"
        assert settings.dashboard.project_id == "arena"
        assert settings.dashboard.default_area_id == "gate-3"
        assert settings.dashboard.lookback_hours == 12
        assert settings.live.refresh_interval_seconds == 60.0
        assert settings.logging.level == "DEBUG"

    def test_port_precedence(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DASHBOARD_PORT", "9000")
        assert load_config(str(tmp_path / "missing.yaml")).server.port == 9000

        monkeypatch.setenv("PORT", "9100")
        assert load_config(str(tmp_path / "missing.yaml")).server.port == 9100

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("density:\n  ceiling: 8.0\n")
        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(str(path)) == Settings()
