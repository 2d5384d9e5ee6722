"""Tests de configuración por entorno."""

import pytest

from common.config import DEFAULT_SUB_TOPICS, get_settings


@pytest.fixture(autouse=True)
def no_env_file(monkeypatch, tmp_path):
    monkeypatch.setenv("RELAY_ENV_FILE", str(tmp_path / "missing.env"))
    for name in ("MQTT_SUB_TOPICS", "HISTORY_CAPACITY", "CHART_WINDOW_SIZE", "DATABASE_URL", "FF_MQTT_INGEST_ENABLED"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self):
        s = get_settings()
        assert s.sub_topics == DEFAULT_SUB_TOPICS
        assert s.history_capacity == 10000
        assert s.chart_buffer_capacity == 1000
        assert s.chart_window_size == 8
        assert s.mqtt_enabled is True
        assert s.database_url.startswith("sqlite:///")

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("MQTT_SUB_TOPICS", "/a, /b ,")
        monkeypatch.setenv("HISTORY_CAPACITY", "50")
        monkeypatch.setenv("FF_MQTT_INGEST_ENABLED", "off")

        s = get_settings()

        assert s.sub_topics == ("/a", "/b")
        assert s.history_capacity == 50
        assert s.mqtt_enabled is False

    @pytest.mark.parametrize("value", ["abc", "0"])
    def test_invalid_numbers_fail_fast(self, monkeypatch, value):
        monkeypatch.setenv("CHART_WINDOW_SIZE", value)
        with pytest.raises(ValueError):
            get_settings()

    def test_env_file_loaded(self, monkeypatch, tmp_path):
        env_file = tmp_path / "relay.env"
        env_file.write_text("HISTORY_CAPACITY=77\n")
        monkeypatch.setenv("RELAY_ENV_FILE", str(env_file))
        # registra la variable para que monkeypatch la borre al terminar
        monkeypatch.setenv("HISTORY_CAPACITY", "1")
        monkeypatch.delenv("HISTORY_CAPACITY")

        assert get_settings().history_capacity == 77
