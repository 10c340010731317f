"""Tests for configuration loading."""

import json

import pytest

from storage_client.core import config


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    path = tmp_path / "storage_client.json"
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(path))
    config.get_settings.cache_clear()
    yield path
    config.get_settings.cache_clear()


def test_missing_file_is_created_with_defaults(config_path):
    settings = config.get_settings()

    assert config_path.exists()
    assert json.loads(config_path.read_text())["reconnect_delay"] == 1.0
    assert settings.backend_url == config.DEFAULT_BACKEND_URL
    assert settings.toast_duration == 5.0


def test_environment_overrides_file(config_path, monkeypatch):
    config_path.write_text(json.dumps({"backend_url": "http://files.local/upload", "port": 9000}))
    monkeypatch.setenv("STORAGE_CLIENT_PORT", "9100")

    settings = config.get_settings()

    assert settings.backend_url == "http://files.local/upload"
    assert settings.port == 9100


def test_push_url_follows_backend_scheme(config_path):
    plain = config.Settings(backend_url="http://files.local/upload")
    secure = config.Settings(backend_url="https://files.local/upload/", push_path="/events")
    explicit = config.Settings(push_url="ws://elsewhere/ws")

    assert plain.resolved_backend_url == "http://files.local/upload/"
    assert plain.resolved_push_url == "ws://files.local/upload/ws"
    assert secure.resolved_push_url == "wss://files.local/upload/events"
    assert explicit.resolved_push_url == "ws://elsewhere/ws"


def test_update_app_config_persists(config_path):
    config.get_settings()

    updated = config.update_app_config(toast_duration=2.5)

    assert updated.toast_duration == 2.5
    assert json.loads(config_path.read_text())["toast_duration"] == 2.5
    assert config.get_settings().toast_duration == 2.5
    with pytest.raises(ValueError):
        config.update_app_config(colour="blue")


def test_invalid_json_is_reported(config_path):
    config_path.write_text("{not json")

    with pytest.raises(ValueError, match="Invalid JSON"):
        config.get_app_config()
