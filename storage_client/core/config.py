"""Application configuration management."""
import json
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BACKEND_URL = "http://127.0.0.1:8080/upload/"
DEFAULT_PUSH_PATH = "ws"
DEFAULT_MAX_UPLOAD_BYTES = 1024 * 1024 * 1024
CONFIG_ENV_VAR = "STORAGE_CLIENT_CONFIG"


class AppConfig(BaseModel):
    """Settings persisted in storage_client.json."""
    model_config = {"extra": "ignore"}

    backend_url: str = Field(DEFAULT_BACKEND_URL, description="Base URL of the file-storage backend")
    push_url: Optional[str] = Field(
        default=None,
        description="Explicit websocket URL of the push channel",
    )
    push_path: str = Field(DEFAULT_PUSH_PATH, description="Push channel path relative to backend_url")
    reconnect_delay: float = Field(1.0, description="Seconds between push channel reconnect attempts")
    toast_duration: float = Field(5.0, description="Seconds a notification stays visible")
    request_timeout: float = Field(30.0, description="Backend request timeout in seconds")
    download_chunk_size: int = Field(1024 * 1024, description="Bytes per chunk when saving stored files")
    max_upload_bytes: int = Field(
        DEFAULT_MAX_UPLOAD_BYTES,
        description="Reject uploads larger than this before sending (0 disables)",
    )
    host: str = Field("127.0.0.1", description="Companion app bind address")
    port: int = Field(5080, description="Companion app bind port")
    log_level: str = Field("INFO", description="Root logging level")


class Settings(BaseSettings):
    """Resolved settings; environment variables override the JSON file."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_CLIENT_", extra="ignore")

    backend_url: str = Field(DEFAULT_BACKEND_URL, description="Base URL of the file-storage backend")
    push_url: Optional[str] = Field(default=None, description="Explicit push channel URL")
    push_path: str = Field(DEFAULT_PUSH_PATH, description="Push channel path relative to backend_url")
    reconnect_delay: float = Field(1.0, description="Seconds between push channel reconnect attempts")
    toast_duration: float = Field(5.0, description="Seconds a notification stays visible")
    request_timeout: float = Field(30.0, description="Backend request timeout in seconds")
    download_chunk_size: int = Field(1024 * 1024, description="Bytes per chunk when saving stored files")
    max_upload_bytes: int = Field(DEFAULT_MAX_UPLOAD_BYTES, description="Client-side upload size cap")
    host: str = Field("127.0.0.1", description="Companion app bind address")
    port: int = Field(5080, description="Companion app bind port")
    log_level: str = Field("INFO", description="Root logging level")

    @property
    def resolved_backend_url(self) -> str:
        """Backend URL with a trailing slash so relative endpoints join below it."""
        return self.backend_url if self.backend_url.endswith("/") else f"{self.backend_url}/"

    @property
    def resolved_push_url(self) -> str:
        if self.push_url:
            return self.push_url
        parts = urlsplit(self.resolved_backend_url)
        scheme = "wss" if parts.scheme == "https" else "ws"
        path = parts.path + self.push_path.lstrip("/")
        return urlunsplit((scheme, parts.netloc, path, "", ""))


def _get_config_file_path() -> Path:
    """Get the absolute path to storage_client.json."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    project_root = Path(__file__).parent.parent.parent
    return project_root / "storage_client.json"


def _persist_config(config: AppConfig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            delete=False,
            dir=path.parent,
            suffix=".tmp",
        ) as tmp_file:
            json.dump(config.model_dump(mode="json"), tmp_file, indent=2, ensure_ascii=False)
            tmp_name = Path(tmp_file.name)
        os.replace(tmp_name, path)
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(f"Failed to persist configuration to {path}: {exc}") from exc


def _ensure_config_file() -> Path:
    path = _get_config_file_path()
    if path.exists():
        return path

    _persist_config(AppConfig(), path)
    return path


def _load_config_from_json() -> AppConfig:
    """Load and parse storage_client.json (blocking, use at startup)."""
    config_path = _ensure_config_file()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = json.load(f)
        return AppConfig(**config_data)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {config_path}: {e}")
    except Exception as e:
        raise RuntimeError(f"Error loading configuration from {config_path}: {e}")


def get_app_config() -> AppConfig:
    """Return the settings stored in the configuration file."""

    return _load_config_from_json()


def update_app_config(**changes) -> AppConfig:
    """Update and persist selected fields of storage_client.json."""

    config = _load_config_from_json()
    unknown = set(changes) - set(AppConfig.model_fields)
    if unknown:
        raise ValueError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")
    updated = config.model_copy(update={key: value for key, value in changes.items() if value is not None})
    _persist_config(updated, _get_config_file_path())
    get_settings.cache_clear()
    return updated


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return cached Settings: file values first, environment on top."""

    file_values = _load_config_from_json().model_dump()
    env_overrides = Settings().model_dump(exclude_unset=True)
    file_values.update(env_overrides)
    return Settings(**file_values)
