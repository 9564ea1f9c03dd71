from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from hotpatch.core.exception import ConfigurationError


def _default_document_root() -> str:
    return str(Path("~/.hotpatch").expanduser())


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Defaults are static. Use load_settings(env=...) to read from an env snapshot.
    # App-private root that holds bundles/<version>/<platform>.bundle
    document_root: str = _default_document_root()
    platform: str = "android"

    log_level: str = "INFO"
    # - log_format: "text" (default) or "json". When json, hotpatch logs emit a single JSON
    #   object per line, suitable for log aggregation.
    log_format: str = "text"

    # HTTP
    http_timeout: float = 30.0
    verify_ssl: bool = True

    # Collaborator drivers (see hotpatch.core.builtins.connectors)
    store_driver: str = "sqlite"
    # Defaults to <document_root>/hotpatch.sqlite when empty
    store_path: str | None = None
    transport_driver: str = "httpx"
    fs_driver: str = "local"
    archive_driver: str = "zipfile"

    def resolved_store_path(self) -> str:
        if self.store_path:
            return str(Path(self.store_path).expanduser())
        return str(Path(self.document_root).expanduser() / "hotpatch.sqlite")

    @classmethod
    def from_env(cls, env: dict[str, str], overrides: dict | None = None) -> "Settings":
        """Build Settings from an explicit env snapshot (does not read os.environ)."""
        def g(key: str, default: str | None = None) -> str | None:
            return env.get(key, default)  # type: ignore[return-value]

        data = {
            "document_root": g("HOTPATCH_DOCUMENT_ROOT") or _default_document_root(),
            "platform": g("HOTPATCH_PLATFORM", "android"),
            "log_level": g("HOTPATCH_LOG_LEVEL", "INFO"),
            "log_format": g("HOTPATCH_LOG_FORMAT", "text"),
            "http_timeout": float(g("HOTPATCH_HTTP_TIMEOUT", "30") or 30),
            "verify_ssl": (g("HOTPATCH_VERIFY_SSL", "true") or "true").lower() == "true",
            "store_driver": g("HOTPATCH_STORE_DRIVER", "sqlite"),
            "store_path": g("HOTPATCH_STORE_PATH") or None,
            "transport_driver": g("HOTPATCH_TRANSPORT_DRIVER", "httpx"),
            "fs_driver": g("HOTPATCH_FS_DRIVER", "local"),
            "archive_driver": g("HOTPATCH_ARCHIVE_DRIVER", "zipfile"),
        }
        if overrides:
            data.update(overrides)
        return cls(**data)


def _read_settings_file(path: str) -> dict:
    p = Path(path).expanduser()
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Unable to read settings file: {p}") from e
    if not isinstance(data, dict):
        raise ConfigurationError("HOTPATCH_SETTINGS_FILE must contain a YAML mapping")
    return data


def load_settings(overrides: dict | None = None, *, env: dict[str, str] | None = None) -> Settings:
    """Load settings from (1) env snapshot, (2) optional YAML settings file, (3) explicit overrides.

    If env is not provided, we build a snapshot from os.environ.
    """
    env2 = {k: str(v) for k, v in os.environ.items()} if env is None else env
    try:
        s = Settings.from_env(env2)
        settings_file = env2.get("HOTPATCH_SETTINGS_FILE")
        if settings_file:
            s = Settings.model_validate({**s.model_dump(), **_read_settings_file(settings_file)})
        if overrides:
            s = Settings.model_validate({**s.model_dump(), **overrides})
    except (ValidationError, ValueError) as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(f"Invalid hotpatch settings: {e}") from e
    return s
