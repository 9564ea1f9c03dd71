from __future__ import annotations

from pathlib import Path

import pytest

from hotpatch.core.exception import ConfigurationError
from hotpatch.core.runtime.settings import Settings, load_settings


def test_defaults_without_env():
    s = load_settings(env={})
    assert s.platform == "android"
    assert s.store_driver == "sqlite"
    assert s.log_format == "text"
    assert s.resolved_store_path() == str(Path(s.document_root) / "hotpatch.sqlite")


def test_from_env_snapshot(temp_dir):
    s = load_settings(
        env={
            "HOTPATCH_DOCUMENT_ROOT": str(temp_dir),
            "HOTPATCH_PLATFORM": "ios",
            "HOTPATCH_LOG_FORMAT": "json",
            "HOTPATCH_HTTP_TIMEOUT": "2.5",
            "HOTPATCH_VERIFY_SSL": "false",
            "HOTPATCH_STORE_DRIVER": "memory",
            "HOTPATCH_STORE_PATH": str(temp_dir / "custom.sqlite"),
        }
    )
    assert s.document_root == str(temp_dir)
    assert s.platform == "ios"
    assert s.log_format == "json"
    assert s.http_timeout == 2.5
    assert s.verify_ssl is False
    assert s.store_driver == "memory"
    assert s.resolved_store_path() == str(temp_dir / "custom.sqlite")


def test_settings_file_is_layered_over_env(temp_dir):
    f = temp_dir / "hotpatch.yaml"
    f.write_text("platform: ios\nhttp_timeout: 7\n", encoding="utf-8")
    s = load_settings(env={"HOTPATCH_PLATFORM": "android", "HOTPATCH_SETTINGS_FILE": str(f)})
    assert s.platform == "ios"
    assert s.http_timeout == 7.0


def test_overrides_win(temp_dir):
    f = temp_dir / "hotpatch.yaml"
    f.write_text("platform: ios\n", encoding="utf-8")
    s = load_settings({"platform": "web"}, env={"HOTPATCH_SETTINGS_FILE": str(f)})
    assert s.platform == "web"


def test_unknown_key_in_settings_file(temp_dir):
    f = temp_dir / "hotpatch.yaml"
    f.write_text("plattform: ios\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid hotpatch settings"):
        load_settings(env={"HOTPATCH_SETTINGS_FILE": str(f)})


def test_settings_file_must_be_mapping(temp_dir):
    f = temp_dir / "hotpatch.yaml"
    f.write_text("- ios\n- android\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="YAML mapping"):
        load_settings(env={"HOTPATCH_SETTINGS_FILE": str(f)})


def test_missing_settings_file(temp_dir):
    with pytest.raises(ConfigurationError, match="Unable to read settings file"):
        load_settings(env={"HOTPATCH_SETTINGS_FILE": str(temp_dir / "nope.yaml")})


def test_bad_numeric_env_value():
    with pytest.raises(ConfigurationError):
        load_settings(env={"HOTPATCH_HTTP_TIMEOUT": "soon"})


def test_settings_reject_unknown_fields():
    with pytest.raises(ValueError):
        Settings(document_root="/tmp", colour="blue")
