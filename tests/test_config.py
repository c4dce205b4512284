"""Tests for platformclient.config -- XDG paths, atomic writes, precedence."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from typing import Any

import pytest

from platformclient.config import (
    atomic_write,
    build_config,
    get_config_dir,
    get_data_dir,
    load_connector_config,
    load_user_config,
    save_user_config,
    user_config_path,
)
from platformclient.exceptions import ConfigError
from platformclient.models import DEFAULT_ACCOUNTS_URL, CacheConfig


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestDirectories:
    def test_xdg_env_vars(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "platformclient"
        assert get_data_dir() == isolated_config / "data" / "platformclient"
        assert get_data_dir().is_dir()

    def test_xdg_defaults_under_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("platformclient.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".config" / "platformclient"

    def test_non_xdg_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("platformclient.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".platformclient"
        assert get_data_dir() == tmp_path / ".platformclient" / "data"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "file.json"
        atomic_write(target, "{}")
        assert target.read_text() == "{}"

    def test_replaces_existing(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        target.write_text("old")
        atomic_write(target, "new")
        assert target.read_text() == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_mode(self, tmp_path: Path) -> None:
        target = tmp_path / "secret.json"
        atomic_write(target, "{}", mode=0o600)
        assert stat.S_IMODE(target.stat().st_mode) == 0o600


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestBuildConfig:
    def test_defaults(self) -> None:
        config = build_config()
        assert config.accounts == DEFAULT_ACCOUNTS_URL
        assert config.token_url == "/oauth2/token"
        assert config.cache_config is None

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigError, match="Invalid connector configuration"):
            build_config({"acounts": "https://x.example.com/"})

    def test_bad_type(self) -> None:
        with pytest.raises(ConfigError):
            build_config({"verify": "definitely"})

    def test_cache_options(self) -> None:
        assert build_config({"cache": True}).cache_config == CacheConfig()
        config = build_config({"cache": {"directory": "/tmp/c", "ttl_seconds": 5}})
        assert config.cache_config == CacheConfig(directory="/tmp/c", ttl_seconds=5)

    def test_api_token_hidden_from_repr(self) -> None:
        assert "hunter2" not in repr(build_config({"api_token": "hunter2"}))


# ---------------------------------------------------------------------------
# User config file
# ---------------------------------------------------------------------------


class TestUserConfig:
    def test_missing_file(self, isolated_config: Path) -> None:
        assert load_user_config() == {}

    def test_invalid_json(self, isolated_config: Path) -> None:
        path = user_config_path()
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_user_config()

    def test_not_an_object(self, isolated_config: Path) -> None:
        _write_json(user_config_path(), ["accounts"])
        with pytest.raises(ConfigError):
            load_user_config()

    def test_save_excludes_defaults_and_api_token(self, isolated_config: Path) -> None:
        save_user_config({"client_id": "my-app", "api_token": "T", "verify": True})
        assert json.loads(user_config_path().read_text()) == {"client_id": "my-app"}

    def test_save_rejects_unknown_keys(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError):
            save_user_config({"colour": "blue"})
        assert not user_config_path().exists()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestPrecedence:
    def test_defaults_only(self, isolated_config: Path) -> None:
        assert load_connector_config().accounts == DEFAULT_ACCOUNTS_URL

    def test_file_over_defaults(self, isolated_config: Path) -> None:
        _write_json(user_config_path(), {"client_id": "from-file"})
        assert load_connector_config().client_id == "from-file"

    def test_env_over_file(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(user_config_path(), {"client_id": "from-file"})
        monkeypatch.setenv("PLATFORMCLIENT_CLIENT_ID", "from-env")
        assert load_connector_config().client_id == "from-env"

    def test_overrides_over_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLATFORMCLIENT_CLIENT_ID", "from-env")
        config = load_connector_config({"client_id": "explicit"})
        assert config.client_id == "explicit"

    def test_none_overrides_ignored(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLATFORMCLIENT_CLIENT_ID", "from-env")
        assert load_connector_config({"client_id": None}).client_id == "from-env"

    def test_api_token_from_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLATFORMCLIENT_API_TOKEN", "T")
        assert load_connector_config().api_token == "T"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("true", True), ("Yes", True), ("0", False), ("off", False), ("", False)],
    )
    def test_env_booleans(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool
    ) -> None:
        monkeypatch.setenv("PLATFORMCLIENT_VERIFY", raw)
        assert load_connector_config().verify is expected

    def test_env_bad_boolean(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLATFORMCLIENT_DEBUG", "maybe")
        with pytest.raises(ConfigError, match="PLATFORMCLIENT_DEBUG"):
            load_connector_config()
