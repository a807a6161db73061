"""Tests for configuration loading."""

import os
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

from gitbridge.config import (
    Settings,
    _deep_merge,
    _drop_none,
    _expand_env_vars,
    get_settings,
    load_settings,
    reset_settings,
)
from gitbridge.config.settings import AuthConfig, GitConfig, LogConfig
from gitbridge.errors import InvalidConfigError


class TestExpandEnvVars:
    """Tests for environment variable expansion."""

    def test_expand_simple_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test expanding a simple environment variable."""
        monkeypatch.setenv("GB_TEST_VAR", "/srv/git")
        assert _expand_env_vars("${GB_TEST_VAR}/bin/git") == "/srv/git/bin/git"

    def test_expand_missing_var(self) -> None:
        """Test expanding a missing environment variable returns None."""
        assert _expand_env_vars("${GB_NONEXISTENT_VAR}") is None

    def test_expand_in_nested_dict(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GB_SOCKETS", "/run/gitbridge")
        data = {"auth": {"socket_dir": "${GB_SOCKETS}"}, "git": {"command": "git"}}
        result = _expand_env_vars(data)
        assert result == {"auth": {"socket_dir": "/run/gitbridge"}, "git": {"command": "git"}}


class TestDeepMerge:
    """Tests for deep dictionary merging."""

    def test_nested_merge(self) -> None:
        base = {"git": {"command": "git", "timeout_seconds": 30}}
        override = {"git": {"timeout_seconds": 60}}
        assert _deep_merge(base, override) == {"git": {"command": "git", "timeout_seconds": 60}}

    def test_original_not_modified(self) -> None:
        base = {"a": 1}
        _deep_merge(base, {"a": 2})
        assert base == {"a": 1}

    def test_drop_none(self) -> None:
        assert _drop_none({"git": {"command": None, "timeout_seconds": 5}, "log": None}) == {
            "git": {"timeout_seconds": 5}
        }


class TestSettingsModels:
    """Tests for settings validation and path resolution."""

    def test_defaults(self, clean_env: None) -> None:
        settings = Settings()
        assert settings.git.command == "git"
        assert settings.git.timeout_seconds is None
        assert settings.log.level == "INFO"

    def test_empty_command_rejected(self) -> None:
        with pytest.raises(ValidationError):
            GitConfig(command="  ")

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            GitConfig(timeout_seconds=0)

    def test_log_level_normalized(self) -> None:
        assert LogConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LogConfig(level="chatty")

    def test_auth_fallbacks(self) -> None:
        """Unset relay paths fall back to the interpreter and shipped script."""
        config = AuthConfig()
        assert config.resolved_python_path == sys.executable
        assert config.resolved_relay_path.name == "relay.py"
        assert config.resolved_relay_path.exists()
        assert config.resolved_socket_dir is None
        assert config.resolved_askpass_path is None

    def test_auth_paths_expand_user(self) -> None:
        config = AuthConfig(socket_dir="~/sockets", askpass_path="~/bin/askpass")
        assert config.resolved_socket_dir == Path.home() / "sockets"
        assert config.resolved_askpass_path == Path.home() / "bin" / "askpass"


class TestLoadSettings:
    """Tests for layered settings loading."""

    def test_user_file_overrides_defaults(self, temp_dir: Path, clean_env: None) -> None:
        config_file = temp_dir / "config.yaml"
        config_file.write_text("git:\n  timeout_seconds: 45\nlog:\n  level: debug\n")

        settings = load_settings(config_path=config_file, force_reload=True)

        assert settings.git.command == "git"
        assert settings.git.timeout_seconds == 45
        assert settings.log.level == "DEBUG"

    def test_env_overrides_file(
        self, temp_dir: Path, clean_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_file = temp_dir / "config.yaml"
        config_file.write_text("git:\n  command: /usr/bin/git\n  timeout_seconds: 45\n")
        monkeypatch.setenv("GITBRIDGE_GIT__COMMAND", "/opt/git/bin/git")

        settings = load_settings(config_path=config_file, force_reload=True)

        assert settings.git.command == "/opt/git/bin/git"
        assert settings.git.timeout_seconds == 45

    def test_missing_file_uses_defaults(self, temp_dir: Path, clean_env: None) -> None:
        settings = load_settings(config_path=temp_dir / "absent.yaml", force_reload=True)
        assert settings.git.command == "git"

    def test_unknown_sections_ignored(self, temp_dir: Path, clean_env: None) -> None:
        config_file = temp_dir / "config.yaml"
        config_file.write_text("hooks:\n  pre_commit: lint\n")
        assert load_settings(config_path=config_file, force_reload=True).git.command == "git"

    def test_singleton(self, temp_dir: Path, clean_env: None) -> None:
        first = load_settings(config_path=temp_dir / "absent.yaml", force_reload=True)
        assert get_settings() is first
        assert load_settings() is first

        reset_settings()
        os.environ["GITBRIDGE_LOG__LEVEL"] = "ERROR"
        assert load_settings(config_path=temp_dir / "absent.yaml").log.level == "ERROR"

    def test_invalid_value_reported(self, temp_dir: Path, clean_env: None) -> None:
        config_file = temp_dir / "config.yaml"
        config_file.write_text("git:\n  timeout_seconds: -1\n")

        with pytest.raises(InvalidConfigError) as exc_info:
            load_settings(config_path=config_file, force_reload=True)

        assert exc_info.value.details["field"] == "git.timeout_seconds"
