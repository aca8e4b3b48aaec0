"""Tests for pubflow.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from pubflow.core.config import (
    CONFIG_FILE_NAME,
    DEFAULT_REGISTRY_TIMEOUT_SECONDS,
    ReleaseConfig,
    load_release_config,
    load_release_config_or_default,
)
from pubflow.core.result import Err, Ok


class TestReleaseConfig:
    """Test ReleaseConfig defaults and parsing."""

    def test_defaults(self) -> None:
        config = ReleaseConfig()
        assert config.tag is None
        assert config.branch is None
        assert config.allow_any_branch is False
        assert config.clean is False
        assert config.run_scripts == ()
        assert config.require_new_commits is True
        assert config.registry_timeout == DEFAULT_REGISTRY_TIMEOUT_SECONDS

    def test_frozen(self) -> None:
        config = ReleaseConfig()
        with pytest.raises(AttributeError):
            config.tag = "next"  # type: ignore[misc]

    def test_from_dict(self) -> None:
        config = ReleaseConfig.from_dict(
            {
                "tag": "next",
                "branch": "release",
                "allow_any_branch": True,
                "clean": True,
                "run_scripts": ["test", " lint ", ""],
                "require_new_commits": False,
                "registry_timeout": 5,
            }
        )
        assert config.tag == "next"
        assert config.branch == "release"
        assert config.allow_any_branch is True
        assert config.clean is True
        assert config.run_scripts == ("test", "lint")
        assert config.require_new_commits is False
        assert config.registry_timeout == 5.0

    def test_run_scripts_as_string(self) -> None:
        """A space separated string is accepted like the CLI flag."""
        config = ReleaseConfig.from_dict({"run_scripts": "test lint"})
        assert config.run_scripts == ("test", "lint")

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="registry_timeout"):
            ReleaseConfig.from_dict({"registry_timeout": 0})


class TestLoadReleaseConfig:
    """Test loading pubflow.toml from disk."""

    def test_load_valid(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text('tag = "beta"\nrun_scripts = ["test"]\n', encoding="utf-8")

        result = load_release_config(path)

        assert isinstance(result, Ok)
        assert result.value.tag == "beta"
        assert result.value.run_scripts == ("test",)

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_release_config(tmp_path / CONFIG_FILE_NAME)

        assert isinstance(result, Err)
        assert "not found" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text("tag = \n", encoding="utf-8")

        result = load_release_config(path)

        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message
        assert result.error.path == path

    def test_invalid_structure(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text("registry_timeout = -1\n", encoding="utf-8")

        result = load_release_config(path)

        assert isinstance(result, Err)
        assert "Invalid config structure" in result.error.message

    def test_or_default_without_file(self, tmp_path: Path) -> None:
        result = load_release_config_or_default(tmp_path / CONFIG_FILE_NAME)

        assert result == Ok(ReleaseConfig())

    def test_or_default_still_reports_errors(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text("[[[", encoding="utf-8")

        assert isinstance(load_release_config_or_default(path), Err)
