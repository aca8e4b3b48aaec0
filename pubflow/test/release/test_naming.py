"""Tests for release/naming.py."""

from __future__ import annotations

import pytest

from pubflow.release.naming import MAX_NAME_LENGTH, validate_package_name


class TestValidNames:
    @pytest.mark.parametrize("name", ["demo-pkg", "a", "some.pkg_name", "@scope/pkg", "@my-org/my.pkg"])
    def test_valid(self, name: str) -> None:
        result = validate_package_name(name)
        assert result.valid_for_new_packages, (result.errors, result.warnings)


class TestErrors:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("", "length must be greater than zero"),
            (".hidden", "cannot start with a period"),
            ("_private", "cannot start with an underscore"),
            (" padded ", "leading or trailing spaces"),
            ("node_modules", "blacklisted"),
            ("favicon.ico", "blacklisted"),
            ("pkg name", "URL-friendly"),
            ("@sc ope/pkg", "URL-friendly"),
        ],
    )
    def test_error(self, name: str, expected: str) -> None:
        result = validate_package_name(name)
        assert any(expected in e for e in result.errors), result.errors
        assert result.valid_for_new_packages is False


class TestWarnings:
    """Warnings still block new packages."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("http", "core module"),
            ("MyPkg", "capital letters"),
            ("pkg!", "special characters"),
            ("a" * (MAX_NAME_LENGTH + 1), "more than 214"),
        ],
    )
    def test_warning(self, name: str, expected: str) -> None:
        result = validate_package_name(name)
        assert result.errors == ()
        assert any(expected in w for w in result.warnings), result.warnings
        assert result.valid_for_new_packages is False

    def test_reports_every_violation(self) -> None:
        result = validate_package_name(".Bad")
        assert len(result.errors) + len(result.warnings) >= 2
