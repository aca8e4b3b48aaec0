"""Tests for pubflow.output.console module."""

from __future__ import annotations

import pytest

from pubflow.output.console import MockConsole, RichConsole, Style


class TestMockConsole:
    """MockConsole records what the release flow prints."""

    def test_prefixes(self) -> None:
        console = MockConsole()
        console.success("published")
        console.error("boom")
        console.warning("careful")
        console.info("note")

        assert console.messages == ["OK published", "error: boom", "warning: careful", "info: note"]

    def test_styles(self) -> None:
        console = MockConsole()
        console.header("Publish")
        console.print("plain")
        console.newline()

        assert [o.style for o in console.outputs] == [Style.HEADER, Style.DEFAULT, Style.DEFAULT]

    def test_helpers(self) -> None:
        console = MockConsole()
        assert console.has_error() is False
        assert console.has_warning() is False

        console.warning("Upstream branch not found; not pushing.")
        console.error("Git tag `v1.0.0` already exists.")

        assert console.has_error() is True
        assert console.has_warning() is True
        assert len(console.find("Upstream")) == 1
        assert "already exists" in console.text


class TestRichConsole:
    def test_writes_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.success("published demo 1.2.4")
        console.warning("not pushing")

        out = capsys.readouterr().out
        assert "OK published demo 1.2.4" in out
        assert "warning: not pushing" in out

    def test_stderr_mode(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(stderr=True)
        console.error("boom")

        captured = capsys.readouterr()
        assert "error: boom" in captured.err
        assert captured.out == ""
