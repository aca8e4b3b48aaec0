"""Tests for release/resolver.py."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from pubflow.core.result import Err, Ok
from pubflow.release.model import INCREMENT_KEYWORDS, VersionRequest
from pubflow.release.resolver import VersionChoice, build_choices, resolve, validate_answer
from pubflow.release.semver import Version, parse_version

CURRENT_VERSIONS = ["0.0.0", "0.1.0", "1.2.3", "1.2.4-0", "2.0.0-beta.1", "10.20.30", "1.0.0-rc.1+build.9"]


def _v(text: str) -> Version:
    version = parse_version(text)
    assert version is not None
    return version


class ScriptedDecider:
    """Answers the prompt with a fixed reply and records what it was shown."""

    def __init__(self, answer: str | None) -> None:
        self.answer = answer
        self.choices: list[VersionChoice] = []
        self.validate: Callable[[str], str | None] | None = None

    def decide(self, choices: list[VersionChoice], *, validate: Callable[[str], str | None]) -> str | None:
        self.choices = choices
        self.validate = validate
        return self.answer


class TestVersionRequest:
    def test_forms(self) -> None:
        assert VersionRequest.parse(None).form == "empty"
        assert VersionRequest.parse("  ").form == "empty"
        assert VersionRequest.parse("minor") == VersionRequest(form="increment", token="minor")
        assert VersionRequest.parse("1.2.4") == VersionRequest(form="explicit", token="1.2.4")


class TestIncrement:
    @pytest.mark.parametrize("current", CURRENT_VERSIONS)
    def test_every_keyword_yields_a_greater_version(self, current: str) -> None:
        base = _v(current)
        for keyword in INCREMENT_KEYWORDS:
            result = resolve(VersionRequest.parse(keyword), base)
            assert isinstance(result, Ok), keyword
            assert result.value > base, keyword

    def test_patch(self) -> None:
        assert resolve(VersionRequest.parse("patch"), _v("1.2.3")) == Ok(_v("1.2.4"))


class TestExplicit:
    @pytest.mark.parametrize("candidate", ["1.2.3", "1.2.2", "1.2.0", "0.9.9", "1.2.3-rc.1", "1.2.3+build.2"])
    def test_not_greater_is_too_low(self, candidate: str) -> None:
        result = resolve(VersionRequest.parse(candidate), _v("1.2.3"))

        assert isinstance(result, Err)
        assert result.error.kind == "version_too_low"
        assert "must be greater than 1.2.3" in result.error.message

    @pytest.mark.parametrize("candidate", ["1.2.4", "1.3.0-0", "2.0.0", "1.2.4-beta.1+b7"])
    def test_greater_is_returned_unchanged(self, candidate: str) -> None:
        result = resolve(VersionRequest.parse(candidate), _v("1.2.3"))

        assert isinstance(result, Ok)
        assert str(result.value) == candidate

    @pytest.mark.parametrize("candidate", ["1.2", "banana", "v1.2.3.4"])
    def test_invalid(self, candidate: str) -> None:
        result = resolve(VersionRequest.parse(candidate), _v("1.2.3"))

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_version"


class TestInteractive:
    """An empty request goes through the injected decider."""

    def test_choices_cover_every_keyword(self) -> None:
        choices = build_choices(_v("1.2.3"))
        assert [c.keyword for c in choices] == list(INCREMENT_KEYWORDS)
        assert [str(c.version) for c in choices[:3]] == ["1.2.4", "1.3.0", "2.0.0"]
        assert choices[0].label == "patch -> 1.2.4"

    def test_keyword_answer(self) -> None:
        decider = ScriptedDecider("minor")
        result = resolve(VersionRequest.parse(None), _v("1.2.3"), decider)

        assert result == Ok(_v("1.3.0"))
        assert len(decider.choices) == len(INCREMENT_KEYWORDS)

    def test_free_text_answer_is_validated(self) -> None:
        decider = ScriptedDecider("1.0.0")
        result = resolve(VersionRequest.parse(None), _v("1.2.3"), decider)

        assert isinstance(result, Err)
        assert result.error.kind == "version_too_low"
        assert decider.validate is not None
        assert decider.validate("1.0.0") is not None
        assert decider.validate("1.5.0") is None

    def test_cancelled(self) -> None:
        result = resolve(VersionRequest.parse(None), _v("1.2.3"), ScriptedDecider(None))

        assert isinstance(result, Err)
        assert result.error.kind == "prompt_cancelled"

    def test_no_decider(self) -> None:
        result = resolve(VersionRequest.parse(None), _v("1.2.3"))

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_version"


def test_validate_answer() -> None:
    assert validate_answer("patch", _v("1.2.3")) is None
    assert validate_answer(" 2.0.0 ", _v("1.2.3")) is None
    message = validate_answer("nope", _v("1.2.3"))
    assert message is not None and "valid semver" in message
