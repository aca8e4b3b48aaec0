"""Tests for pubflow.core.result module."""

import pytest

from pubflow.core.result import Err, Ok, Result, is_err, is_ok


class TestOk:
    """Tests for Ok type."""

    def test_accessors(self) -> None:
        """Ok reports success and yields its value."""
        result = Ok("1.2.4")
        assert result.is_ok() is True
        assert result.is_err() is False
        assert result.unwrap() == "1.2.4"
        assert result.unwrap_or("0.0.0") == "1.2.4"

    def test_map(self) -> None:
        """Ok.map() transforms the value, map_err() leaves it alone."""
        result = Ok(" main\n")
        assert result.map(str.strip) == Ok("main")
        assert result.map_err(lambda e: f"error: {e}") == result

    def test_repr(self) -> None:
        assert repr(Ok("v1.0.0")) == "Ok('v1.0.0')"

    def test_frozen(self) -> None:
        """Ok is immutable."""
        result = Ok(42)
        with pytest.raises(AttributeError):
            result.value = 0  # type: ignore[misc]

    def test_equality(self) -> None:
        assert Ok(1) == Ok(1)
        assert Ok(1) != Ok(2)
        assert Ok(1) != Err(1)


class TestErr:
    """Tests for Err type."""

    def test_accessors(self) -> None:
        """Err reports failure and falls back to the default."""
        result: Result[str, str] = Err("no upstream")
        assert result.is_ok() is False
        assert result.is_err() is True
        assert result.unwrap_or("fallback") == "fallback"

    def test_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="called unwrap on Err"):
            Err("tag exists").unwrap()

    def test_map(self) -> None:
        """Err.map() is a no-op, map_err() transforms the error."""
        result: Result[int, str] = Err("oops")
        assert result.map(lambda x: x * 2) == Err("oops")
        assert result.map_err(lambda e: f"git: {e}") == Err("git: oops")

    def test_repr(self) -> None:
        assert repr(Err("oops")) == "Err('oops')"


class TestTypeGuards:
    """Tests for is_ok() and is_err() type guards."""

    def test_guards(self) -> None:
        ok: Result[int, str] = Ok(1)
        err: Result[int, str] = Err("e")
        assert is_ok(ok) is True
        assert is_err(ok) is False
        assert is_ok(err) is False
        assert is_err(err) is True


class TestPatternMatching:
    """Results destructure in match statements."""

    def test_match(self) -> None:
        results: list[Result[int, str]] = [Ok(42), Err("oops")]
        seen: list[str] = []
        for result in results:
            match result:
                case Ok(value):
                    seen.append(f"ok {value}")
                case Err(error):
                    seen.append(f"err {error}")
        assert seen == ["ok 42", "err oops"]
