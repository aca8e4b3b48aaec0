"""Semantic versions, increments and npm-style engine ranges.

Only what a release needs: parse and order versions (SemVer 2.0 precedence),
apply the npm increment keywords, and test a tool version against an
``engines`` range such as ``">=7.0.0"`` or ``"^8.1 || >=9"``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from pubflow.release.model import IncrementKeyword

PrereleaseId = int | str

_NUM = r"0|[1-9]\d*"
_PRE_ID = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
_VERSION_RE = re.compile(
    rf"^[v=]*({_NUM})\.({_NUM})\.({_NUM})"
    rf"(?:-({_PRE_ID}(?:\.{_PRE_ID})*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
_PARTIAL_RE = re.compile(
    r"^[v=]*(\d+|[xX*])?(?:\.(\d+|[xX*])(?:\.(\d+|[xX*])"
    r"(?:-?([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?(?:\+[0-9A-Za-z-.]+)?)?)?$"
)
_COMPARATOR_RE = re.compile(r"^(<=|>=|<|>|=|\^|~>?)?(.*)$")
_HYPHEN_RE = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")


def _parse_pre(text: str | None) -> tuple[PrereleaseId, ...]:
    if not text:
        return ()
    return tuple(int(p) if p.isdigit() else p for p in text.split("."))


@dataclass(frozen=True, slots=True)
class Version:
    """An immutable semantic version.

    Ordering follows SemVer precedence: build metadata is ignored and a
    pre-release sorts below its release. Equality is structural.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[PrereleaseId, ...] = field(default_factory=tuple)
    build: tuple[str, ...] = field(default_factory=tuple)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(str(p) for p in self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def core(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def _key(self) -> tuple[int, int, int, tuple[object, ...]]:
        if not self.prerelease:
            pre: tuple[object, ...] = (1,)
        else:
            ids = tuple((0, p, "") if isinstance(p, int) else (1, 0, p) for p in self.prerelease)
            pre = (0, ids)
        return (self.major, self.minor, self.patch, pre)

    def __lt__(self, other: Version) -> bool:
        return self._key() < other._key()

    def __le__(self, other: Version) -> bool:
        return self._key() <= other._key()

    def __gt__(self, other: Version) -> bool:
        return self._key() > other._key()

    def __ge__(self, other: Version) -> bool:
        return self._key() >= other._key()

    def same_precedence(self, other: Version) -> bool:
        return self._key() == other._key()


def parse_version(text: str) -> Version | None:
    """Parse a full semantic version, tolerating a leading ``v`` or ``=``."""
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    build = tuple(m.group(5).split(".")) if m.group(5) else ()
    return Version(
        int(m.group(1)),
        int(m.group(2)),
        int(m.group(3)),
        _parse_pre(m.group(4)),
        build,
    )


def _bump_pre(v: Version, identifier: str | None) -> Version:
    pre = list(v.prerelease)
    if not pre:
        pre = [identifier, 0] if identifier else [0]
    else:
        i = len(pre) - 1
        while i >= 0:
            item = pre[i]
            if isinstance(item, int):
                pre[i] = item + 1
                break
            i -= 1
        if i < 0:
            pre.append(0)
        if identifier:
            if pre[0] != identifier or not isinstance(pre[1] if len(pre) > 1 else None, int):
                pre = [identifier, 0]
    return Version(v.major, v.minor, v.patch, tuple(pre))


def inc(version: Version, keyword: IncrementKeyword, identifier: str | None = None) -> Version:
    """Apply an npm increment keyword.

    ``patch``/``minor``/``major`` clear pre-release metadata (promoting
    ``1.3.0-1`` to ``1.3.0`` for ``minor``); the ``pre*`` keywords start or
    advance a numeric pre-release counter. Build metadata is always dropped.
    """
    v = Version(version.major, version.minor, version.patch, version.prerelease)
    match keyword:
        case "major":
            if v.minor != 0 or v.patch != 0 or not v.prerelease:
                return Version(v.major + 1, 0, 0)
            return Version(v.major, 0, 0)
        case "minor":
            if v.patch != 0 or not v.prerelease:
                return Version(v.major, v.minor + 1, 0)
            return Version(v.major, v.minor, 0)
        case "patch":
            if not v.prerelease:
                return Version(v.major, v.minor, v.patch + 1)
            return Version(v.major, v.minor, v.patch)
        case "premajor":
            return _bump_pre(Version(v.major + 1, 0, 0), identifier)
        case "preminor":
            return _bump_pre(Version(v.major, v.minor + 1, 0), identifier)
        case "prepatch":
            return _bump_pre(Version(v.major, v.minor, v.patch + 1), identifier)
        case "prerelease":
            if not v.prerelease:
                v = Version(v.major, v.minor, v.patch + 1)
            return _bump_pre(v, identifier)
        case _:
            raise AssertionError(f"unexpected increment keyword: {keyword}")


def pretty_diff(current: Version, target: Version) -> str:
    """Render ``target`` with the first changed component highlighted."""
    new_parts = str(target).split(".")
    old_parts = str(current).split(".")
    out: list[str] = []
    changed = False
    for i, part in enumerate(new_parts):
        old = old_parts[i] if i < len(old_parts) else None
        if part != old and not changed:
            out.append(f"[cyan]{part}[/cyan]")
            changed = True
        elif "-" in part[1:]:
            out.append(f"[cyan]{part}[/cyan]")
        else:
            out.append(f"[dim]{part}[/dim]")
    return "[dim].[/dim]".join(out)


# -----------------------------------------------------------------------------
# Ranges
# -----------------------------------------------------------------------------

Comparator = tuple[str, Version]


def _is_x(part: str | None) -> bool:
    return part is None or part in {"x", "X", "*"}


def _partial(text: str) -> tuple[int | None, int | None, int | None, tuple[PrereleaseId, ...]]:
    m = _PARTIAL_RE.match(text)
    if m is None:
        raise ValueError(f"invalid range component: {text!r}")
    major, minor, patch, pre = m.groups()
    if _is_x(major):
        return (None, None, None, ())
    if _is_x(minor):
        return (int(major), None, None, ())
    if _is_x(patch):
        return (int(major), int(minor), None, ())
    return (int(major), int(minor), int(patch), _parse_pre(pre))


def _upper(major: int, minor: int | None = None, patch: int | None = None) -> Version:
    # Exclusive upper bound that also excludes the next version's pre-releases
    if minor is None:
        return Version(major + 1, 0, 0, (0,))
    if patch is None:
        return Version(major, minor + 1, 0, (0,))
    return Version(major, minor, patch + 1, (0,))


def _caret(text: str) -> list[Comparator]:
    major, minor, patch, pre = _partial(text)
    if major is None:
        return []
    if minor is None:
        return [(">=", Version(major, 0, 0)), ("<", _upper(major))]
    if patch is None:
        if major == 0:
            return [(">=", Version(0, minor, 0)), ("<", _upper(0, minor))]
        return [(">=", Version(major, minor, 0)), ("<", _upper(major))]
    low = Version(major, minor, patch, pre)
    if major != 0:
        return [(">=", low), ("<", _upper(major))]
    if minor != 0:
        return [(">=", low), ("<", _upper(0, minor))]
    return [(">=", low), ("<", _upper(0, 0, patch))]


def _tilde(text: str) -> list[Comparator]:
    major, minor, patch, pre = _partial(text)
    if major is None:
        return []
    if minor is None:
        return [(">=", Version(major, 0, 0)), ("<", _upper(major))]
    return [(">=", Version(major, minor, patch or 0, pre)), ("<", _upper(major, minor))]


def _primitive(op: str, text: str) -> list[Comparator]:
    major, minor, patch, pre = _partial(text)
    if major is None:
        return [] if op in {"", "=", ">=", "<="} else [("<", Version(0, 0, 0, (0,)))]
    if minor is not None and patch is not None:
        return [(op or "=", Version(major, minor, patch, pre))]

    low = Version(major, minor or 0, 0)
    high = _upper(major, minor)
    match op:
        case "" | "=":
            return [(">=", low), ("<", high)]
        case ">=":
            return [(">=", low)]
        case ">":
            return [(">=", Version(high.major, high.minor, high.patch))]
        case "<":
            return [("<", Version(low.major, low.minor, low.patch, (0,)))]
        case "<=":
            return [("<", high)]
        case _:
            raise ValueError(f"invalid range operator: {op!r}")


def _hyphen(low_text: str, high_text: str) -> list[Comparator]:
    out: list[Comparator] = []
    lo_major, lo_minor, lo_patch, lo_pre = _partial(low_text)
    if lo_major is not None:
        out.append((">=", Version(lo_major, lo_minor or 0, lo_patch or 0, lo_pre)))
    hi_major, hi_minor, hi_patch, hi_pre = _partial(high_text)
    if hi_major is not None:
        if hi_minor is None or hi_patch is None:
            out.append(("<", _upper(hi_major, hi_minor)))
        else:
            out.append(("<=", Version(hi_major, hi_minor, hi_patch, hi_pre)))
    return out


def _parse_set(text: str) -> list[Comparator]:
    hyphen = _HYPHEN_RE.match(text)
    if hyphen is not None:
        return _hyphen(hyphen.group(1), hyphen.group(2))

    normalized = re.sub(r"(<=|>=|<|>|=|\^|~>?)\s+", r"\1", text.strip())
    comparators: list[Comparator] = []
    for token in normalized.split():
        m = _COMPARATOR_RE.match(token)
        assert m is not None
        op, rest = m.group(1) or "", m.group(2)
        if op == "^":
            comparators.extend(_caret(rest))
        elif op.startswith("~"):
            comparators.extend(_tilde(rest))
        else:
            comparators.extend(_primitive(op, rest))
    return comparators


def parse_range(text: str) -> list[list[Comparator]]:
    """Parse an npm range into alternative comparator sets.

    Raises:
        ValueError: If any component is not a valid (partial) version.
    """
    return [_parse_set(part) for part in text.split("||")]


def _test(op: str, version: Version, bound: Version) -> bool:
    match op:
        case "=":
            return version.same_precedence(bound)
        case ">=":
            return version >= bound
        case ">":
            return version > bound
        case "<=":
            return version <= bound
        case "<":
            return version < bound
    raise AssertionError(f"unexpected operator: {op}")


def _set_allows(comparators: list[Comparator], version: Version, include_prerelease: bool) -> bool:
    if not all(_test(op, version, bound) for op, bound in comparators):
        return False
    if not version.is_prerelease or include_prerelease:
        return True
    # A pre-release only matches when a comparator targets the same core version
    return any(bound.is_prerelease and bound.core == version.core for _, bound in comparators)


def satisfies(version: Version, range_text: str, *, include_prerelease: bool = True) -> bool:
    """Return True if ``version`` falls inside the npm range ``range_text``.

    An unparsable range is never satisfied.
    """
    try:
        sets = parse_range(range_text)
    except ValueError:
        return False
    return any(_set_allows(s, version, include_prerelease) for s in sets)
