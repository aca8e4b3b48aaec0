"""Version resolution.

Turns the requested version (keyword, explicit version, or nothing) plus the
manifest's current version into the single target version of this release.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from pubflow.core.result import Err, Ok, Result
from pubflow.release.errors import ReleaseError
from pubflow.release.model import INCREMENT_KEYWORDS, IncrementKeyword, VersionRequest, is_increment_keyword
from pubflow.release.semver import Version, inc, parse_version, pretty_diff

INVALID_INPUT_MESSAGE = (
    f"Version should be either {', '.join(INCREMENT_KEYWORDS)} or a valid semver version."
)
INVALID_VERSION_MESSAGE = (
    "Version should be a valid semver version, for example, `1.2.3`. See https://semver.org."
)


@dataclass(frozen=True, slots=True)
class VersionChoice:
    """One entry of the interactive menu: a keyword and the version it yields."""

    keyword: IncrementKeyword
    version: Version
    preview: str

    @property
    def label(self) -> str:
        return f"{self.keyword} -> {self.version}"


class VersionDecider(Protocol):
    """Asks the user for a version when none was given.

    Returns a keyword or version string, or None if the user cancelled.
    ``validate`` returns an error message for unacceptable free-text input.
    """

    def decide(
        self,
        choices: list[VersionChoice],
        *,
        validate: Callable[[str], str | None],
    ) -> str | None: ...


def build_choices(current: Version) -> list[VersionChoice]:
    """Every increment keyword paired with its computed preview."""
    choices: list[VersionChoice] = []
    for keyword in INCREMENT_KEYWORDS:
        target = inc(current, keyword)
        choices.append(VersionChoice(keyword=keyword, version=target, preview=pretty_diff(current, target)))
    return choices


def too_low_error(candidate: Version, current: Version) -> ReleaseError:
    return ReleaseError(
        kind="version_too_low",
        message=f"Version {candidate} must be greater than {current}.",
    )


def _resolve_token(token: str, current: Version) -> Result[Version, ReleaseError]:
    if is_increment_keyword(token):
        return Ok(inc(current, token))  # type: ignore[arg-type]

    candidate = parse_version(token)
    if candidate is None:
        return Err(ReleaseError(kind="invalid_version", message=INVALID_VERSION_MESSAGE, hint=INVALID_INPUT_MESSAGE))
    if candidate <= current:
        return Err(too_low_error(candidate, current))
    return Ok(candidate)


def validate_answer(token: str, current: Version) -> str | None:
    """Error message for a free-text answer, or None if it is acceptable."""
    result = _resolve_token(token.strip(), current)
    if isinstance(result, Err):
        return result.error.message
    return None


def resolve(
    request: VersionRequest,
    current: Version,
    decider: VersionDecider | None = None,
) -> Result[Version, ReleaseError]:
    """Resolve ``request`` against ``current``.

    An increment keyword is always accepted; an explicit version must be
    strictly greater than ``current``. With no request the decider is asked,
    and its answer goes through the same rules.
    """
    match request.form:
        case "increment" | "explicit":
            return _resolve_token(request.token, current)
        case "empty":
            if decider is None:
                return Err(
                    ReleaseError(
                        kind="invalid_version",
                        message="no version given and no interactive prompt available",
                        hint=INVALID_INPUT_MESSAGE,
                    )
                )
            answer = decider.decide(build_choices(current), validate=lambda t: validate_answer(t, current))
            if answer is None or not answer.strip():
                return Err(ReleaseError(kind="prompt_cancelled", message="version selection cancelled"))
            return _resolve_token(answer.strip(), current)
