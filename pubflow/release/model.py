from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from pubflow.core.config import DEFAULT_REGISTRY_TIMEOUT_SECONDS
from pubflow.release.errors import ReleaseError

IncrementKeyword = Literal[
    "patch",
    "minor",
    "major",
    "prepatch",
    "preminor",
    "premajor",
    "prerelease",
]
RequestForm = Literal["explicit", "increment", "empty"]

INCREMENT_KEYWORDS: tuple[IncrementKeyword, ...] = (
    "patch",
    "minor",
    "major",
    "prepatch",
    "preminor",
    "premajor",
    "prerelease",
)


def is_increment_keyword(token: str) -> bool:
    return token in INCREMENT_KEYWORDS


@dataclass(frozen=True, slots=True)
class VersionRequest:
    """What the user asked for: an explicit version, a keyword, or nothing."""

    form: RequestForm
    token: str = ""

    @classmethod
    def parse(cls, token: str | None) -> VersionRequest:
        text = (token or "").strip()
        if not text:
            return cls(form="empty")
        if is_increment_keyword(text):
            return cls(form="increment", token=text)
        return cls(form="explicit", token=text)


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Options resolved once at startup; never mutated afterwards."""

    dist_tag: str | None = None
    branch: str | None = None
    allow_any_branch: bool = False
    clean: bool = False
    run_scripts: tuple[str, ...] = field(default_factory=tuple)
    require_new_commits: bool = True
    registry_timeout: float = DEFAULT_REGISTRY_TIMEOUT_SECONDS
    # Internal: test/CI harness only
    skip_clean_check: bool = False


class PublishStatus(Enum):
    UNKNOWN = "unknown"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class GateResult:
    """Outcome of a single precondition check."""

    error: ReleaseError | None = None

    @property
    def passed(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> str | None:
        return self.error.message if self.error else None

    @classmethod
    def ok(cls) -> GateResult:
        return cls()

    @classmethod
    def fail(cls, error: ReleaseError) -> GateResult:
        return cls(error=error)


@dataclass(frozen=True, slots=True)
class CommitEntry:
    message: str
    sha: str
