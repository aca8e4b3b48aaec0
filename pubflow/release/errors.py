"""Error types for the release flow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    # version resolution
    "invalid_version",
    "version_too_low",
    "prompt_cancelled",
    # registry gate
    "missing_dist_tag",
    "invalid_package_name",
    "registry_unreachable",
    "tool_version_unsupported",
    "authentication_required",
    "insufficient_permission",
    # repository gate
    "branch_unresolvable",
    "wrong_branch",
    "no_commits_since_release",
    "remote_unreachable",
    "tag_already_exists",
    "history_diverged",
    "working_tree_dirty",
    "branch_missing_on_remote",
    # mutations
    "script_execution_failed",
    "bump_failed",
    "publish_failed",
    "rollback_failed",
    "push_failed",
    # inputs
    "manifest_invalid",
    "config_invalid",
    "git_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    ``message`` is the single line shown to the user; ``hint`` carries the
    remedy or the verbatim tool output when there is one.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
