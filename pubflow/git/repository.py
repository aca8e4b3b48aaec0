"""Git repository abstraction.

``Repository`` wraps the handful of git commands a release needs. It keeps no
state besides the repository path and the command runner, and every
operation that can fail returns a Result.

Usage:
    repo = Repository(Path("."))

    match repo.latest_tag():
        case Ok(tag):
            print(f"previous release: {tag}")
        case Err(e):
            print(f"no tags yet: {e.message}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from pubflow.core.result import Err, Ok, Result
from pubflow.platform.process import CommandRunner, ProcessError
from pubflow.platform.process import run as run_process
from pubflow.release.model import CommitEntry

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "ls-remote"})
_VERSION_RE = re.compile(r"git version (\d+\.\d+\.\d+)")

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message (git's own stderr when available)
        returncode: Process return code
        stdout: Captured stdout of the failed command
    """

    command: str
    message: str
    returncode: int = 1
    stdout: str = ""


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single ``git status --porcelain`` entry."""

    xy: str
    path: str

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"

    def pretty_xy(self) -> str:
        """Format XY with dots for spaces (". M" instead of " M")."""
        return self.xy.replace(" ", ".")


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Working tree state of the repository."""

    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return len(self.entries) == 0

    def summary(self, limit: int = 5) -> str:
        shown = [f"{e.pretty_xy()} {e.path}" for e in self.entries[:limit]]
        rest = len(self.entries) - limit
        if rest > 0:
            shown.append(f"... and {rest} more")
        return ", ".join(shown)


class Repository:
    """Git operations on a single repository.

    Attributes:
        path: Path inside the repository (usually the package directory)
    """

    def __init__(self, path: Path, runner: CommandRunner = run_process) -> None:
        self.path = path
        self._runner = runner

    # -- inspection -----------------------------------------------------------

    def version(self) -> Result[str, GitError]:
        """Return git's own version (``2.43.0`` from ``git version 2.43.0``)."""
        result = self._git(["version"])
        if isinstance(result, Err):
            return result
        m = _VERSION_RE.search(result.value)
        if m is None:
            return Err(GitError(command="version", message=f"unrecognised git version: {result.value}"))
        return Ok(m.group(1))

    def current_branch(self) -> Result[str, GitError]:
        return self._git(["symbolic-ref", "--short", "HEAD"]).map(str.strip)

    def has_local_branch(self, branch: str) -> bool:
        result = self._git(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"])
        return isinstance(result, Ok)

    def latest_tag(self) -> Result[str, GitError]:
        return self._git(["describe", "--abbrev=0", "--tags"]).map(str.strip)

    def first_commit(self) -> Result[str, GitError]:
        result = self._git(["rev-list", "--max-parents=0", "HEAD"])
        if isinstance(result, Err):
            return result
        roots = result.value.split()
        if not roots:
            return Err(GitError(command="rev-list", message="repository has no commits"))
        return Ok(roots[0])

    def latest_tag_or_first_commit(self) -> Result[str, GitError]:
        """Revision of the previous release, or the root commit if none exists."""
        tag = self.latest_tag()
        if isinstance(tag, Ok):
            return tag
        return self.first_commit()

    def commit_log_since(self, revision: str) -> Result[list[CommitEntry], GitError]:
        """Commits in ``revision..HEAD``, newest first."""
        result = self._git(["log", "--format=%s %h", f"{revision}..HEAD"])
        if isinstance(result, Err):
            return result
        entries: list[CommitEntry] = []
        for line in result.value.splitlines():
            if not line.strip():
                continue
            message, _, sha = line.rpartition(" ")
            entries.append(CommitEntry(message=message, sha=sha))
        return Ok(entries)

    def status(self) -> Result[GitStatus, GitError]:
        result = self._git(["status", "--porcelain"])
        if isinstance(result, Err):
            return result
        entries: list[StatusEntry] = []
        for line in result.value.splitlines():
            if len(line) < 4:
                continue
            entries.append(StatusEntry(xy=line[:2], path=line[3:]))
        return Ok(GitStatus(entries=tuple(entries)))

    def has_upstream(self) -> bool:
        """Check if the current branch has an upstream configured."""
        result = self._git(["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"])
        return isinstance(result, Ok)

    def behind_count(self) -> Result[int, GitError]:
        """Number of upstream commits missing locally (0 without an upstream)."""
        result = self._git(["rev-list", "--count", "--left-only", "@{u}...HEAD"])
        if isinstance(result, Err):
            if not self.has_upstream():
                return Ok(0)
            return result
        text = result.value.strip()
        return Ok(int(text) if text.isdigit() else 0)

    # -- remote ---------------------------------------------------------------

    def ls_remote_head(self) -> Result[str, GitError]:
        return self._git(["ls-remote", "origin", "HEAD"])

    def fetch(self) -> Result[str, GitError]:
        return self._git(["fetch"])

    def tag_exists(self, tag: str) -> Result[bool, GitError]:
        """Check for ``tag`` among the (fetched) tag refs."""
        result = self._git(["rev-parse", "--quiet", "--verify", f"refs/tags/{tag}"])
        match result:
            case Ok(stdout):
                return Ok(bool(stdout.strip()))
            case Err(e):
                # --quiet exits 1 with no output when the ref is missing
                if not e.message and not e.stdout:
                    return Ok(False)
                return Err(e)

    def branch_exists_on_remote(self, branch: str) -> Result[bool, GitError]:
        result = self._git(["show-ref", "--verify", f"refs/remotes/origin/{branch}"])
        match result:
            case Ok(stdout):
                return Ok(bool(stdout.strip()))
            case Err(e):
                if not e.stdout and (not e.message or "not a valid ref" in e.message):
                    return Ok(False)
                return Err(e)

    # -- mutation -------------------------------------------------------------

    def delete_tag(self, tag: str) -> Result[str, GitError]:
        return self._git(["tag", "--delete", tag])

    def remove_last_commit(self) -> Result[str, GitError]:
        return self._git(["reset", "--hard", "HEAD~1"])

    def push_with_tags(self) -> Result[str, GitError]:
        """Push the current branch and its annotated tags in one go."""
        return self._git(["push", "--follow-tags"])

    # -- plumbing -------------------------------------------------------------

    def _git(self, args: list[str]) -> Result[str, GitError]:
        result = self._run(args)
        match result:
            case Ok(stdout):
                return Ok(stdout)
            case Err(e):
                return Err(self._to_git_error(args, e))

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        return self._runner(["git", *args], self.path, timeout=timeout)

    @staticmethod
    def _to_git_error(args: list[str], error: ProcessError) -> GitError:
        return GitError(
            command=" ".join(args[:2]),
            message=error.stderr.strip(),
            returncode=error.returncode,
            stdout=error.stdout.strip(),
        )
