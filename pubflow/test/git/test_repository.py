"""Tests for git/repository.py."""

from __future__ import annotations

from pathlib import Path

from pubflow.core.result import Err, Ok
from pubflow.git.repository import GitStatus, Repository, StatusEntry
from pubflow.platform.scripted import ScriptedRunner
from pubflow.release.model import CommitEntry


# =============================================================================
# StatusEntry / GitStatus Tests
# =============================================================================


class TestStatusEntry:
    """Tests for StatusEntry dataclass."""

    def test_untracked_entry(self) -> None:
        assert StatusEntry(xy="??", path="new.js").is_untracked is True
        assert StatusEntry(xy=" M", path="index.js").is_untracked is False

    def test_pretty_xy(self) -> None:
        """Spaces are shown as dots."""
        assert StatusEntry(xy=" M", path="a").pretty_xy() == ".M"
        assert StatusEntry(xy="A ", path="a").pretty_xy() == "A."


class TestGitStatus:
    def test_clean(self) -> None:
        assert GitStatus().is_clean is True
        assert GitStatus(entries=(StatusEntry("??", "x"),)).is_clean is False

    def test_summary_is_truncated(self) -> None:
        entries = tuple(StatusEntry(" M", f"f{i}.js") for i in range(7))
        summary = GitStatus(entries=entries).summary(limit=2)
        assert summary == ".M f0.js, .M f1.js, ... and 5 more"


# =============================================================================
# Repository Tests
# =============================================================================


class TestRepositoryInspection:
    """Read-only commands and how their output is parsed."""

    def test_version(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.ok("git", "version", out="git version 2.39.3 (Apple Git-145)")
        assert Repository(tmp_path, runner).version() == Ok("2.39.3")

    def test_version_unrecognised(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.ok("git", "version", out="something else")
        result = Repository(tmp_path, runner).version()
        assert isinstance(result, Err)
        assert "unrecognised" in result.error.message

    def test_current_branch(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.ok("git", "symbolic-ref", out="main\n")
        assert Repository(tmp_path, runner).current_branch() == Ok("main")
        assert runner.calls == [["git", "symbolic-ref", "--short", "HEAD"]]

    def test_detached_head(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.fail("git", "symbolic-ref", stderr="fatal: ref HEAD is not a symbolic ref", code=128)
        result = Repository(tmp_path, runner).current_branch()
        assert isinstance(result, Err)
        assert result.error.returncode == 128
        assert result.error.command == "symbolic-ref --short"

    def test_has_local_branch(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.fail("git", "show-ref", "--verify", "--quiet", "refs/heads/master")
        repo = Repository(tmp_path, runner)
        assert repo.has_local_branch("main") is True
        assert repo.has_local_branch("master") is False

    def test_latest_tag_or_first_commit_prefers_tag(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.ok("git", "describe", out="v1.2.3")
        assert Repository(tmp_path, runner).latest_tag_or_first_commit() == Ok("v1.2.3")
        assert not runner.called("git", "rev-list")

    def test_latest_tag_or_first_commit_falls_back(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.fail("git", "describe", stderr="fatal: No names found")
        runner.ok("git", "rev-list", "--max-parents=0", out="abc123\ndef456")
        assert Repository(tmp_path, runner).latest_tag_or_first_commit() == Ok("abc123")

    def test_commit_log_since(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.ok("git", "log", out="fix: handle #12 a1b2c3d\n\nfeat: add flag e4f5a6b")
        result = Repository(tmp_path, runner).commit_log_since("v1.0.0")

        assert result == Ok(
            [
                CommitEntry(message="fix: handle #12", sha="a1b2c3d"),
                CommitEntry(message="feat: add flag", sha="e4f5a6b"),
            ]
        )
        assert runner.calls[0] == ["git", "log", "--format=%s %h", "v1.0.0..HEAD"]

    def test_status(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.ok("git", "status", out=" M index.js\n?? notes.txt")
        result = Repository(tmp_path, runner).status()

        assert isinstance(result, Ok)
        assert result.value.entries == (StatusEntry(" M", "index.js"), StatusEntry("??", "notes.txt"))

    def test_behind_count(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.ok("git", "rev-list", "--count", out="3")
        assert Repository(tmp_path, runner).behind_count() == Ok(3)

    def test_behind_count_without_upstream(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.fail("git", "rev-list", "--count", stderr="fatal: no upstream configured")
        runner.fail("git", "rev-parse", "--abbrev-ref", stderr="fatal: no upstream configured")
        assert Repository(tmp_path, runner).behind_count() == Ok(0)

    def test_behind_count_error_with_upstream(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.fail("git", "rev-list", "--count", stderr="fatal: bad revision")
        assert isinstance(Repository(tmp_path, runner).behind_count(), Err)


class TestRepositoryRemote:
    def test_tag_exists(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.ok("git", "rev-parse", "--quiet", "--verify", out="abc123")
        assert Repository(tmp_path, runner).tag_exists("v1.0.0") == Ok(True)
        assert runner.calls[0][-1] == "refs/tags/v1.0.0"

    def test_tag_missing(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.fail("git", "rev-parse", "--quiet", "--verify")
        assert Repository(tmp_path, runner).tag_exists("v1.0.0") == Ok(False)

    def test_tag_lookup_error(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.fail("git", "rev-parse", "--quiet", "--verify", stderr="fatal: not a git repository", code=128)
        assert isinstance(Repository(tmp_path, runner).tag_exists("v1.0.0"), Err)

    def test_branch_exists_on_remote(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.ok("git", "show-ref", "--verify", "refs/remotes/origin/main", out="abc refs/remotes/origin/main")
        runner.fail(
            "git", "show-ref", "--verify", "refs/remotes/origin/dev",
            stderr="fatal: 'refs/remotes/origin/dev' - not a valid ref",
        )
        repo = Repository(tmp_path, runner)
        assert repo.branch_exists_on_remote("main") == Ok(True)
        assert repo.branch_exists_on_remote("dev") == Ok(False)

    def test_network_commands_get_longer_timeout(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        repo = Repository(tmp_path, runner)
        repo.fetch()
        repo.status()
        fetch_timeout, status_timeout = runner.timeouts
        assert fetch_timeout is not None and status_timeout is not None
        assert fetch_timeout > status_timeout


class TestRepositoryMutation:
    def test_commands(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        repo = Repository(tmp_path, runner)
        repo.delete_tag("v1.2.4")
        repo.remove_last_commit()
        repo.push_with_tags()

        assert runner.calls == [
            ["git", "tag", "--delete", "v1.2.4"],
            ["git", "reset", "--hard", "HEAD~1"],
            ["git", "push", "--follow-tags"],
        ]

    def test_push_rejected(self, tmp_path: Path, runner: ScriptedRunner) -> None:
        runner.fail("git", "push", stderr="remote: error: GH006: Protected branch update failed")
        result = Repository(tmp_path, runner).push_with_tags()
        assert isinstance(result, Err)
        assert "GH006" in result.error.message
