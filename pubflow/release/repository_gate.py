"""Read-only repository preconditions.

Runs after the registry gate and returns the branch that will receive the
release tag. Nothing here mutates the working tree; ``git fetch`` only
updates remote-tracking refs.
"""

from __future__ import annotations

from dataclasses import dataclass

from pubflow.core.result import Err, Ok, Result
from pubflow.git.repository import Repository
from pubflow.output.console import ConsoleProtocol
from pubflow.registry.npm import Npm
from pubflow.release.commits import print_commit_summary
from pubflow.release.errors import ReleaseError
from pubflow.release.gate import check_engine, run_gate
from pubflow.release.manifest import PackageMetadata
from pubflow.release.model import GateResult, ReleaseOptions
from pubflow.release.semver import Version

DEFAULT_BRANCHES: tuple[str, ...] = ("main", "master")

NO_COMMITS_MESSAGE = "No commits found since previous release."


@dataclass
class _GateState:
    """Values produced by earlier checks and consumed by later ones."""

    branch: str = ""


def resolve_release_branch(options: ReleaseOptions, repo: Repository) -> Result[str, ReleaseError]:
    if options.allow_any_branch:
        current = repo.current_branch()
        if isinstance(current, Err):
            return Err(
                ReleaseError(
                    kind="branch_unresolvable",
                    message="cannot determine the current branch (detached HEAD?)",
                    hint=current.error.message or None,
                )
            )
        return Ok(current.value)

    if options.branch:
        current = repo.current_branch()
        current_name = current.value if isinstance(current, Ok) else "(detached HEAD)"
        if current_name != options.branch:
            return Err(
                ReleaseError(
                    kind="wrong_branch",
                    message=f"Not on `{options.branch}` branch (currently on `{current_name}`).",
                    hint="Use --allow-any-branch to publish anyway, or set a different release branch using --branch.",
                )
            )
        return Ok(options.branch)

    for branch in DEFAULT_BRANCHES:
        if repo.has_local_branch(branch):
            return Ok(branch)

    return Err(
        ReleaseError(
            kind="branch_unresolvable",
            message="Could not infer the default Git branch.",
            hint="Specify one with --branch or in pubflow.toml.",
        )
    )


class RepositoryGate:
    """The eight ordered repository checks."""

    def __init__(
        self,
        *,
        options: ReleaseOptions,
        pkg: PackageMetadata,
        version: Version,
        repo: Repository,
        npm: Npm,
        console: ConsoleProtocol,
    ) -> None:
        self.options = options
        self.pkg = pkg
        self.version = version
        self.repo = repo
        self.npm = npm
        self.console = console
        self._state = _GateState()

    @property
    def tag_name(self) -> str:
        return f"{self.npm.tag_version_prefix()}{self.version}"

    def check(self) -> Result[str, ReleaseError]:
        result = run_gate(
            [
                self.check_release_branch,
                self.check_new_commits,
                self.check_git_version,
                self.check_remote,
                self.check_tag_absent,
                self.check_history,
                self.check_working_tree,
                self.check_branch_on_remote,
            ]
        )
        if isinstance(result, Err):
            return result
        return Ok(self._state.branch)

    # 1
    def check_release_branch(self) -> GateResult:
        branch = resolve_release_branch(self.options, self.repo)
        if isinstance(branch, Err):
            return GateResult.fail(branch.error)
        self._state.branch = branch.value
        return GateResult.ok()

    # 2
    def check_new_commits(self) -> GateResult:
        if not self.pkg.repository_url:
            return GateResult.ok()

        revision = self.repo.latest_tag_or_first_commit()
        if isinstance(revision, Err):
            return GateResult.fail(
                ReleaseError(
                    kind="no_commits_since_release",
                    message="The repository has no commits yet.",
                    hint=revision.error.message or None,
                )
            )

        log = self.repo.commit_log_since(revision.value)
        if isinstance(log, Err):
            return GateResult.fail(
                ReleaseError(
                    kind="git_failed",
                    message=f"Could not read the commit log since `{revision.value}`.",
                    hint=log.error.message or None,
                )
            )
        commits = log.value
        if not commits:
            if self.options.require_new_commits:
                return GateResult.fail(ReleaseError(kind="no_commits_since_release", message=NO_COMMITS_MESSAGE))
            self.console.warning(f"{NO_COMMITS_MESSAGE} Releasing anyway (require_new_commits = false).")
            return GateResult.ok()

        registry = self.npm.registry_url(self.pkg)
        print_commit_summary(
            console=self.console,
            commits=commits,
            repo_url=self.pkg.repository_url,
            revision=revision.value,
            release_branch=self._state.branch,
            registry_url=registry.value if isinstance(registry, Ok) else None,
        )
        return GateResult.ok()

    # 3
    def check_git_version(self) -> GateResult:
        version = self.repo.version()
        if isinstance(version, Err):
            return GateResult.fail(
                ReleaseError(
                    kind="tool_version_unsupported",
                    message="cannot determine git version",
                    hint=version.error.message or None,
                )
            )
        return check_engine("git", version.value, self.pkg)

    # 4
    def check_remote(self) -> GateResult:
        result = self.repo.ls_remote_head()
        if isinstance(result, Err):
            detail = result.error.message.replace("fatal:", "Git fatal error:")
            return GateResult.fail(
                ReleaseError(
                    kind="remote_unreachable",
                    message=detail or "Git remote `origin` is not reachable.",
                )
            )
        return GateResult.ok()

    # 5
    def check_tag_absent(self) -> GateResult:
        fetched = self.repo.fetch()
        if isinstance(fetched, Err):
            return GateResult.fail(
                ReleaseError(
                    kind="remote_unreachable",
                    message="git fetch failed",
                    hint=fetched.error.message or None,
                )
            )

        tag = self.tag_name
        exists = self.repo.tag_exists(tag)
        if isinstance(exists, Err):
            return GateResult.fail(
                ReleaseError(
                    kind="tag_already_exists",
                    message=f"cannot verify whether Git tag `{tag}` exists",
                    hint=exists.error.message or None,
                )
            )
        if exists.value:
            return GateResult.fail(ReleaseError(kind="tag_already_exists", message=f"Git tag `{tag}` already exists."))
        return GateResult.ok()

    # 6
    def check_history(self) -> GateResult:
        behind = self.repo.behind_count()
        if isinstance(behind, Err) or behind.value > 0:
            return GateResult.fail(
                ReleaseError(
                    kind="history_diverged",
                    message="Remote history differs. Please pull changes.",
                )
            )
        return GateResult.ok()

    # 7
    def check_working_tree(self) -> GateResult:
        if self.options.skip_clean_check:
            return GateResult.ok()
        status = self.repo.status()
        if isinstance(status, Err) or not status.value.is_clean:
            hint = status.value.summary() if isinstance(status, Ok) else status.error.message
            return GateResult.fail(
                ReleaseError(
                    kind="working_tree_dirty",
                    message="Unclean working tree. Commit or stash changes first.",
                    hint=hint or None,
                )
            )
        return GateResult.ok()

    # 8
    def check_branch_on_remote(self) -> GateResult:
        branch = self._state.branch
        exists = self.repo.branch_exists_on_remote(branch)
        if isinstance(exists, Err) or not exists.value:
            return GateResult.fail(
                ReleaseError(
                    kind="branch_missing_on_remote",
                    message=f"Git branch `{branch}` does not exist on remote.",
                )
            )
        return GateResult.ok()


def check(
    options: ReleaseOptions,
    pkg: PackageMetadata,
    version: Version,
    repo: Repository,
    npm: Npm,
    console: ConsoleProtocol,
) -> Result[str, ReleaseError]:
    """Run the repository checks in order and return the release branch."""
    gate = RepositoryGate(options=options, pkg=pkg, version=version, repo=repo, npm=npm, console=console)
    return gate.check()
