"""Release orchestration.

One run walks a linear sequence of stages:

    START -> VERSION_RESOLVED -> REGISTRY_CHECKED -> REPOSITORY_CHECKED
          -> [DEPENDENCIES_REINSTALLED] -> [SCRIPTS_RUN] -> VERSION_BUMPED
          -> PUBLISHED -> TAG_PUSHED | NOT_PUSHED -> DONE

A failure before VERSION_BUMPED aborts with nothing changed. A failed
publish enters ROLLED_BACK, which undoes the bump and reports both the
publish error and any rollback error. A failed push never fails the release:
the package is already on the registry.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum

from pubflow.core.result import Err, Ok, Result
from pubflow.git.repository import Repository
from pubflow.output.console import ConsoleProtocol, Style
from pubflow.registry.npm import Npm
from pubflow.release import registry_gate, repository_gate, scripts
from pubflow.release.errors import ReleaseError
from pubflow.release.fsm import StepOutcome, advance, finish, run_state_machine
from pubflow.release.manifest import PackageMetadata
from pubflow.release.model import PublishStatus, ReleaseOptions, VersionRequest
from pubflow.release.resolver import VersionDecider, resolve
from pubflow.release.rollback import RollbackController
from pubflow.release.semver import Version, parse_version

ReadManifest = Callable[[], Result[PackageMetadata, ReleaseError]]

_PROTECTED_BRANCH_MARKERS = ("GH006", "protected branch", "pre-receive hook declined")


class Stage(Enum):
    START = "start"
    VERSION_RESOLVED = "version_resolved"
    REGISTRY_CHECKED = "registry_checked"
    REPOSITORY_CHECKED = "repository_checked"
    DEPENDENCIES_REINSTALLED = "dependencies_reinstalled"
    SCRIPTS_RUN = "scripts_run"
    VERSION_BUMPED = "version_bumped"
    PUBLISHED = "published"
    TAG_PUSHED = "tag_pushed"
    NOT_PUSHED = "not_pushed"
    DONE = "done"
    ROLLED_BACK = "rolled_back"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class ReleaseSession:
    """State carried between stages."""

    stage: Stage = Stage.START
    version: Version | None = None
    branch: str | None = None
    push_error: ReleaseError | None = None
    report: ReleaseReport | None = None


@dataclass(frozen=True, slots=True)
class ReleaseReport:
    name: str
    version: str
    pushed: bool
    stages: tuple[Stage, ...] = field(default_factory=tuple)
    push_error: ReleaseError | None = None


@dataclass(frozen=True, slots=True)
class ReleaseFailure:
    """Why a release stopped; ``rollback_error`` never replaces ``error``."""

    error: ReleaseError
    stage: Stage
    rollback_error: ReleaseError | None = None
    rolled_back: bool = False
    stages: tuple[Stage, ...] = field(default_factory=tuple)


class ReleaseOrchestrator:
    """Run one release of one package end to end."""

    def __init__(
        self,
        *,
        options: ReleaseOptions,
        pkg: PackageMetadata,
        request: VersionRequest,
        repo: Repository,
        npm: Npm,
        console: ConsoleProtocol,
        read_manifest: ReadManifest,
        decider: VersionDecider | None = None,
    ) -> None:
        self.options = options
        self.pkg = pkg
        self.request = request
        self.repo = repo
        self.npm = npm
        self.console = console
        self.decider = decider
        self._read_manifest = read_manifest
        self._publish_status = PublishStatus.UNKNOWN
        self._stages: list[Stage] = [Stage.START]
        self._failure: ReleaseFailure | None = None
        self.rollback = RollbackController(
            repo=repo,
            npm=npm,
            original_version=pkg.version,
            read_version=self._disk_version,
            console=console,
        )

    # -- public ---------------------------------------------------------------

    @property
    def publish_status(self) -> PublishStatus:
        return self._publish_status

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(self._stages)

    def run(self) -> Result[ReleaseReport, ReleaseFailure]:
        result = run_state_machine(
            initial_state=ReleaseSession(),
            get_step=lambda s: s.stage,
            handlers={
                Stage.START: self._resolve_version,
                Stage.VERSION_RESOLVED: self._check_registry,
                Stage.REGISTRY_CHECKED: self._check_repository,
                Stage.REPOSITORY_CHECKED: self._reinstall_dependencies,
                Stage.DEPENDENCIES_REINSTALLED: self._run_scripts,
                Stage.SCRIPTS_RUN: self._bump_version,
                Stage.VERSION_BUMPED: self._publish,
                Stage.PUBLISHED: self._push,
                Stage.TAG_PUSHED: self._done,
                Stage.NOT_PUSHED: self._done,
            },
            on_advance=lambda s: self._stages.append(s.stage),
            unknown_step=self._unknown_stage,
        )
        match result:
            case Ok(ReleaseSession(report=ReleaseReport() as report)):
                return Ok(report)
            case Ok(_):
                return Err(self._abort(ReleaseError(kind="publish_failed", message="release ended without a report")))
            case Err(failure):
                return Err(replace(failure, stages=self.stages))

    # -- stages ---------------------------------------------------------------

    def _resolve_version(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        current = parse_version(self.pkg.version)
        if current is None:
            return Err(
                self._abort(
                    ReleaseError(
                        kind="manifest_invalid",
                        message=f"current version `{self.pkg.version}` in package.json is not valid semver",
                    )
                )
            )

        resolved = resolve(self.request, current, self.decider)
        if isinstance(resolved, Err):
            return Err(self._abort(resolved.error))

        self.console.info(f"{self.pkg.name}: {current} -> {resolved.value}")
        return Ok(advance(replace(s, stage=Stage.VERSION_RESOLVED, version=resolved.value)))

    def _check_registry(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        self.console.header("Prepare registry")
        checked = registry_gate.check(self.options, self.pkg, self._version(s), self.npm)
        if isinstance(checked, Err):
            return Err(self._abort(checked.error))
        self.console.success("registry checks passed")
        return Ok(advance(replace(s, stage=Stage.REGISTRY_CHECKED)))

    def _check_repository(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        self.console.header("Prepare git")
        branch = repository_gate.check(self.options, self.pkg, self._version(s), self.repo, self.npm, self.console)
        if isinstance(branch, Err):
            return Err(self._abort(branch.error))
        self.console.success(f"repository checks passed (release branch: {branch.value})")
        return Ok(advance(replace(s, stage=Stage.REPOSITORY_CHECKED, branch=branch.value)))

    def _reinstall_dependencies(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        if not self.options.clean:
            return self._run_scripts(s)

        self.console.header("Reinstall dependencies")
        installed = scripts.clean_reinstall(self.pkg.root, self.npm)
        if isinstance(installed, Err):
            return Err(self._abort(installed.error))
        self.console.success("dependencies reinstalled")
        return Ok(advance(replace(s, stage=Stage.DEPENDENCIES_REINSTALLED)))

    def _run_scripts(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        if not self.options.run_scripts:
            return self._bump_version(s)

        self.console.header("Run scripts")
        ran = scripts.run_scripts(self.options.run_scripts, self.pkg, self.npm, self.console)
        if isinstance(ran, Err):
            return Err(self._abort(ran.error))
        return Ok(advance(replace(s, stage=Stage.SCRIPTS_RUN)))

    def _bump_version(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        version = str(self._version(s))
        self.console.header("Bump version")
        bumped = self.npm.bump_version(version)
        if isinstance(bumped, Err):
            error = ReleaseError(kind="bump_failed", message=f"npm version {version} failed", hint=bumped.error.message or None)
            # npm version commits and tags together; only undo if the tag appeared
            tag = f"{self.npm.tag_version_prefix()}{version}"
            created = self.repo.tag_exists(tag)
            if isinstance(created, Ok) and created.value:
                return Err(self._roll_back(error, Stage.SCRIPTS_RUN))
            return Err(self._abort(error))

        self.console.success(f"version set to {version}")
        return Ok(advance(replace(s, stage=Stage.VERSION_BUMPED)))

    def _publish(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        self.console.header("Publish")
        published = self.npm.publish(self.options.dist_tag)
        status = PublishStatus.FAILED if isinstance(published, Err) else PublishStatus.SUCCESS
        self._set_publish_status(status)

        if isinstance(published, Err):
            error = ReleaseError(
                kind="publish_failed",
                message="Error publishing package.",
                hint=published.error.message or None,
            )
            return Err(self._roll_back(error, Stage.VERSION_BUMPED))

        tag_note = f" with dist-tag `{self.options.dist_tag}`" if self.options.dist_tag else ""
        self.console.success(f"published {self.pkg.name}@{self._version(s)}{tag_note}")
        return Ok(advance(replace(s, stage=Stage.PUBLISHED)))

    def _push(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        if self._publish_status is not PublishStatus.SUCCESS:
            self.console.warning("Couldn't publish package to npm; not pushing.")
            return Ok(advance(replace(s, stage=Stage.NOT_PUSHED)))

        # `npm version` commits and tags on HEAD, so HEAD's branch is what gets pushed.
        current = self.repo.current_branch()
        pushed_branch = current.value if isinstance(current, Ok) else s.branch
        if s.branch and pushed_branch != s.branch:
            self.console.warning(
                f"The release commit is on `{pushed_branch}`, not on the release branch `{s.branch}`."
            )

        if not self.repo.has_upstream():
            error = ReleaseError(kind="push_failed", message="Upstream branch not found; not pushing.")
            return self._not_pushed(s, error)

        self.console.header("Push")
        pushed = self.repo.push_with_tags()
        if isinstance(pushed, Err):
            detail = pushed.error.message
            if any(marker in detail for marker in _PROTECTED_BRANCH_MARKERS):
                error = ReleaseError(
                    kind="push_failed",
                    message=f"Branch protection rejected the commits on `{pushed_branch}`.",
                    hint="The tag was pushed; push the release commit manually.",
                )
            else:
                error = ReleaseError(
                    kind="push_failed",
                    message=f"git push failed: {detail or 'unknown error'}.",
                    hint="Push the release commit and tag manually.",
                )
            return self._not_pushed(s, error)

        self.console.success(f"pushed {pushed_branch} with tags")
        return Ok(advance(replace(s, stage=Stage.TAG_PUSHED)))

    def _not_pushed(
        self, s: ReleaseSession, error: ReleaseError
    ) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        self.console.warning(error.pretty())
        return Ok(advance(replace(s, stage=Stage.NOT_PUSHED, push_error=error)))

    def _done(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
        name, version = self.pkg.name, str(self._version(s))
        reread = self._read_manifest()
        if isinstance(reread, Ok):
            name, version = reread.value.name, reread.value.version

        self._stages.append(Stage.DONE)
        report = ReleaseReport(
            name=name,
            version=version,
            pushed=s.stage is Stage.TAG_PUSHED,
            stages=self.stages,
            push_error=s.push_error,
        )
        self.console.newline()
        self.console.print(f"{name} {version} published", Style.SUCCESS)
        return Ok(finish(replace(s, stage=Stage.DONE, report=report)))

    # -- helpers --------------------------------------------------------------

    def _set_publish_status(self, status: PublishStatus) -> None:
        if self._publish_status is not PublishStatus.UNKNOWN:
            raise RuntimeError(f"publish status already set to {self._publish_status.value}")
        self._publish_status = status

    def _roll_back(self, error: ReleaseError, stage: Stage) -> ReleaseFailure:
        rolled = self.rollback.rollback()
        self._stages.append(Stage.ROLLED_BACK)
        match rolled:
            case Ok(removed):
                return ReleaseFailure(error=error, stage=stage, rolled_back=removed)
            case Err(rollback_error):
                return ReleaseFailure(error=error, stage=stage, rollback_error=rollback_error)

    def _abort(self, error: ReleaseError) -> ReleaseFailure:
        stage = self._stages[-1]
        self._stages.append(Stage.ABORTED)
        return ReleaseFailure(error=error, stage=stage)

    def _unknown_stage(self, stage: Stage) -> ReleaseFailure:
        return self._abort(ReleaseError(kind="publish_failed", message=f"unknown release stage: {stage.value}"))

    def _disk_version(self) -> str | None:
        reread = self._read_manifest()
        return reread.value.version if isinstance(reread, Ok) else None

    @staticmethod
    def _version(s: ReleaseSession) -> Version:
        assert s.version is not None
        return s.version
