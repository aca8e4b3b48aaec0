"""npm registry tool adapter.

Same shape as the git adapter: a thin, stateless wrapper that turns ``npm``
invocations into Results. The only cached value is the tag-version prefix,
which cannot change during a run.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from pubflow.core.result import Err, Ok, Result
from pubflow.core.structured import as_str_dict
from pubflow.platform.process import CommandRunner, ProcessError
from pubflow.platform.process import run as run_process
from pubflow.release.manifest import PackageMetadata

DEFAULT_TAG_PREFIX = "v"

_NPM_TIMEOUT_SECONDS = 60.0
# install/publish/scripts may legitimately take long
_NPM_LONG_TIMEOUT_SECONDS = 30 * 60.0
_NOT_FOUND_CODES = ("code E404", "code ENOTFOUND")

__all__ = ["DEFAULT_TAG_PREFIX", "Npm", "NpmError"]


@dataclass(frozen=True, slots=True)
class NpmError:
    """Error from an npm invocation.

    Attributes:
        command: The npm subcommand that failed (e.g. "publish")
        message: npm's stderr (or stdout when stderr is empty)
        returncode: Process return code
        timed_out: True if npm was killed after its timeout
    """

    command: str
    message: str
    returncode: int = 1
    timed_out: bool = False

    @property
    def needs_auth(self) -> bool:
        return "ENEEDAUTH" in self.message


class Npm:
    """npm operations for the package rooted at ``path``."""

    def __init__(self, path: Path, runner: CommandRunner = run_process) -> None:
        self.path = path
        self._runner = runner
        self._tag_prefix: str | None = None

    @staticmethod
    def registry_args(pkg: PackageMetadata) -> list[str]:
        """``--registry`` override for packages publishing to an external registry."""
        if pkg.publish_registry:
            return ["--registry", pkg.publish_registry]
        return []

    def version(self) -> Result[str, NpmError]:
        return self._npm(["--version"]).map(str.strip)

    def config_get(self, key: str, extra: list[str] | None = None) -> Result[str, NpmError]:
        return self._npm(["config", "get", key, *(extra or [])]).map(str.strip)

    def registry_url(self, pkg: PackageMetadata) -> Result[str, NpmError]:
        """Registry the package will be published to."""
        return self.config_get("registry", self.registry_args(pkg))

    def tag_version_prefix(self) -> str:
        """Prefix npm puts in front of version tags (memoized, ``v`` on error)."""
        if self._tag_prefix is None:
            result = self.config_get("tag-version-prefix")
            self._tag_prefix = result.value if isinstance(result, Ok) else DEFAULT_TAG_PREFIX
        return self._tag_prefix

    def ping(self, pkg: PackageMetadata, timeout: float) -> Result[None, NpmError]:
        result = self._npm(["ping", *self.registry_args(pkg)], timeout=timeout)
        if isinstance(result, Err):
            return result
        return Ok(None)

    def whoami(self, pkg: PackageMetadata) -> Result[str, NpmError]:
        return self._npm(["whoami", *self.registry_args(pkg)]).map(str.strip)

    def collaborators(self, pkg: PackageMetadata) -> Result[dict[str, str] | None, NpmError]:
        """Map of collaborator -> permission, or None if the package is unpublished."""
        result = self._npm(["access", "ls-collaborators", pkg.name, *self.registry_args(pkg)])
        if isinstance(result, Err):
            if any(code in result.error.message for code in _NOT_FOUND_CODES):
                return Ok(None)
            return result

        text = result.value.strip()
        if not text:
            return Ok(None)
        try:
            data = as_str_dict(json.loads(text))
        except json.JSONDecodeError as e:
            return Err(NpmError(command="access", message=f"unexpected collaborators output: {e}"))
        if data is None:
            return Err(NpmError(command="access", message="unexpected collaborators output"))
        return Ok({user: str(perm) for user, perm in data.items()})

    def install(self, *, frozen: bool) -> Result[str, NpmError]:
        """Reinstall dependencies, reproducibly when a lockfile exists."""
        args = ["ci"] if frozen else ["install", "--no-package-lock", "--no-production"]
        return self._npm([*args, "--engine-strict"], timeout=_NPM_LONG_TIMEOUT_SECONDS)

    def run_script(self, name: str) -> Result[str, NpmError]:
        return self._npm(["run", name], timeout=_NPM_LONG_TIMEOUT_SECONDS)

    def bump_version(self, version: str) -> Result[str, NpmError]:
        return self._npm(["version", version])

    def publish(self, dist_tag: str | None) -> Result[str, NpmError]:
        args = ["publish"]
        if dist_tag:
            args += ["--tag", dist_tag]
        return self._npm(args, timeout=_NPM_LONG_TIMEOUT_SECONDS)

    def _npm(self, args: list[str], *, timeout: float = _NPM_TIMEOUT_SECONDS) -> Result[str, NpmError]:
        result = self._runner(["npm", *args], self.path, timeout=timeout)
        match result:
            case Ok(stdout):
                return Ok(stdout)
            case Err(e):
                return Err(self._to_npm_error(args, e))

    @staticmethod
    def _to_npm_error(args: list[str], error: ProcessError) -> NpmError:
        return NpmError(
            command=args[0] if args else "",
            message=error.output,
            returncode=error.returncode,
            timed_out=error.timed_out,
        )
