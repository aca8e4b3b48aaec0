"""Shared gate machinery.

A gate is an ordered list of checks. Checks run one at a time and the first
failure stops the gate: later checks may depend on earlier ones (a fetch
before a remote lookup, connectivity before permissions).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from pubflow.core.result import Err, Ok, Result
from pubflow.release.errors import ReleaseError
from pubflow.release.manifest import PackageMetadata
from pubflow.release.model import GateResult
from pubflow.release.semver import parse_version, satisfies

Check = Callable[[], GateResult]


def run_gate(checks: Sequence[Check]) -> Result[None, ReleaseError]:
    for check in checks:
        result = check()
        if result.error is not None:
            return Err(result.error)
    return Ok(None)


def check_engine(tool: str, version_text: str, pkg: PackageMetadata) -> GateResult:
    """Verify ``tool``'s version against the package's ``engines`` entry."""
    version = parse_version(version_text)
    if version is None:
        return GateResult.fail(
            ReleaseError(
                kind="tool_version_unsupported",
                message=f"cannot determine {tool} version from `{version_text}`",
            )
        )

    required = pkg.engines.get(tool)
    if required is None:
        return GateResult.ok()

    if not satisfies(version, required, include_prerelease=True):
        return GateResult.fail(
            ReleaseError(
                kind="tool_version_unsupported",
                message=f"Please upgrade to {tool}{required}.",
                hint=f"found {tool} {version}",
            )
        )
    return GateResult.ok()
