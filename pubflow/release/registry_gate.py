"""Read-only registry preconditions, checked before anything is mutated."""

from __future__ import annotations

from pubflow.core.result import Err, Result
from pubflow.registry.npm import Npm
from pubflow.release.errors import ReleaseError
from pubflow.release.gate import check_engine, run_gate
from pubflow.release.manifest import PackageMetadata
from pubflow.release.model import GateResult, ReleaseOptions
from pubflow.release.naming import validate_package_name
from pubflow.release.semver import Version

MISSING_DIST_TAG_MESSAGE = (
    "You must specify a dist-tag using --tag when publishing a pre-release version. "
    "This prevents accidentally tagging unstable versions as 'latest'."
)


def check_dist_tag(options: ReleaseOptions, pkg: PackageMetadata, version: Version) -> GateResult:
    if version.is_prerelease and not pkg.private and not options.dist_tag:
        return GateResult.fail(
            ReleaseError(
                kind="missing_dist_tag",
                message=MISSING_DIST_TAG_MESSAGE,
                hint="https://docs.npmjs.com/cli/dist-tag",
            )
        )
    return GateResult.ok()


def check_package_name(pkg: PackageMetadata) -> GateResult:
    validation = validate_package_name(pkg.name)
    if validation.valid_for_new_packages:
        return GateResult.ok()
    details = [f"Error: {e}" for e in validation.errors] + [f"Warning: {w}" for w in validation.warnings]
    return GateResult.fail(
        ReleaseError(
            kind="invalid_package_name",
            message=f'Invalid package name: "{pkg.name}"',
            hint="; ".join(details),
        )
    )


def check_connection(npm: Npm, pkg: PackageMetadata, timeout: float) -> GateResult:
    registry = npm.registry_url(pkg)
    registry_text = registry.value if not isinstance(registry, Err) else (pkg.publish_registry or "default registry")

    ping = npm.ping(pkg, timeout)
    if isinstance(ping, Err):
        if ping.error.timed_out:
            message = f"Connection to npm registry({registry_text}) timed out after {timeout:g}s."
        else:
            message = f"Connection to npm registry({registry_text}) failed."
        return GateResult.fail(
            ReleaseError(kind="registry_unreachable", message=message, hint=ping.error.message or None)
        )
    return GateResult.ok()


def check_npm_version(npm: Npm, pkg: PackageMetadata) -> GateResult:
    version = npm.version()
    if isinstance(version, Err):
        return GateResult.fail(
            ReleaseError(
                kind="tool_version_unsupported",
                message="cannot determine npm version",
                hint=version.error.message or None,
            )
        )
    return check_engine("npm", version.value, pkg)


def check_publish_permission(npm: Npm, pkg: PackageMetadata) -> GateResult:
    who = npm.whoami(pkg)
    if isinstance(who, Err):
        if who.error.needs_auth:
            message = "You must be logged in. Use `npm login` and try again."
        else:
            message = "Authentication error. Use `npm whoami` to troubleshoot."
        return GateResult.fail(
            ReleaseError(kind="authentication_required", message=message, hint=who.error.message or None)
        )
    username = who.value

    collaborators = npm.collaborators(pkg)
    if isinstance(collaborators, Err):
        return GateResult.fail(
            ReleaseError(
                kind="insufficient_permission",
                message=f"cannot list collaborators of {pkg.name}",
                hint=collaborators.error.message or None,
            )
        )
    if collaborators.value is None:
        # Never published: nothing to enforce yet
        return GateResult.ok()

    permission = collaborators.value.get(username, "")
    if "write" not in permission:
        return GateResult.fail(
            ReleaseError(
                kind="insufficient_permission",
                message="You do not have write permissions required to publish this package.",
                hint=f"npm user: {username}",
            )
        )
    return GateResult.ok()


def check(
    options: ReleaseOptions,
    pkg: PackageMetadata,
    version: Version,
    npm: Npm,
) -> Result[None, ReleaseError]:
    """Run the registry checks in order, stopping at the first failure."""
    return run_gate(
        [
            lambda: check_dist_tag(options, pkg, version),
            lambda: check_package_name(pkg),
            lambda: check_connection(npm, pkg, options.registry_timeout),
            lambda: check_npm_version(npm, pkg),
            lambda: check_publish_permission(npm, pkg),
        ]
    )
