from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pubflow.core.config import CONFIG_FILE_NAME, ReleaseConfig, load_release_config_or_default
from pubflow.core.result import Err, Ok, Result
from pubflow.git.repository import Repository
from pubflow.output.console import ConsoleProtocol, RichConsole
from pubflow.platform.process import CommandRunner, run, verbose_runner
from pubflow.registry.npm import Npm
from pubflow.release.errors import ReleaseError
from pubflow.release.manifest import PackageMetadata, load_manifest
from pubflow.release.model import ReleaseOptions

SKIP_CLEAN_CHECK_ENV = "PUBFLOW_SKIP_CLEAN_CHECK"


@dataclass(frozen=True, slots=True)
class CLIOverrides:
    """Values given on the command line; None means "not given"."""

    tag: str | None = None
    branch: str | None = None
    allow_any_branch: bool | None = None
    clean: bool | None = None
    run_scripts: str | None = None


@dataclass(frozen=True, slots=True)
class CLIContext:
    pkg: PackageMetadata
    options: ReleaseOptions
    console: ConsoleProtocol
    repo: Repository
    npm: Npm


def split_scripts(text: str) -> tuple[str, ...]:
    return tuple(part for part in text.replace(",", " ").split() if part)


def merge_options(
    overrides: CLIOverrides,
    config: ReleaseConfig,
    *,
    environ: Mapping[str, str] | None = None,
) -> ReleaseOptions:
    """Flag beats config file beats default."""
    env = os.environ if environ is None else environ
    return ReleaseOptions(
        dist_tag=overrides.tag if overrides.tag is not None else config.tag,
        branch=overrides.branch if overrides.branch is not None else config.branch,
        allow_any_branch=(
            overrides.allow_any_branch if overrides.allow_any_branch is not None else config.allow_any_branch
        ),
        clean=overrides.clean if overrides.clean is not None else config.clean,
        run_scripts=split_scripts(overrides.run_scripts) if overrides.run_scripts is not None else config.run_scripts,
        require_new_commits=config.require_new_commits,
        registry_timeout=config.registry_timeout,
        skip_clean_check=env.get(SKIP_CLEAN_CHECK_ENV) == "1",
    )


def build_context(
    *,
    cwd: Path,
    overrides: CLIOverrides,
    verbose: bool,
    console: ConsoleProtocol | None = None,
) -> Result[CLIContext, ReleaseError]:
    manifest = load_manifest(cwd)
    if isinstance(manifest, Err):
        return manifest
    pkg = manifest.value

    config_path = pkg.root / CONFIG_FILE_NAME
    config = load_release_config_or_default(config_path)
    if isinstance(config, Err):
        return Err(ReleaseError(kind="config_invalid", message=config.error.message))

    out = console if console is not None else RichConsole()
    runner: CommandRunner = verbose_runner(out) if verbose else run

    return Ok(
        CLIContext(
            pkg=pkg,
            options=merge_options(overrides, config.value),
            console=out,
            repo=Repository(pkg.root, runner),
            npm=Npm(pkg.root, runner),
        )
    )
