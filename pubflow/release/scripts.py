"""Optional pre-bump steps: clean dependency reinstall and package scripts."""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from pubflow.core.result import Err, Ok, Result
from pubflow.output.console import ConsoleProtocol, Style
from pubflow.registry.npm import Npm, NpmError
from pubflow.release.errors import ReleaseError
from pubflow.release.manifest import PackageMetadata

DEPENDENCY_DIR = "node_modules"
LOCKFILES = ("package-lock.json", "npm-shrinkwrap.json")


def has_lockfile(pkg_dir: Path) -> bool:
    return any((pkg_dir / name).exists() for name in LOCKFILES)


def clean_reinstall(pkg_dir: Path, npm: Npm) -> Result[None, ReleaseError]:
    """Remove the dependency directory and reinstall from scratch."""
    try:
        shutil.rmtree(pkg_dir / DEPENDENCY_DIR, ignore_errors=False)
    except FileNotFoundError:
        pass
    except OSError as e:
        return Err(
            ReleaseError(
                kind="script_execution_failed",
                message=f"cannot remove {DEPENDENCY_DIR}",
                hint=str(e),
            )
        )

    installed = npm.install(frozen=has_lockfile(pkg_dir))
    if isinstance(installed, Err):
        return Err(
            ReleaseError(
                kind="script_execution_failed",
                message="dependency reinstall failed",
                hint=installed.error.message or None,
            )
        )
    return Ok(None)


def select_scripts(requested: Iterable[str], pkg: PackageMetadata) -> list[str]:
    """Requested names the package declares, in request order, without duplicates."""
    selected: list[str] = []
    for name in requested:
        if name in pkg.scripts and name not in selected:
            selected.append(name)
    return selected


def run_scripts(
    requested: Iterable[str],
    pkg: PackageMetadata,
    npm: Npm,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    """Run the selected scripts concurrently and wait for all of them.

    A failing script does not cancel its siblings; any failure fails the step.
    """
    names = select_scripts(requested, pkg)
    if not names:
        console.warning("There are no runnable scripts. Please check the scripts given to --run-scripts.")
        return Ok(None)

    with ThreadPoolExecutor(max_workers=len(names)) as pool:
        futures = {name: pool.submit(npm.run_script, name) for name in names}
        results: dict[str, Result[str, NpmError]] = {name: f.result() for name, f in futures.items()}

    failed: list[str] = []
    for name, result in results.items():
        match result:
            case Ok(stdout):
                if stdout.strip():
                    console.print(stdout, Style.DIM)
                console.success(f"script `{name}`")
            case Err(e):
                if e.message:
                    console.print(e.message, Style.DIM)
                console.error(f"script `{name}` failed")
                failed.append(name)

    if failed:
        return Err(
            ReleaseError(
                kind="script_execution_failed",
                message=f"Run scripts {', '.join(repr(n) for n in failed)} exception.",
            )
        )
    return Ok(None)
