"""Shared fixtures: scripted runners and a package on disk."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from pubflow.core.result import Ok
from pubflow.platform.scripted import ScriptedRunner
from pubflow.release.manifest import PackageMetadata, load_manifest


def write_manifest(root: Path, **fields: object) -> Path:
    data: dict[str, object] = {"name": "demo-pkg", "version": "1.2.3"}
    data.update(fields)
    path = root / "package.json"
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture
def healthy_runner(runner: ScriptedRunner) -> ScriptedRunner:
    """Every registry and repository check passes for a package on `main`."""
    runner.ok("npm", "--version", out="10.2.4")
    runner.ok("npm", "config", "get", "registry", out="https://registry.npmjs.org/")
    runner.ok("npm", "config", "get", "tag-version-prefix", out="v")
    runner.ok("npm", "whoami", out="alice")
    runner.ok("npm", "access", "ls-collaborators", out='{"alice": "read-write"}')
    runner.ok("git", "version", out="git version 2.43.0")
    runner.ok("git", "symbolic-ref", "--short", "HEAD", out="main")
    runner.ok("git", "rev-list", "--count", out="0")
    runner.ok("git", "show-ref", "--verify", "refs/remotes/origin/main", out="abc123 refs/remotes/origin/main")
    runner.ok("git", "rev-parse", "--abbrev-ref", out="origin/main")
    # --quiet --verify exits 1 silently for a missing tag
    runner.fail("git", "rev-parse", "--quiet", "--verify")
    return runner


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., PackageMetadata]:
    """Write ``package.json`` into ``tmp_path`` and return its parsed metadata."""

    def _make(**fields: object) -> PackageMetadata:
        loaded = load_manifest(write_manifest(tmp_path, **fields).parent)
        assert isinstance(loaded, Ok)
        return loaded.value

    return _make
