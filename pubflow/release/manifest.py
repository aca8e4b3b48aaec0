"""Package manifest (``package.json``) access.

The manifest is read once before the release starts and once after a
successful publish; ``npm version`` is the only writer of its version field.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from pubflow.core.result import Err, Ok, Result
from pubflow.core.structured import as_str_dict, get_bool, get_str, get_str_map, get_table
from pubflow.release.errors import ReleaseError

MANIFEST_NAME = "package.json"

_KNOWN_HOSTS = ("github.com", "gitlab.com", "bitbucket.org")
_SHORTHAND_RE = re.compile(r"^(?:(github|gitlab|bitbucket):)?([\w.-]+)/([\w.-]+)$")
_SCP_RE = re.compile(r"^(?:[\w.-]+@)?([\w.-]+):(?!//)([\w.-]+)/([\w.-]+?)(?:\.git)?/?$")
_URL_RE = re.compile(r"^(?:git\+)?(?:https?|git|ssh)://(?:[^@/]+@)?([\w.-]+)(?::\d+)?/([\w.-]+)/([\w.-]+?)(?:\.git)?/?$")


@dataclass(frozen=True, slots=True)
class PackageMetadata:
    """The manifest fields a release needs."""

    name: str
    version: str
    path: Path
    private: bool = False
    scripts: dict[str, str] = field(default_factory=dict)
    engines: dict[str, str] = field(default_factory=dict)
    publish_registry: str | None = None
    repository_url: str | None = None

    @property
    def root(self) -> Path:
        return self.path.parent


def browse_url(repository: str) -> str | None:
    """Turn a package.json repository field into a browsable ``https://host/owner/repo`` URL.

    Only the hosts that serve commit/compare/issue pages are recognised.
    """
    text = repository.strip()
    m = _SHORTHAND_RE.match(text)
    if m is not None:
        host = {"gitlab": "gitlab.com", "bitbucket": "bitbucket.org"}.get(m.group(1) or "", "github.com")
        return f"https://{host}/{m.group(2)}/{m.group(3)}"

    for pattern in (_URL_RE, _SCP_RE):
        m = pattern.match(text)
        if m is not None:
            host = m.group(1).lower()
            if host.startswith("www."):
                host = host[4:]
            if host not in _KNOWN_HOSTS:
                return None
            return f"https://{host}/{m.group(2)}/{m.group(3)}"
    return None


def find_manifest(start: Path) -> Path | None:
    """Walk upward from ``start`` to the nearest ``package.json``."""
    start = start.resolve()
    for parent in (start, *start.parents):
        candidate = parent / MANIFEST_NAME
        if candidate.is_file():
            return candidate
    return None


def _repository_url(data: dict[str, object]) -> str | None:
    raw = get_str(data, "repository")
    if raw is None:
        repo = get_table(data, "repository") or {}
        raw = get_str(repo, "url")
    return browse_url(raw) if raw else None


def parse_manifest(path: Path, text: str) -> Result[PackageMetadata, ReleaseError]:
    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(ReleaseError(kind="manifest_invalid", message=f"invalid JSON in {path}: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(ReleaseError(kind="manifest_invalid", message=f"{path} must contain an object"))

    # unstripped: name validation reports surrounding spaces
    raw_name = data.get("name")
    name = raw_name if isinstance(raw_name, str) and raw_name.strip() else None
    version = get_str(data, "version")
    if name is None or version is None:
        return Err(
            ReleaseError(
                kind="manifest_invalid",
                message=f"{path} must declare both `name` and `version`",
            )
        )

    publish_config = get_table(data, "publishConfig") or {}
    return Ok(
        PackageMetadata(
            name=name,
            version=version,
            path=path,
            private=bool(get_bool(data, "private")),
            scripts=get_str_map(data, "scripts"),
            engines=get_str_map(data, "engines"),
            publish_registry=get_str(publish_config, "registry"),
            repository_url=_repository_url(data),
        )
    )


def load_manifest(start: Path) -> Result[PackageMetadata, ReleaseError]:
    """Locate and parse the manifest governing ``start``."""
    path = find_manifest(start)
    if path is None:
        return Err(
            ReleaseError(
                kind="manifest_invalid",
                message=f"no {MANIFEST_NAME} found in {start} or any parent directory",
            )
        )
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(ReleaseError(kind="manifest_invalid", message=f"cannot read {path}: {e}"))
    return parse_manifest(path, text)
