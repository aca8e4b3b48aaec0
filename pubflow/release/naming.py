"""Registry package-name rules.

Mirrors the npm registry's validation: hard errors make a name unusable, and
warnings mark names that old packages may still carry but new ones cannot.
A release is only allowed for names valid for new packages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import quote

MAX_NAME_LENGTH = 214

_BLACKLIST = frozenset({"node_modules", "favicon.ico"})
_SCOPED_RE = re.compile(r"^(?:@([^/]+?)[/])?([^/]+?)$")
_SPECIAL_RE = re.compile(r"[~'!()*]")
# encodeURIComponent leaves these untouched
_URL_SAFE = "-_.!~*'()"

_CORE_MODULES = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "sys",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "wasi",
        "worker_threads",
        "zlib",
    }
)


@dataclass(frozen=True, slots=True)
class NameValidation:
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def valid_for_new_packages(self) -> bool:
        return not self.errors and not self.warnings


def _url_safe(text: str) -> bool:
    return quote(text, safe=_URL_SAFE) == text


def validate_package_name(name: str) -> NameValidation:
    """Check ``name`` against every rule and report all violations."""
    errors: list[str] = []
    warnings: list[str] = []

    if not name:
        return NameValidation(errors=("name length must be greater than zero",))

    if name.startswith("."):
        errors.append("name cannot start with a period")
    if name.startswith("_"):
        errors.append("name cannot start with an underscore")
    if name.strip() != name:
        errors.append("name cannot contain leading or trailing spaces")
    if name.lower() in _BLACKLIST:
        errors.append(f"{name} is a blacklisted name")

    if name in _CORE_MODULES:
        warnings.append(f"{name} is a core module name")
    if len(name) > MAX_NAME_LENGTH:
        warnings.append(f"name can no longer contain more than {MAX_NAME_LENGTH} characters")
    if name.lower() != name:
        warnings.append("name can no longer contain capital letters")
    if _SPECIAL_RE.search(name.split("/")[-1]):
        warnings.append("name can no longer contain special characters (\"~'!()*\")")

    if not _url_safe(name):
        m = _SCOPED_RE.match(name)
        scoped_ok = (
            m is not None
            and m.group(1) is not None
            and _url_safe(m.group(1))
            and _url_safe(m.group(2))
        )
        if not scoped_ok:
            errors.append("name can only contain URL-friendly characters")

    return NameValidation(errors=tuple(errors), warnings=tuple(warnings))
