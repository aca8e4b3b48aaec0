"""Typed loading of the optional ``pubflow.toml`` release config.

The file lives next to ``package.json`` and provides defaults for the CLI
flags. Flags always win over the file.

Example:
    tag = "next"
    branch = "release"
    run_scripts = ["test", "build"]
    require_new_commits = false
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_list, get_number, get_str

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_REGISTRY_TIMEOUT_SECONDS",
    "ConfigError",
    "ReleaseConfig",
    "load_release_config",
    "load_release_config_or_default",
]

CONFIG_FILE_NAME = "pubflow.toml"
DEFAULT_REGISTRY_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the config file cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Defaults read from ``pubflow.toml``."""

    tag: str | None = None
    branch: str | None = None
    allow_any_branch: bool = False
    clean: bool = False
    run_scripts: tuple[str, ...] = field(default_factory=tuple)
    require_new_commits: bool = True
    registry_timeout: float = DEFAULT_REGISTRY_TIMEOUT_SECONDS

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ReleaseConfig:
        """Create a config from a parsed TOML mapping."""
        scripts_obj = get_list(data, "run_scripts")
        if scripts_obj is None and isinstance(data.get("run_scripts"), str):
            scripts_obj = list(str(data["run_scripts"]).split())
        scripts = tuple(s.strip() for s in scripts_obj or [] if isinstance(s, str) and s.strip())

        timeout = get_number(data, "registry_timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError("registry_timeout must be positive")

        return cls(
            tag=get_str(data, "tag"),
            branch=get_str(data, "branch"),
            allow_any_branch=bool(get_bool(data, "allow_any_branch")),
            clean=bool(get_bool(data, "clean")),
            run_scripts=scripts,
            require_new_commits=get_bool(data, "require_new_commits") is not False,
            registry_timeout=timeout or DEFAULT_REGISTRY_TIMEOUT_SECONDS,
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data = as_str_dict(tomllib.loads(path.read_bytes().decode("utf-8")))
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_release_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and parse ``pubflow.toml``.

    Args:
        path: Path to the config file

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(ReleaseConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_release_config_or_default(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Like ``load_release_config`` but a missing file yields the defaults."""
    if not path.exists():
        return Ok(ReleaseConfig())
    return load_release_config(path)
