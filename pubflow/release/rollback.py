"""Undo of the version bump after a failed publish.

The registry publish itself cannot be undone, so rollback is local only: the
tag and commit created by ``npm version`` are removed. It runs at most once
per release, however many times it is requested.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from pubflow.core.result import Err, Ok, Result
from pubflow.git.repository import Repository
from pubflow.output.console import ConsoleProtocol
from pubflow.registry.npm import Npm
from pubflow.release.errors import ReleaseError

ReadVersion = Callable[[], str | None]


class RollbackController:
    """Delete the release tag and commit if, and only if, this run made them.

    Args:
        repo: Repository holding the tag
        npm: Source of the tag-version prefix
        original_version: Manifest version before this run's bump
        read_version: Reads the manifest version currently on disk
    """

    def __init__(
        self,
        *,
        repo: Repository,
        npm: Npm,
        original_version: str,
        read_version: ReadVersion,
        console: ConsoleProtocol,
    ) -> None:
        self._repo = repo
        self._npm = npm
        self._original_version = original_version
        self._read_version = read_version
        self._console = console
        self._lock = threading.Lock()
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def rollback(self) -> Result[bool, ReleaseError]:
        """Roll back once; later calls are no-ops returning ``Ok(False)``.

        Returns:
            Ok(True) if the tag and commit were removed, Ok(False) if there
            was nothing of ours to remove, Err on a failed delete/reset.
        """
        with self._lock:
            if self._done:
                return Ok(False)
            self._done = True

        self._console.info("Rolling back to the previous state...")
        result = self._rollback()
        match result:
            case Ok(True):
                self._console.success("Rolled back the project to its previous state.")
            case Ok(False):
                self._console.info("Nothing to roll back: the latest tag was not created by this release.")
            case Err(e):
                self._console.error(f"Couldn't roll back: {e.pretty()}")
        return result

    def _rollback(self) -> Result[bool, ReleaseError]:
        prefix = self._npm.tag_version_prefix()
        latest = self._repo.latest_tag()
        if isinstance(latest, Err):
            return Ok(False)

        tag = latest.value
        tagged_version = tag[len(prefix) :] if tag.startswith(prefix) else tag
        on_disk = self._read_version()

        if tagged_version != on_disk or tagged_version == self._original_version:
            return Ok(False)

        deleted = self._repo.delete_tag(tag)
        if isinstance(deleted, Err):
            return Err(
                ReleaseError(
                    kind="rollback_failed",
                    message=f"could not delete tag `{tag}`",
                    hint=deleted.error.message or None,
                )
            )

        reset = self._repo.remove_last_commit()
        if isinstance(reset, Err):
            return Err(
                ReleaseError(
                    kind="rollback_failed",
                    message="could not remove the version bump commit",
                    hint=reset.error.message or None,
                )
            )
        return Ok(True)
