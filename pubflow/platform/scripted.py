"""Scripted command runner for tests.

Stands in for ``run`` wherever a ``CommandRunner`` is accepted, the way
``MockConsole`` stands in for ``RichConsole``.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from pubflow.core.result import Err, Ok, Result
from pubflow.platform.process import ProcessError

Handler = Callable[[list[str]], Result[str, ProcessError]]
Response = Result[str, ProcessError] | Handler


class ScriptedRunner:
    """CommandRunner that answers by longest matching command prefix.

    Unscripted commands succeed with empty output. Every call is recorded.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.timeouts: list[float | None] = []
        self._responses: dict[tuple[str, ...], Response] = {}

    def __call__(
        self,
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        del cwd, env
        self.calls.append(list(cmd))
        self.timeouts.append(timeout)
        response = self._match(cmd)
        if response is None:
            return Ok("")
        if isinstance(response, Ok | Err):
            return response
        return response(list(cmd))

    def ok(self, *prefix: str, out: str = "") -> None:
        self._responses[prefix] = Ok(out)

    def fail(
        self,
        *prefix: str,
        stderr: str = "",
        stdout: str = "",
        code: int = 1,
        timed_out: bool = False,
    ) -> None:
        self._responses[prefix] = Err(
            ProcessError(
                command=prefix,
                returncode=-1 if timed_out else code,
                stdout=stdout,
                stderr=stderr,
                timed_out=timed_out,
            )
        )

    def on(self, *prefix: str, handler: Handler) -> None:
        self._responses[prefix] = handler

    # Test helpers

    def called(self, *prefix: str) -> bool:
        return self.count(*prefix) > 0

    def count(self, *prefix: str) -> int:
        return sum(1 for c in self.calls if tuple(c[: len(prefix)]) == prefix)

    def _match(self, cmd: list[str]) -> Response | None:
        best: tuple[str, ...] | None = None
        for prefix in self._responses:
            if tuple(cmd[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        return self._responses[best] if best is not None else None
