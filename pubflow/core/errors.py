"""Process exit codes.

A release either fully succeeds or stops with a single non-zero status; the
CLI handler is the only place that turns a ``ReleaseError`` into one of these.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for the ``pubflow`` command.

    - 0: Release completed (a skipped or failed push is still a success)
    - 1: Any fatal validation, script, bump or publish error
    - 130: Interrupted by the user (no rollback guarantee)
    """

    OK = 0
    FAILURE = 1
    INTERRUPTED = 130

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
