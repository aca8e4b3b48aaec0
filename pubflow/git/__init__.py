"""Git adapter."""

from .repository import GitError, GitStatus, Repository, StatusEntry

__all__ = ["GitError", "GitStatus", "Repository", "StatusEntry"]
