"""Package registry adapter."""

from .npm import DEFAULT_TAG_PREFIX, Npm, NpmError

__all__ = ["DEFAULT_TAG_PREFIX", "Npm", "NpmError"]
