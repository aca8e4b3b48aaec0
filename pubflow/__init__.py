"""pubflow: one-command, rollback-safe releases for npm packages."""

__version__ = "0.3.0"
