"""Platform layer: subprocess execution."""

from .process import CommandRunner, ProcessError, run, verbose_runner
from .scripted import ScriptedRunner

__all__ = ["CommandRunner", "ProcessError", "ScriptedRunner", "run", "verbose_runner"]
