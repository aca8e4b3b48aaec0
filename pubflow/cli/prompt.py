from __future__ import annotations

from collections.abc import Callable

import typer

from pubflow.cli.selector import SelectorOption, is_interactive_terminal, select_one
from pubflow.output.console import ConsoleProtocol, Style
from pubflow.release.resolver import VersionChoice

OTHER = "__other__"


class TerminalDecider:
    """Ask for the next version in the terminal.

    Uses the arrow-key selector on a TTY and a numbered menu otherwise. The
    last entry switches to free text, validated until acceptable.
    """

    def __init__(self, console: ConsoleProtocol, *, interactive: bool | None = None) -> None:
        self._console = console
        self._interactive = is_interactive_terminal() if interactive is None else interactive

    def decide(
        self,
        choices: list[VersionChoice],
        *,
        validate: Callable[[str], str | None],
    ) -> str | None:
        try:
            picked = self._pick(choices)
            if picked != OTHER:
                return picked
            return self._free_text(validate)
        except typer.Abort:
            return None

    def _pick(self, choices: list[VersionChoice]) -> str | None:
        if self._interactive:
            options = [SelectorOption(value=c.keyword, label=c.keyword, detail=str(c.version)) for c in choices]
            options.append(SelectorOption(value=OTHER, label="Other (specify)"))
            result = select_one(title="Select semver increment or specify new version", options=options)
            return result.value if result.action == "select" else None

        self._console.print("Select semver increment or specify new version", Style.BOLD)
        for i, choice in enumerate(choices, start=1):
            self._console.print(f"  {i}. {choice.keyword:<11} {choice.preview}")
        other_index = len(choices) + 1
        self._console.print(f"  {other_index}. Other (specify)")

        while True:
            answer = typer.prompt("Choice", default="1").strip()
            if answer.isdigit() and 1 <= int(answer) <= other_index:
                index = int(answer)
                return OTHER if index == other_index else choices[index - 1].keyword
            if answer in {c.keyword for c in choices}:
                return answer
            self._console.error(f"enter a number between 1 and {other_index}")

    def _free_text(self, validate: Callable[[str], str | None]) -> str | None:
        while True:
            answer = typer.prompt("Version").strip()
            if not answer:
                return None
            problem = validate(answer)
            if problem is None:
                return answer
            self._console.error(problem)
