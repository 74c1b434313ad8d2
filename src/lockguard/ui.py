from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text

_T = TypeVar("_T")

TAG = "lockguard"


def tagged(message: str | Text, style: str) -> Text:
    """Prefix ``message`` with the colored ``[lockguard]`` tag."""
    line = Text("[")
    line.append(TAG, style=style)
    line.append("] ")
    line.append(message if isinstance(message, Text) else Text(message))
    return line


@dataclass
class Ui:
    """Terminal output: progress on stdout, warnings and errors on stderr."""

    out: Console = field(default_factory=Console)
    err: Console = field(default_factory=lambda: Console(stderr=True))

    def info(self, message: str | Text) -> None:
        self.out.print(tagged(message, "green"), soft_wrap=True)

    def warn(self, message: str | Text) -> None:
        self.err.print(tagged(message, "yellow"), soft_wrap=True)

    def error(self, message: str | Text) -> None:
        self.err.print(tagged(message, "red"), soft_wrap=True)

    def alert(self, message: str | Text) -> None:
        """Red-tagged line on stdout, for messages the user must read."""
        self.out.print(tagged(message, "red"), soft_wrap=True)

    def blank(self, *, err: bool = False) -> None:
        (self.err if err else self.out).print()


@dataclass(frozen=True)
class Spinner:
    message: str
    console: Console

    def run(self, fn: Callable[[], _T]) -> _T:
        if not self.console.is_terminal:
            return fn()

        with Progress(
            SpinnerColumn(style="green"),
            TextColumn("{task.description}"),
            transient=True,
            console=self.console,
        ) as prog:
            task_id = prog.add_task(self.message, total=None)
            try:
                return fn()
            finally:
                prog.update(task_id, completed=1)


def configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )
