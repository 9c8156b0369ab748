"""Line-oriented prompts on the terminal."""

from __future__ import annotations

from typing import Callable

from rich.console import Console
from rich.prompt import Confirm

_console = Console()

END_OF_INPUT = "."


def _default_reader(console: Console) -> Callable[[], str]:
    return lambda: console.input()


def ask_single_line(
    question: str,
    allow_empty: bool = False,
    trim: bool = True,
    console: Console | None = None,
    read_line: Callable[[], str] | None = None,
) -> str:
    """Prompt until a non-empty answer is given (unless ``allow_empty``)."""
    console = console or _console
    read_line = read_line or _default_reader(console)
    while True:
        console.print(f"{question} [dim](respond and hit enter)[/dim]:")
        result = read_line()
        if trim:
            result = result.strip()
        if result == "" and not allow_empty:
            console.print("<empty response not allowed>\n", markup=False)
            continue
        return result


def ask_multi_line(
    question: str,
    console: Console | None = None,
    read_line: Callable[[], str] | None = None,
) -> str:
    """Collect lines until one consisting of a single dot."""
    console = console or _console
    read_line = read_line or _default_reader(console)
    console.print(f"{question} [dim](end with a single dot on a line)[/dim]:")
    lines: list[str] = []
    while True:
        line = read_line()
        if line == END_OF_INPUT:
            return "\n".join(lines)
        lines.append(line)


def confirm(question: str, console: Console | None = None) -> bool:
    return Confirm.ask(question, console=console or _console, default=False)
