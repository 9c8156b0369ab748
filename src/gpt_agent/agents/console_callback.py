"""Rich console callback for the agent loop."""

from __future__ import annotations

from typing import Any, ContextManager

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from gpt_agent.services.response_parser import parse_json_text
from gpt_agent.tools import ToolRegistry

MAX_RESULT_LINES = 30
MAX_RESULT_CHARS = 2000


def _truncate(text: str) -> str:
    lines = text.splitlines()
    if len(lines) > MAX_RESULT_LINES or len(text) > MAX_RESULT_CHARS:
        kept = lines[:MAX_RESULT_LINES]
        truncated = "\n".join(kept)
        if len(truncated) > MAX_RESULT_CHARS:
            truncated = truncated[:MAX_RESULT_CHARS]
        omitted = len(lines) - MAX_RESULT_LINES
        if omitted > 0:
            truncated += f"\n... ({omitted} more lines)"
        return truncated
    return text


TOOL_ICONS = {
    "list_files": "📂",
    "read_file": "👁 ",
    "write_file": "✏️ ",
    "run_command": "💻",
    "make_http_request": "🌐",
    "complete_request": "✅",
}


def _format_arg_value(value: Any) -> str:
    """Format a single argument value, truncating long strings."""
    s = str(value)
    if len(s) > 120:
        return s[:120] + "..."
    return s


class ConsoleCallback:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def print_tools(self, registry: ToolRegistry) -> None:
        table = Table(title="Available tools", border_style="dim", show_lines=False)
        table.add_column("Tool", style="bold cyan", no_wrap=True)
        table.add_column("Description", style="dim")
        for tool in registry.list_all():
            icon = TOOL_ICONS.get(tool.name, "🔧")
            params = tool.parameters.get("properties", {})
            param_names = ", ".join(params.keys()) if params else ""
            table.add_row(f"{icon} {tool.name}({param_names})", tool.description)
        self.console.print(table)
        self.console.print()

    def on_step_start(self, step: int, max_steps: int) -> None:
        label = f"Step {step}/{max_steps}" if max_steps else f"Step {step}"
        self.console.rule(f"[bold blue]{label}", style="blue")

    def waiting(self, text: str) -> ContextManager:
        return self.console.status(text, spinner="line")

    def on_assistant_message(self, text: str) -> None:
        self.console.print(
            Panel(Markdown(text), title="[bold yellow]Assistant", border_style="yellow", padding=(0, 1))
        )

    def on_tool_call(self, name: str, arguments: str) -> None:
        icon = TOOL_ICONS.get(name, "🔧")
        self.console.print(f"  {icon} [bold cyan]{name}[/]")
        try:
            args = parse_json_text(arguments)
        except ValueError:
            self.console.print(f"      [red]unparsable arguments:[/] {_format_arg_value(arguments)}")
            return
        if not isinstance(args, dict):
            return
        for k, v in args.items():
            val = _format_arg_value(v)
            # Multiline values (e.g. file content) get a panel
            if "\n" in str(v):
                self.console.print(f"      [dim]{k}:[/]")
                self.console.print(
                    Panel(
                        Syntax(_truncate(str(v)), "text", theme="ansi_dark", word_wrap=True),
                        border_style="dim",
                        padding=(0, 1),
                    )
                )
            else:
                self.console.print(f"      [dim]{k}:[/] {val}")

    def on_tool_result(self, name: str, result: str) -> None:
        truncated = _truncate(result)
        self.console.print(
            Panel(
                Syntax(truncated, "text", theme="ansi_dark", word_wrap=True)
                if len(truncated) > 200
                else Text(truncated, style="dim"),
                title="[dim]result",
                border_style="dim",
                padding=(0, 1),
            )
        )

    def on_token_limit(self) -> None:
        self.console.print("[red]The conversation exceeded the model's token limit.[/red]")

    def on_finish(self, summary: str, steps: int, tool_calls: int) -> None:
        self.console.print()
        self.console.rule("[bold green]Request complete", style="green")
        self.console.print(
            Panel(
                summary or "_No summary._",
                title=f"[bold green]Summary ({steps} steps, {tool_calls} tool calls)",
                border_style="green",
                padding=(0, 1),
            )
        )
