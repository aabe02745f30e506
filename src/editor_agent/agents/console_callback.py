"""Rich console callback for the agent loop."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.console import Console, RenderableType
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from editor_agent.serialization import pretty_json
from editor_agent.tools import Toolkit

MAX_RESULT_LINES = 30
MAX_RESULT_CHARS = 2000
MAX_ARG_CHARS = 120

TOOL_ICONS = {
    "cursor_location": "📍",
    "translate_cursor": "↕ ",
    "symbols_list": "🏗 ",
    "references": "🔗",
    "next_problem": "⚠️ ",
    "surrounding_ctx": "👁 ",
    "directory_ctx": "📂",
    "setPlan": "📝",
    "finish": "✅",
}

# Agent bookkeeping tools, listed after the editor tools.
_CONTROL_TOOLS = ("setPlan", "finish")


def _truncate(text: str) -> str:
    lines = text.splitlines()
    if len(lines) <= MAX_RESULT_LINES and len(text) <= MAX_RESULT_CHARS:
        return text
    kept = "\n".join(lines[:MAX_RESULT_LINES])[:MAX_RESULT_CHARS]
    omitted = len(lines) - MAX_RESULT_LINES
    return kept + f"\n... ({omitted} more lines)" if omitted > 0 else kept


def _format_arg_value(value: Any) -> str:
    s = value if isinstance(value, str) else pretty_json(value)
    return s if len(s) <= MAX_ARG_CHARS else s[:MAX_ARG_CHARS] + "..."


def _is_location(value: Any) -> bool:
    return isinstance(value, dict) and "uri" in value and "range" in value


def _format_location(value: dict) -> str:
    """``file.py:12:5`` with one-based line and column, as editors print them."""
    start = value["range"]["start"]
    return f"{Path(value['uri']).name}:{start['line'] + 1}:{start['character'] + 1}"


def _render_result(result: Any) -> RenderableType:
    if isinstance(result, str):
        return Text(_truncate(result), style="dim")
    if _is_location(result):
        return Text(_format_location(result), style="cyan")
    if isinstance(result, list) and result and all(_is_location(item) for item in result):
        shown = "\n".join(_format_location(item) for item in result)
        return Text(_truncate(shown), style="cyan")
    return Syntax(_truncate(pretty_json(result)), "json", theme="ansi_dark", word_wrap=True)


class ConsoleCallback:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def print_tools(self, toolkit: Toolkit) -> None:
        table = Table(title="Available tools", border_style="dim", show_lines=False)
        table.add_column("Tool", style="bold cyan", no_wrap=True)
        table.add_column("Description", style="dim")
        tools = sorted(toolkit, key=lambda tool: tool.name in _CONTROL_TOOLS)
        for tool in tools:
            icon = TOOL_ICONS.get(tool.name, "🔧")
            params = ", ".join(tool.input_schema.get("properties", {}))
            table.add_row(f"{icon} {tool.name}({params})", tool.description)
        self.console.print(table)
        self.console.print()

    def on_round_start(self, round: int, max_rounds: int) -> None:
        self.console.rule(f"[bold blue]Round {round}/{max_rounds}", style="blue")

    def on_tool_call(self, name: str, args: Any) -> None:
        self.console.print(f"  {TOOL_ICONS.get(name, '🔧')} [bold cyan]{name}[/]")
        if not isinstance(args, dict):
            return
        for key, value in args.items():
            shown = _format_location(value) if _is_location(value) else _format_arg_value(value)
            self.console.print(f"      [dim]{key}:[/] {shown}")

    def on_tool_result(self, name: str, result: Any) -> None:
        self.console.print(Panel(_render_result(result), title="[dim]result", border_style="dim", padding=(0, 1)))

    def on_cancelled(self, name: str) -> None:
        self.console.print(f"  [yellow]{name} was cancelled, continuing[/]")

    def on_finish(self, summary: str | None, rounds: int) -> None:
        self.console.print()
        self.console.rule("[bold green]Agent finished", style="green")
        self.console.print(
            Panel(
                summary or "No summary.",
                title=f"[bold green]Result ({rounds} rounds)",
                border_style="green",
                padding=(0, 1),
            )
        )
