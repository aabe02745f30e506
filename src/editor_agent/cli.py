import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.syntax import Syntax

app = typer.Typer(name="editor-agent", help="LLM coding assistant operating on an editor buffer.")
console = Console()
logger = logging.getLogger(__name__)

FILE_OPTION = typer.Option(..., "-f", "--file", help="File to open as the active document")
LINE_OPTION = typer.Option(0, "--line", "-l", help="Cursor line (0-based)")
CHARACTER_OPTION = typer.Option(0, "--character", "-c", help="Cursor character (0-based)")
END_LINE_OPTION = typer.Option(None, "--end-line", help="Selection end line (0-based); selection starts at the cursor")
END_CHARACTER_OPTION = typer.Option(None, "--end-character", help="Selection end character (0-based)")
DRY_RUN_OPTION = typer.Option(False, "--dry-run", help="Don't write files, only show what would change")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable detailed logging")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s | %(levelname)s | %(message)s")


def _build_environment(
    file: Path,
    line: int,
    character: int,
    end_line: int | None,
    end_character: int | None,
):
    from editor_agent.config import settings
    from editor_agent.models.schemas import Position, Selection
    from editor_agent.services.local_environment import LocalEnvironment

    cursor = Position(line=line, character=character)
    selection = Selection.at(cursor)
    if end_line is not None:
        selection = Selection(anchor=cursor, active=Position(line=end_line, character=end_character or 0))

    return LocalEnvironment(
        file,
        selection=selection,
        console=console,
        exclude_patterns=settings.exclude_patterns,
        max_reference_results=settings.max_reference_results,
        max_file_size_kb=settings.max_file_size_kb,
    )


def _build_session(max_rounds: int = 0, interactive: bool = False, goal: str = "", show_tools: bool = False):
    """Session with the default commands, backed by LLMService."""
    from editor_agent.agents.agent import Agent
    from editor_agent.agents.console_callback import ConsoleCallback
    from editor_agent.commands import Command, Session, default_commands
    from editor_agent.config import get_model_config, settings
    from editor_agent.languages import default_registry
    from editor_agent.services.llm_service import LLMService

    overrides: dict = {}
    if max_rounds:
        overrides["agent_max_rounds"] = max_rounds
    if interactive:
        overrides["agent_interactive"] = True
    run_settings = settings.model_copy(update=overrides)

    languages = default_registry()
    model = LLMService(get_model_config("completion"))
    agent_model = LLMService(get_model_config("agent"))
    callback = ConsoleCallback(console)
    if show_tools:
        callback.print_tools(Agent(goal, agent_model, languages=languages).toolkit)

    session = Session(
        default_commands(model, languages, run_settings, agent_model=agent_model, callback=callback)
    )
    if goal:
        session.register(
            Command(
                "agent",
                "Run agent",
                Agent.run(
                    agent_model,
                    goal=goal,
                    languages=languages,
                    max_rounds=run_settings.agent_max_rounds,
                    history_window=run_settings.agent_history_window,
                    interactive=run_settings.agent_interactive,
                    callback=callback,
                ),
            )
        )
    return session


def _execute(session, env, name: str | None) -> bool:
    """Run a command (or repeat the last one when ``name`` is None). False on failure."""
    from editor_agent.action import ActionError, Cancelled

    try:
        if name is None:
            result = asyncio.run(session.repeat(env))
        else:
            result = asyncio.run(session.run(name, env))
    except (ActionError, ValueError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]{e}[/red]")
        return False

    if isinstance(result, Cancelled):
        console.print("[yellow]Operation was cancelled[/yellow]")
    return True


def _finalize(env, dry_run: bool) -> None:
    if dry_run:
        for uri in env.modified():
            document = asyncio.run(env.open_document(uri))
            console.print(f"\n[bold cyan]--- {uri} (would write) ---[/bold cyan]")
            console.print(Syntax(document.text, document.language_id, theme="ansi_dark", line_numbers=True))
        return
    for uri in env.save():
        console.print(f"[green]Written: {uri}[/green]")


def _run_single(
    name: str,
    file: Path,
    line: int,
    character: int,
    end_line: int | None,
    end_character: int | None,
    dry_run: bool,
    verbose: bool,
    **session_opts,
) -> None:
    _configure_logging(verbose)
    try:
        env = _build_environment(file, line, character, end_line, end_character)
    except OSError as e:
        console.print(f"[red]Cannot open {file}: {e.strerror or e}[/red]")
        raise typer.Exit(1)
    session = _build_session(**session_opts)
    if dry_run:
        console.print("[yellow]Dry run mode: no files will be written.[/yellow]")

    if not _execute(session, env, name):
        raise typer.Exit(1)
    _finalize(env, dry_run)


@app.command()
def agent(
    file: Path = FILE_OPTION,
    goal: str = typer.Option("", "--goal", "-g", help="Goal for the agent (prompted when omitted)"),
    max_rounds: int = typer.Option(0, "--max-rounds", help="Max agent rounds (0 = use config)"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Approve every tool input and output"),
    line: int = LINE_OPTION,
    character: int = CHARACTER_OPTION,
    end_line: Optional[int] = END_LINE_OPTION,
    end_character: Optional[int] = END_CHARACTER_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Pursue a goal over several rounds of tool calls."""
    _run_single(
        "agent", file, line, character, end_line, end_character, dry_run, verbose,
        max_rounds=max_rounds, interactive=interactive, goal=goal, show_tools=True,
    )


@app.command()
def complete(
    file: Path = FILE_OPTION,
    full: bool = typer.Option(False, "--full", help="Use the whole document as context"),
    line: int = LINE_OPTION,
    character: int = CHARACTER_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Stream a continuation of the code at the cursor."""
    name = "complete_full" if full else "complete"
    _run_single(name, file, line, character, None, None, dry_run, verbose)


@app.command()
def refactor(
    file: Path = FILE_OPTION,
    full: bool = typer.Option(False, "--full", help="Use the whole document as context"),
    line: int = LINE_OPTION,
    character: int = CHARACTER_OPTION,
    end_line: Optional[int] = END_LINE_OPTION,
    end_character: Optional[int] = END_CHARACTER_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Rewrite the selection following an instruction."""
    name = "refactor_full" if full else "refactor"
    _run_single(name, file, line, character, end_line, end_character, dry_run, verbose)


@app.command()
def fix(
    file: Path = FILE_OPTION,
    line: int = LINE_OPTION,
    character: int = CHARACTER_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Jump to the next problem after the cursor and rewrite its line."""
    _run_single("fix", file, line, character, None, None, dry_run, verbose)


@app.command()
def definitions(
    file: Path = FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show the definitions found around the file."""
    _run_single("definitions", file, 0, 0, None, None, True, verbose)


@app.command()
def shell(
    file: Path = FILE_OPTION,
    line: int = LINE_OPTION,
    character: int = CHARACTER_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Interactive loop: run commands against one buffer, save on exit."""
    from editor_agent.models.schemas import Position, Selection

    _configure_logging(verbose)
    env = _build_environment(file, line, character, None, None)
    session = _build_session()

    console.print(f"[bold]Commands:[/bold] {', '.join(session.names())}")
    console.print("[dim]Also: goto LINE CHAR, select LINE CHAR LINE CHAR, repeat, quit[/dim]")

    while True:
        try:
            raw = console.input("[bold blue]>[/] ").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if not raw:
            continue
        name, *args = raw.split()
        if name in ("quit", "exit"):
            break
        if name in ("goto", "select"):
            try:
                numbers = [int(a) for a in args]
                start = Position(line=numbers[0], character=numbers[1])
                end = Position(line=numbers[2], character=numbers[3]) if name == "select" else start
            except (ValueError, IndexError):
                console.print(f"[red]Usage: {name} LINE CHAR{' LINE CHAR' if name == 'select' else ''}[/red]")
                continue
            asyncio.run(env.set_selection(Selection(anchor=start, active=end)))
            continue
        _execute(session, env, None if name == "repeat" else name)

    _finalize(env, dry_run)


if __name__ == "__main__":
    app()
