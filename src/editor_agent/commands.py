"""Editor commands (completion, refactoring, fixes, agent) and the session running them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Iterable

from editor_agent.action import Action, ActionError, ActionResult, from_environment, lift, sequence
from editor_agent.agents.agent import Agent, StepCallback
from editor_agent.config import Settings, settings as default_settings
from editor_agent.diagnostics import diagnostic_context_to_prompt, resolve_next_problem
from editor_agent.editing import stream_append, stream_replace
from editor_agent.environment import Environment
from editor_agent.languages import LanguageRegistry, default_registry
from editor_agent.models.schemas import DiagnosticContext, Position, Range, Selection, SurroundingText
from editor_agent.prompts.prompt_layer import render_prompt
from editor_agent.services.llm_service import Model
from editor_agent.tools.interaction import prompt_user
from editor_agent.tools.navigation import (
    current_document,
    get_all_lines,
    get_cursor,
    get_selection,
    get_surrounding_lines,
)

logger = logging.getLogger(__name__)


class UnknownCommandError(ActionError):
    """Raised when running a command name that was never registered."""


class NoPreviousCommandError(ActionError):
    """Raised when repeating before any command has run."""


@dataclass(frozen=True)
class Command:
    name: str
    title: str
    action: Action[Any]


class Session:
    """Owns the command table and remembers the last command run."""

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        self._commands: dict[str, Command] = {}
        self.last: Command | None = None
        for command in commands:
            self.register(command)

    def register(self, command: Command) -> None:
        self._commands[command.name] = command

    def get(self, name: str) -> Command:
        try:
            return self._commands[name]
        except KeyError:
            raise UnknownCommandError(f"Unknown command '{name}'") from None

    def names(self) -> list[str]:
        return list(self._commands)

    def list_all(self) -> list[Command]:
        return list(self._commands.values())

    async def run(self, name: str, env: Environment) -> ActionResult[Any]:
        command = self.get(name)
        self.last = command
        logger.info("Running command %s", name)
        return await command.action.execute(env)

    async def repeat(self, env: Environment) -> ActionResult[Any]:
        if self.last is None:
            raise NoPreviousCommandError("No command has been run yet")
        logger.info("Repeating command %s", self.last.name)
        return await self.last.action.execute(env)


# --- building blocks ---

cursor_range: Action[Range] = get_cursor.map(Range.empty)

selection_range: Action[Range] = get_selection.map(lambda s: s.range)


def context_lines(target: Action[Range], lines: int | None) -> Action[SurroundingText]:
    """Text around ``target``: ``lines`` lines each way, or the whole document if None."""
    if lines is None:
        return get_all_lines(current_document, target)
    return sequence(current_document, target).bind(lambda pair: get_surrounding_lines(pair[0], pair[1], lines))


def dispatch_prompt(model: Model, prompt: str) -> Action[AsyncIterator[str]]:
    def start() -> AsyncIterator[str]:
        logger.debug("Streaming prompt:\n%s", prompt)
        return model.stream_text(prompt)

    return lift(start)


def select_line(context: DiagnosticContext) -> Action[DiagnosticContext]:
    line = context.position.line

    async def run(env: Environment) -> DiagnosticContext:
        document = await env.active_document()
        await env.set_selection(
            Selection(anchor=Position(line=line, character=0), active=document.end_of_line(line))
        )
        return context

    return from_environment(run)


# --- commands ---


def complete_at_cursor(model: Model, languages: LanguageRegistry, lines: int | None) -> Action[str]:
    return (
        sequence(context_lines(cursor_range, lines), languages.directory_context())
        .map(
            lambda pair: render_prompt(
                "complete_cursor", context=pair[1], before=pair[0].before, after=pair[0].after
            )
        )
        .bind(lambda prompt: dispatch_prompt(model, prompt))
        .bind(stream_append)
    )


def replace_selection(model: Model, languages: LanguageRegistry, lines: int | None) -> Action[str]:
    instruction = prompt_user("Enter refactoring instructions", "e.g., Optimize this code for performance")
    return (
        sequence(instruction, context_lines(selection_range, lines), languages.directory_context())
        .map(
            lambda parts: render_prompt(
                "refactor_selection",
                instruction=parts[0],
                context=parts[2],
                before=parts[1].before,
                selection=parts[1].target,
                after=parts[1].after,
            )
        )
        .bind(lambda prompt: dispatch_prompt(model, prompt))
        .bind(stream_replace)
    )


def fix_next_problem(model: Model, languages: LanguageRegistry, lines: int) -> Action[str]:
    def build(problem: DiagnosticContext) -> Action[str]:
        return sequence(context_lines(selection_range, lines), languages.directory_context()).map(
            lambda pair: render_prompt(
                "fix_problem",
                problem=diagnostic_context_to_prompt(problem),
                context=pair[1],
                before=pair[0].before,
                selection=pair[0].target,
                after=pair[0].after,
            )
        )

    return (
        resolve_next_problem.bind(select_line)
        .bind(build)
        .bind(lambda prompt: dispatch_prompt(model, prompt))
        .bind(stream_replace)
    )


def show_definitions(languages: LanguageRegistry) -> Action[str]:
    async def show(env: Environment, text: str) -> str:
        document = await env.active_document()
        await env.show_text(text or "No definitions found", document.language_id)
        return text

    return languages.directory_context().bind(lambda text: from_environment(lambda env: show(env, text)))


def default_commands(
    model: Model,
    languages: LanguageRegistry | None = None,
    settings: Settings | None = None,
    agent_model: Model | None = None,
    callback: StepCallback | None = None,
) -> list[Command]:
    languages = languages or default_registry()
    settings = settings or default_settings

    agent = Agent.run(
        agent_model or model,
        languages=languages,
        max_rounds=settings.agent_max_rounds,
        history_window=settings.agent_history_window,
        interactive=settings.agent_interactive,
        callback=callback,
    )

    return [
        Command(
            "complete",
            "Complete at cursor",
            complete_at_cursor(model, languages, settings.completion_context_lines),
        ),
        Command("complete_full", "Complete at cursor (full document)", complete_at_cursor(model, languages, None)),
        Command(
            "refactor",
            "Refactor selection",
            replace_selection(model, languages, settings.refactor_context_lines),
        ),
        Command("refactor_full", "Refactor selection (full document)", replace_selection(model, languages, None)),
        Command("fix", "Fix next problem", fix_next_problem(model, languages, settings.refactor_context_lines)),
        Command("definitions", "Show directory definitions", show_definitions(languages)),
        Command("agent", "Run agent", agent),
    ]
