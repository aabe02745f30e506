"""Multi-round agent: plan, call one tool per round, finish.

A goal such as "add an optional ``should_retry`` callback to this method"
typically unfolds as: locate the cursor, read the surrounding code and the
definitions in the directory, set a plan, look up references, and finally
call ``finish`` with a summary of what was done.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from editor_agent.action import Action, fail, lift, pure
from editor_agent.dispatch import choose_tool, execute_choice
from editor_agent.languages import LanguageRegistry, default_registry
from editor_agent.models.agent_schemas import (
    AgentResult,
    FinishInput,
    HistoryEntry,
    MaxRoundsError,
    PlanInput,
    Step,
    StepType,
    ToolChoice,
    ToolDecision,
)
from editor_agent.prompts.prompt_layer import render_prompt, tag
from editor_agent.serialization import canonical_json, to_jsonable
from editor_agent.services.llm_service import Model
from editor_agent.tools import Codec, Tool, Toolkit, model_codec
from editor_agent.tools.interaction import prompt_user
from editor_agent.tools.navigation import create_navigation_tools
from editor_agent.tools.schema import object_schema, string_schema

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 4
DEFAULT_HISTORY_WINDOW = 6


class StepCallback(Protocol):
    def on_round_start(self, round: int, max_rounds: int) -> None: ...
    def on_tool_call(self, name: str, args: Any) -> None: ...
    def on_tool_result(self, name: str, result: Any) -> None: ...
    def on_cancelled(self, name: str) -> None: ...
    def on_finish(self, summary: str | None, rounds: int) -> None: ...


class NullCallback:
    def on_round_start(self, round: int, max_rounds: int) -> None: ...
    def on_tool_call(self, name: str, args: Any) -> None: ...
    def on_tool_result(self, name: str, result: Any) -> None: ...
    def on_cancelled(self, name: str) -> None: ...
    def on_finish(self, summary: str | None, rounds: int) -> None: ...


set_plan_tool: Tool[dict, dict] = Tool.create(
    "setPlan",
    "Set (create or update) a plan of steps to accomplish the given goal",
    object_schema().property("plan", string_schema().build()).required("plan").build(),
    pure,
).with_example(
    PlanInput(plan="To get the square of double the input, first multiply it by two then multiply that by itself."),
    PlanInput(plan="To get the square of double the input, first multiply it by two then multiply that by itself."),
).wrap(model_codec(PlanInput), model_codec(PlanInput))

finish_tool: Tool[dict, Step] = Tool.create(
    "finish",
    "Indicate that the agent has completed its task",
    object_schema().property("summary", string_schema().build()).build(),
    lambda request: pure(Step(StepType.FINISHED, request.summary)),
).wrap(model_codec(FinishInput), Codec.identity())


def tag_steps(kind: StepType, *tools: Tool) -> list[Tool]:
    """Wrap each tool's output in a ``Step`` of the given kind."""
    return [tool.map(lambda value: Step(kind, value)) for tool in tools]


class Agent:
    def __init__(
        self,
        goal: str,
        model: Model,
        languages: LanguageRegistry | None = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        interactive: bool = False,
        callback: StepCallback | None = None,
    ) -> None:
        self.goal = goal
        self.model = model
        self.languages = languages or default_registry()
        self.max_rounds = max_rounds
        self.history_window = history_window
        self.interactive = interactive
        self.cb: StepCallback = callback or NullCallback()

        self.rounds = 0
        self.plan = ""
        self.summary: str | None = None
        self.history: list[HistoryEntry] = []
        self.toolkit = self._build_toolkit()

    def _build_toolkit(self) -> Toolkit:
        intermediates = tag_steps(
            StepType.INTERMEDIATE,
            *create_navigation_tools(self.languages),
            set_plan_tool,
        )
        return Toolkit([*intermediates, finish_tool.debug("Finished tool")])

    def _set_plan(self, output: dict) -> None:
        self.plan = output["plan"]
        logger.info("Plan updated: %s", self.plan)

    def _render_history(self) -> str:
        window = self.history[-self.history_window :] if self.history_window > 0 else []
        messages = []
        for entry in window:
            attrs = {"actor": entry.actor, "tool": entry.tool or ""}
            if entry.cancelled:
                attrs["cancelled"] = "true"
            body = f"<input>{canonical_json(entry.input)}</input><output>{canonical_json(entry.output)}</output>"
            messages.append(tag("message", body, **attrs))
        return "".join(messages)

    def prompt(self) -> Action[str]:
        def render() -> str:
            text = render_prompt(
                "agent",
                goal=tag("goal", self.goal),
                plan=tag("plan", self.plan),
                history=self._render_history(),
            )
            logger.debug("Agent prompt:\n%s", text)
            return text

        return lift(render)

    def _start_round(self) -> bool:
        self.rounds += 1
        if self.rounds > self.max_rounds:
            return False
        self.cb.on_round_start(self.rounds, self.max_rounds)
        return True

    def step(self) -> Action[ToolDecision]:
        """One round: check the budget, dispatch, record the call."""
        return (
            lift(self._start_round)
            .bind(lambda within: pure(None) if within else fail("Max rounds reached", MaxRoundsError))
            .then(self.prompt())
            .bind(lambda prompt: choose_tool(self.model, prompt, self.toolkit))
            .bind(self._execute)
            .side_effect(self._record)
        )

    def _execute(self, choice: ToolChoice) -> Action[ToolDecision]:
        self.cb.on_tool_call(choice.tool.name, choice.input)
        cancelled = ToolDecision(
            tool=choice.tool,
            input=choice.input,
            output=Step(StepType.INTERMEDIATE, None),
            cancelled=True,
        )
        return execute_choice(choice, self.interactive).recover(pure(cancelled))

    def _record(self, decision: ToolDecision) -> None:
        name = decision.tool.name
        self.history.append(
            HistoryEntry(
                actor="assistant",
                tool=name,
                input=to_jsonable(decision.input),
                output=None if decision.cancelled else to_jsonable(decision.output.value),
                cancelled=decision.cancelled,
            )
        )
        if decision.cancelled:
            logger.info("Round %d: %s was cancelled", self.rounds, name)
            self.cb.on_cancelled(name)
            return
        if name == set_plan_tool.name:
            # Applied only once the round has survived both approval gates.
            self._set_plan(decision.output.value)
        self.cb.on_tool_result(name, decision.output.value)
        if decision.output.finished:
            self.summary = decision.output.value
            self.cb.on_finish(self.summary, self.rounds)

    def recurse(self) -> Action[AgentResult]:
        return self.step().bind(
            lambda decision: pure(self.result()) if decision.output.finished else self.recurse()
        )

    def result(self) -> AgentResult:
        return AgentResult(
            goal=self.goal,
            plan=self.plan,
            rounds=self.rounds,
            summary=self.summary,
            history=list(self.history),
        )

    @classmethod
    def run(cls, model: Model, goal: str | None = None, **opts: Any) -> Action[AgentResult]:
        """Run to completion, asking the user for a goal when none is given."""
        goal_action = (
            pure(goal)
            if goal
            else prompt_user("Enter goal", "e.g., Add an optional argument and update its callers")
        )
        return goal_action.bind(lambda g: cls(g, model, **opts).recurse())
