"""Ask the model to pick one tool, then run it (optionally behind approval gates)."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from editor_agent.action import Action, cancel, from_environment, lift, pure
from editor_agent.models.agent_schemas import (
    Approval,
    Approved,
    NoToolChosenError,
    Rejected,
    ToolChoice,
    ToolDecision,
    ToolNotFoundError,
)
from editor_agent.serialization import pretty_json
from editor_agent.services.llm_service import Model
from editor_agent.tools import Tool, Toolkit
from editor_agent.tools.interaction import prompt_user

logger = logging.getLogger(__name__)


def choose_tool(model: Model, prompt: str, tools: Toolkit | Iterable[Tool]) -> Action[ToolChoice]:
    """Offer ``tools`` to the model and resolve its first call.

    The toolkit is assembled eagerly, so duplicate names fail here rather
    than when the action runs.
    """
    toolkit = tools if isinstance(tools, Toolkit) else Toolkit(tools)
    wire = toolkit.to_wire()

    async def select() -> ToolChoice:
        calls = await model.choose_tool(prompt, wire)
        if not calls:
            raise NoToolChosenError("No tool was chosen")
        if len(calls) > 1:
            logger.info("Model returned %d tool calls, using the first (%s)", len(calls), calls[0].name)

        call = calls[0]
        tool = toolkit.find(call.name)
        if tool is None:
            raise ToolNotFoundError(f"Chosen tool {call.name} not found in provided tools")
        logger.debug("Calling tool %s with %s", call.name, call.arguments)
        return ToolChoice(tool=tool, input=call.arguments)

    return lift(select)


def request_approval(title: str, value: Any) -> Action[Approval]:
    """Show ``value`` read-only and ask whether to continue.

    Any answer starting with "y" approves; anything else, or dismissing the
    prompt, rejects.
    """
    show = from_environment(lambda env: env.show_message(title)).then(
        from_environment(lambda env: env.show_text(pretty_json(value), "json"))
    )
    answer = prompt_user(f"{title}. Continue?", "yes/no, y/n").map(
        lambda text: Approved(value) if text.strip().lower().startswith("y") else Rejected(text)
    )
    return show.then(answer).recover(pure(Rejected("dismissed")))


def approve(title: str, value: Any) -> Action[Any]:
    """Pass ``value`` through when approved, cancel otherwise."""
    return request_approval(title, value).bind(_unwrap_approval)


def _unwrap_approval(approval: Approval) -> Action[Any]:
    if isinstance(approval, Approved):
        return pure(approval.value)
    logger.info("Approval rejected: %s", approval.reason)
    return cancel()


def execute_choice(choice: ToolChoice, interactive: bool = False) -> Action[ToolDecision]:
    tool = choice.tool

    gated_input = approve(f"About to run {tool.name}", choice.input) if interactive else pure(choice.input)

    def gate_output(output: Any) -> Action[Any]:
        return approve(f"{tool.name} finished", output) if interactive else pure(output)

    return (
        gated_input.bind(tool.run)
        .bind(gate_output)
        .map(lambda output: ToolDecision(tool=tool, input=choice.input, output=output))
    )


def decide_tool(
    model: Model,
    prompt: str,
    tools: Toolkit | Iterable[Tool],
    interactive: bool = False,
) -> Action[ToolDecision]:
    return choose_tool(model, prompt, tools).bind(lambda choice: execute_choice(choice, interactive))
