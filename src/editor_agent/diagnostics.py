"""Next-problem navigation and repair prompts built from diagnostics."""

from __future__ import annotations

from editor_agent.action import Action, ActionResult, cancellation, success
from editor_agent.environment import Environment
from editor_agent.models.schemas import DiagnosticContext


async def _next_problem(env: Environment) -> ActionResult[DiagnosticContext]:
    await env.next_problem()

    position = await env.cursor()
    document = await env.active_document()
    for diagnostic in await env.diagnostics(document.uri):
        if diagnostic.range.contains(position):
            return success(
                DiagnosticContext(
                    position=position,
                    message=diagnostic.message,
                    severity=diagnostic.severity,
                    code=diagnostic.code,
                    source=diagnostic.source,
                    related_information=diagnostic.related_information,
                )
            )
    return cancellation()


# Moves to the next problem and extracts its context; cancelled if none.
resolve_next_problem: Action[DiagnosticContext] = Action(_next_problem)


def diagnostic_context_to_prompt(context: DiagnosticContext) -> str:
    prompt = "Resolve the following issue:\n"
    prompt += f"Message: {context.message}\n"
    prompt += f"Severity: {context.severity.name.capitalize()}\n"

    if context.code:
        prompt += f"Code: {context.code}\n"

    if context.related_information:
        prompt += "Related Information:\n"
        for info in context.related_information:
            prompt += f"- {info.message}\n"

    return prompt
