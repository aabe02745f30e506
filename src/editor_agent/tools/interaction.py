"""Human-in-the-loop prompts."""

from __future__ import annotations

from editor_agent.action import Action, cancel, from_environment, pure
from editor_agent.models.schemas import PromptUserInput
from editor_agent.tools import Codec, Tool, model_codec
from editor_agent.tools.schema import object_schema, string_schema


def prompt_user(prompt: str, placeholder: str = "") -> Action[str]:
    """Ask the user for a line of text; dismissing the prompt cancels."""
    return from_environment(lambda env: env.show_input_box(prompt, placeholder)).bind(
        lambda answer: cancel() if answer is None else pure(answer)
    )


prompt_user_tool: Tool[dict, str] = Tool.create(
    "promptUser",
    "Asks the user a question and returns their answer. Use it when the goal is "
    "ambiguous or a decision needs confirmation.",
    object_schema()
    .property("prompt", string_schema().description("Question shown to the user").build())
    .property("placeholder", string_schema().description("Example answer").build())
    .required("prompt")
    .build(),
    lambda request: prompt_user(request.prompt, request.placeholder),
).wrap(model_codec(PromptUserInput), Codec.identity())
