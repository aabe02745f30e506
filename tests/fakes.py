"""Test doubles shared by the test modules."""

from __future__ import annotations

import io
from pathlib import Path

from rich.console import Console

from editor_agent.models.agent_schemas import ToolCall
from editor_agent.models.schemas import Selection
from editor_agent.services.local_environment import LocalEnvironment


class ScriptedEnvironment(LocalEnvironment):
    """LocalEnvironment whose prompts are answered from a script.

    ``None`` in ``answers`` behaves like dismissing the input box.
    """

    def __init__(self, path: Path, answers=(), selection: Selection | None = None, **kwargs) -> None:
        super().__init__(
            path,
            work_dir=path.parent,
            selection=selection,
            console=Console(file=io.StringIO()),
            **kwargs,
        )
        self.answers = list(answers)
        self.prompts: list[str] = []
        self.shown: list[str] = []
        self.messages: list[str] = []

    async def show_input_box(self, prompt: str, placeholder: str = "") -> str | None:
        self.prompts.append(prompt)
        return self.answers.pop(0)

    async def show_text(self, content: str, language: str = "json") -> None:
        self.shown.append(content)

    async def show_message(self, message: str) -> None:
        self.messages.append(message)


def make_env(tmp_path: Path, text: str, name: str = "main.py", **kwargs) -> ScriptedEnvironment:
    path = tmp_path / name
    path.write_text(text)
    return ScriptedEnvironment(path, **kwargs)


def call(name: str, **arguments) -> list[ToolCall]:
    return [ToolCall(id=f"call_{name}", name=name, arguments=arguments)]


class FakeModel:
    """Model returning scripted tool calls and streaming fixed chunks."""

    def __init__(self, responses=(), chunks=(), repeat_last: bool = False) -> None:
        self.responses = list(responses)
        self.chunks = list(chunks)
        self.repeat_last = repeat_last
        self.prompts: list[str] = []
        self.tools: list[list[dict]] = []
        self.stream_prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def choose_tool(self, prompt: str, tools: list[dict]) -> list[ToolCall]:
        self.prompts.append(prompt)
        self.tools.append(tools)
        if self.repeat_last and len(self.responses) == 1:
            return self.responses[0]
        return self.responses.pop(0)

    async def stream_text(self, prompt: str):
        self.stream_prompts.append(prompt)
        for chunk in self.chunks:
            yield chunk
