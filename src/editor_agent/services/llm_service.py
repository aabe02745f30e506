from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Protocol

from openai import AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from editor_agent.config import ModelConfig, get_model_config, settings
from editor_agent.models.agent_schemas import ToolCall
from editor_agent.prompts.prompt_layer import load_prompt

logger = logging.getLogger(__name__)


class Model(Protocol):
    """Language-model capability: pick a tool, or stream free text."""

    async def choose_tool(self, prompt: str, tools: list[dict[str, Any]]) -> list[ToolCall]: ...

    def stream_text(self, prompt: str) -> AsyncIterator[str]: ...


def _create_openai_client(base_url: str = "") -> AsyncOpenAI:
    """Create an async OpenAI client, optionally wrapped with PromptLayer."""
    url = base_url or settings.llm_base_url
    if settings.promptlayer_api_key:
        from promptlayer import PromptLayer

        promptlayer_client = PromptLayer(api_key=settings.promptlayer_api_key)
        return promptlayer_client.openai.AsyncOpenAI(
            api_key=settings.llm_api_key,
            base_url=url,
        )
    return AsyncOpenAI(
        api_key=settings.llm_api_key,
        base_url=url,
    )


def to_openai_tool(tool: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool["name"],
            "description": tool["description"],
            "parameters": tool["input_schema"],
        },
    }


def parse_tool_calls(message: Any) -> list[ToolCall]:
    calls: list[ToolCall] = []
    for tc in message.tool_calls or []:
        try:
            arguments = json.loads(tc.function.arguments or "{}")
        except json.JSONDecodeError:
            logger.warning("Malformed arguments for tool '%s': %r", tc.function.name, tc.function.arguments)
            arguments = {}
        calls.append(ToolCall(id=tc.id, name=tc.function.name, arguments=arguments))
    return calls


class LLMService:
    def __init__(self, config: ModelConfig | None = None) -> None:
        if config is None:
            config = get_model_config()
        self._config = config
        self.client = _create_openai_client(config.base_url)
        self.model = config.model or settings.llm_model
        self._temperature = config.temperature
        self._max_tokens = config.max_tokens

    def _get_temperature(self) -> float:
        return self._temperature if self._temperature is not None else 0.2

    def _base_kwargs(self, messages: list[dict], tag: str) -> dict:
        kwargs: dict = {
            "model": self.model,
            "messages": messages,
            "temperature": self._get_temperature(),
        }
        if self._max_tokens is not None:
            kwargs["max_tokens"] = self._max_tokens
        if settings.promptlayer_api_key:
            kwargs["pl_tags"] = ["editor-agent", tag]
        return kwargs

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=2, max=30), reraise=True)
    async def choose_tool(self, prompt: str, tools: list[dict[str, Any]]) -> list[ToolCall]:
        messages = [
            {"role": "system", "content": load_prompt("tool_system")},
            {"role": "user", "content": prompt},
        ]
        kwargs = self._base_kwargs(messages, "choose-tool")
        kwargs["tools"] = [to_openai_tool(t) for t in tools]
        kwargs["tool_choice"] = "required"

        response = await self.client.chat.completions.create(**kwargs)
        calls = parse_tool_calls(response.choices[0].message)
        logger.debug("Model chose %s", [c.name for c in calls])
        return calls

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        messages = [
            {"role": "system", "content": load_prompt("system")},
            {"role": "user", "content": prompt},
        ]
        kwargs = self._base_kwargs(messages, "stream-text")
        kwargs["stream"] = True

        stream = await self._open_stream(kwargs)
        async for chunk in stream:
            if not chunk.choices:
                continue
            text = chunk.choices[0].delta.content
            if text:
                yield text

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=2, max=30), reraise=True)
    async def _open_stream(self, kwargs: dict) -> Any:
        return await self.client.chat.completions.create(**kwargs)
