"""Apply streamed model output to the active document chunk by chunk."""

from __future__ import annotations

import logging
from typing import AsyncIterable

from editor_agent.action import Action, from_environment
from editor_agent.environment import Environment

logger = logging.getLogger(__name__)


def stream_append(chunks: AsyncIterable[str]) -> Action[str]:
    """Insert each chunk at the cursor, committing it before the next one arrives."""

    async def run(env: Environment) -> str:
        written = []
        async for chunk in chunks:
            await env.insert(await env.cursor(), chunk)
            written.append(chunk)
        logger.debug("Appended %d chunks", len(written))
        return "".join(written)

    return from_environment(run)


def stream_replace(chunks: AsyncIterable[str]) -> Action[str]:
    """Replace the selection with the accumulated text after every chunk."""

    async def run(env: Environment) -> str:
        target = (await env.selection()).range
        text = ""
        async for chunk in chunks:
            text += chunk
            target = await env.replace(target, text)
        logger.debug("Replaced selection with %d characters", len(text))
        return text

    return from_environment(run)
