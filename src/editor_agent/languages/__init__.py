"""Registry of language-specific directory context resolvers."""

from __future__ import annotations

import logging

from editor_agent.action import Action, ActionError, fail, from_environment, pure
from editor_agent.environment import Environment
from editor_agent.languages import python

logger = logging.getLogger(__name__)


class UnsupportedLanguageError(ActionError):
    """Raised when no directory context resolver exists for a language."""


class LanguageRegistry:
    """Maps editor language ids to actions producing a definitions summary."""

    def __init__(self) -> None:
        self._resolvers: dict[str, Action[str]] = {}

    def register(self, language_id: str, resolver: Action[str]) -> None:
        self._resolvers[language_id] = resolver

    def lookup(self, language_id: str) -> Action[str] | None:
        return self._resolvers.get(language_id)

    def languages(self) -> list[str]:
        return list(self._resolvers)

    def resolve(self, language_id: str) -> Action[str]:
        resolver = self.lookup(language_id)
        if resolver is None:
            return fail(f"language {language_id} unsupported for context lookups", UnsupportedLanguageError)
        return resolver

    def directory_context(self) -> Action[str]:
        """Definitions around the active document, or "" if its language is unsupported."""
        return (
            from_environment(_active_language)
            .bind(self.resolve)
            .or_else(pure(""))
        )


async def _active_language(env: Environment) -> str:
    return (await env.active_document()).language_id


def default_registry() -> LanguageRegistry:
    registry = LanguageRegistry()
    registry.register(python.LANGUAGE_ID, python.find_definitions)
    return registry
