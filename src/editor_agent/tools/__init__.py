"""Self-describing tools offered to the model, and name-unique toolkits."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Generic, Iterable, Iterator, NamedTuple, TypeVar

from pydantic import BaseModel

from editor_agent.action import Action, ActionError
from editor_agent.serialization import canonical_json, to_jsonable

logger = logging.getLogger(__name__)

I = TypeVar("I")
O = TypeVar("O")
X = TypeVar("X")
Y = TypeVar("Y")
P = TypeVar("P")
M = TypeVar("M", bound=BaseModel)


class DuplicateToolError(ActionError):
    """Raised when two tools with the same name are put in one toolkit."""


class Example(NamedTuple):
    input: Any
    output: Any


@dataclass(frozen=True)
class Codec(Generic[X, I]):
    """Bidirectional converter between an external type X and an internal type I.

    ``encode`` goes external -> internal, ``decode`` internal -> external.
    ``decode(encode(x)) == x`` is assumed for the values this project uses.
    """

    encode: Callable[[X], I]
    decode: Callable[[I], X]

    @classmethod
    def identity(cls) -> Codec[Any, Any]:
        return cls(encode=lambda x: x, decode=lambda x: x)


def model_codec(model: type[M]) -> Codec[dict, M]:
    """Codec between wire dicts and a pydantic model."""
    return Codec(
        encode=lambda data: data if isinstance(data, model) else model.model_validate(data),
        decode=lambda value: value.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def list_codec(inner: Codec[X, I]) -> Codec[list[X], list[I]]:
    return Codec(
        encode=lambda items: [inner.encode(item) for item in items],
        decode=lambda items: [inner.decode(item) for item in items],
    )


@dataclass(frozen=True)
class Tool(Generic[I, O]):
    name: str
    description: str
    input_schema: dict[str, Any]
    action: Callable[[I], Action[O]]
    examples: tuple[Example, ...] = field(default=())

    @classmethod
    def create(
        cls,
        name: str,
        description: str,
        input_schema: dict[str, Any],
        action: Callable[[I], Action[O]],
        examples: Iterable[tuple[Any, Any]] = (),
    ) -> Tool[I, O]:
        return cls(
            name=name,
            description=description,
            input_schema=input_schema,
            action=action,
            examples=tuple(Example(i, o) for i, o in examples),
        )

    def run(self, input: I) -> Action[O]:
        return self.action(input)

    def with_example(self, input: I, output: O) -> Tool[I, O]:
        return replace(self, examples=(*self.examples, Example(input, output)))

    def wrap(
        self,
        input_codec: Codec[X, I],
        output_codec: Codec[Y, O],
        input_schema: dict[str, Any] | None = None,
    ) -> Tool[X, Y]:
        """Expose this tool with different external input/output types."""
        action = self.action
        return Tool(
            name=self.name,
            description=self.description,
            input_schema=input_schema if input_schema is not None else self.input_schema,
            action=lambda x: action(input_codec.encode(x)).map(output_codec.decode),
            examples=tuple(
                Example(input_codec.decode(ex.input), output_codec.decode(ex.output)) for ex in self.examples
            ),
        )

    def map_action(self, f: Callable[[Action[O]], Action[P]]) -> Tool[I, P]:
        action = self.action
        return replace(self, action=lambda i: f(action(i)))

    def map(self, f: Callable[[O], P]) -> Tool[I, P]:
        return self.map_action(lambda a: a.map(f))

    def side_effect(self, f: Callable[[O], Any]) -> Tool[I, O]:
        return self.map_action(lambda a: a.side_effect(f))

    def debug(self, label: str = "") -> Tool[I, O]:
        return self.map_action(lambda a: a.debug(label or self.name))

    def describe_with_examples(self) -> str:
        lines = [self.description]
        for example in self.examples:
            lines.append(f"Input: {canonical_json(example.input)}")
            lines.append(f"Output: {canonical_json(example.output)}")
        return "\n".join(lines)

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.describe_with_examples(),
            "input_schema": to_jsonable(self.input_schema),
        }


class Toolkit:
    """Ordered set of tools offered to the model in one dispatch."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        self.register_many(tools)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise DuplicateToolError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def register_many(self, tools: Iterable[Tool]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, name: str) -> Tool:
        return self._tools[name]

    def find(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def list_all(self) -> list[Tool]:
        return list(self._tools.values())

    def to_wire(self) -> list[dict[str, Any]]:
        return [tool.to_wire() for tool in self._tools.values()]

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
