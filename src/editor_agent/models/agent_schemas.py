"""Models for the agent loop and model dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar, Union

from pydantic import BaseModel

from editor_agent.action import ActionError

if TYPE_CHECKING:
    from editor_agent.tools import Tool

O = TypeVar("O")
V = TypeVar("V")


class StepType(str, Enum):
    INTERMEDIATE = "intermediate"
    FINISHED = "finished"


@dataclass(frozen=True)
class Step(Generic[O]):
    """Tags a tool output so the loop knows whether to keep going."""

    kind: StepType
    value: O

    @property
    def finished(self) -> bool:
        return self.kind is StepType.FINISHED


class ToolCall(BaseModel):
    id: str = ""
    name: str
    arguments: dict = {}


@dataclass(frozen=True)
class ToolChoice:
    """A model-selected tool with its raw input, not yet executed."""

    tool: Tool
    input: Any


@dataclass(frozen=True)
class ToolDecision:
    tool: Tool
    input: Any
    output: Step[Any]
    cancelled: bool = False


@dataclass(frozen=True)
class Approved(Generic[V]):
    value: V


@dataclass(frozen=True)
class Rejected:
    reason: str = ""


Approval = Union[Approved[V], Rejected]


class HistoryEntry(BaseModel):
    actor: Literal["system", "user", "assistant"]
    tool: str | None = None
    input: Any = None
    output: Any = None
    cancelled: bool = False


class PlanInput(BaseModel):
    plan: str


class FinishInput(BaseModel):
    summary: str | None = None


class AgentResult(BaseModel):
    goal: str
    plan: str
    rounds: int
    summary: str | None = None
    history: list[HistoryEntry]


class MaxRoundsError(ActionError):
    """Raised when the agent exceeds its round budget."""


class NoToolChosenError(ActionError):
    """Raised when the model response contains no tool call."""


class ToolNotFoundError(ActionError):
    """Raised when the model names a tool absent from the toolkit."""
