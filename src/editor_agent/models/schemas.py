"""Host-independent editor data: positions, locations, symbols, diagnostics."""

from __future__ import annotations

from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int = Field(..., ge=0)
    character: int = Field(..., ge=0)

    def as_tuple(self) -> tuple[int, int]:
        return (self.line, self.character)

    def __lt__(self, other: Position) -> bool:
        return self.as_tuple() < other.as_tuple()

    def __le__(self, other: Position) -> bool:
        return self.as_tuple() <= other.as_tuple()

    def __gt__(self, other: Position) -> bool:
        return self.as_tuple() > other.as_tuple()

    def __ge__(self, other: Position) -> bool:
        return self.as_tuple() >= other.as_tuple()


class Range(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Position
    end: Position

    @classmethod
    def empty(cls, position: Position) -> Range:
        return cls(start=position, end=position)

    @classmethod
    def of(cls, start_line: int, start_character: int, end_line: int, end_character: int) -> Range:
        return cls(
            start=Position(line=start_line, character=start_character),
            end=Position(line=end_line, character=end_character),
        )

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def contains(self, position: Position) -> bool:
        return self.start <= position <= self.end


class Selection(BaseModel):
    """Anchor is where the selection started, active is where the cursor is."""

    model_config = ConfigDict(frozen=True)

    anchor: Position
    active: Position

    @classmethod
    def at(cls, position: Position) -> Selection:
        return cls(anchor=position, active=position)

    @property
    def range(self) -> Range:
        if self.anchor <= self.active:
            return Range(start=self.anchor, end=self.active)
        return Range(start=self.active, end=self.anchor)


class Location(BaseModel):
    """Serializable pointer into source text, chained between tool calls."""

    model_config = ConfigDict(frozen=True)

    uri: str
    range: Range

    @classmethod
    def at(cls, uri: str, position: Position) -> Location:
        return cls(uri=uri, range=Range.empty(position))


class SymbolKind(str, Enum):
    FILE = "file"
    MODULE = "module"
    CLASS = "class"
    METHOD = "method"
    PROPERTY = "property"
    FIELD = "field"
    CONSTRUCTOR = "constructor"
    ENUM = "enum"
    INTERFACE = "interface"
    FUNCTION = "function"
    VARIABLE = "variable"
    CONSTANT = "constant"


class SymbolInformation(BaseModel):
    name: str
    kind: SymbolKind
    container_name: str = ""
    location: Location


class SurroundingText(BaseModel):
    before: str
    target: str
    after: str


class SurroundingRanges(BaseModel):
    before: Range
    target: Range
    after: Range


class DiagnosticSeverity(IntEnum):
    ERROR = 0
    WARNING = 1
    INFORMATION = 2
    HINT = 3


class DiagnosticRelatedInformation(BaseModel):
    location: Location
    message: str


class Diagnostic(BaseModel):
    range: Range
    message: str
    severity: DiagnosticSeverity = DiagnosticSeverity.ERROR
    code: str | int | None = None
    source: str | None = None
    related_information: list[DiagnosticRelatedInformation] = []


class DiagnosticContext(BaseModel):
    """Snapshot of one compiler/linter finding under the cursor."""

    position: Position
    message: str
    severity: DiagnosticSeverity
    code: str | int | None = None
    source: str | None = None
    related_information: list[DiagnosticRelatedInformation] = []


# --- Tool inputs ---


class TranslateCursorInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    line_delta: int | None = Field(default=None, alias="lineDelta")
    character_delta: int | None = Field(default=None, alias="characterDelta")
    line_value: int | None = Field(default=None, alias="lineValue")
    character_value: int | None = Field(default=None, alias="characterValue")


class SurroundingContextInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    surrounding_lines: int = Field(..., ge=0, alias="surroundingLines")
    location: Location


class SymbolsListInput(BaseModel):
    locations: list[Location]


class PromptUserInput(BaseModel):
    prompt: str
    placeholder: str = ""
