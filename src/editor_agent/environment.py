"""Abstract editor host consumed by actions and tools."""

from __future__ import annotations

from abc import ABC, abstractmethod

from editor_agent.models.schemas import (
    Diagnostic,
    Location,
    Position,
    Range,
    Selection,
    SymbolInformation,
)


class TextDocument:
    """Immutable snapshot of a buffer's text.

    Lines are split on ``\\n`` the way editors count them: ``"a\\n"`` has two
    lines, the second one empty.
    """

    def __init__(self, uri: str, text: str, language_id: str = "plaintext") -> None:
        self.uri = uri
        self.language_id = language_id
        self._text = text
        self._lines = text.split("\n")

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def line_at(self, line: int) -> str:
        return self._lines[line]

    def clamp_position(self, position: Position) -> Position:
        line = max(0, min(position.line, self.line_count - 1))
        character = max(0, min(position.character, len(self._lines[line])))
        return Position(line=line, character=character)

    def end_of_line(self, line: int) -> Position:
        return Position(line=line, character=len(self._lines[line]))

    @property
    def full_range(self) -> Range:
        return Range(start=Position(line=0, character=0), end=self.end_of_line(self.line_count - 1))

    def offset_at(self, position: Position) -> int:
        position = self.clamp_position(position)
        return sum(len(line) + 1 for line in self._lines[: position.line]) + position.character

    def position_at(self, offset: int) -> Position:
        offset = max(0, min(offset, len(self._text)))
        before = self._text[:offset]
        line = before.count("\n")
        character = offset - (before.rfind("\n") + 1)
        return Position(line=line, character=character)

    def get_text(self, range: Range | None = None) -> str:
        if range is None:
            return self._text
        return self._text[self.offset_at(range.start) : self.offset_at(range.end)]

    def word_range_at(self, position: Position) -> Range | None:
        """Range of the identifier touching ``position``, if any."""
        position = self.clamp_position(position)
        line = self._lines[position.line]
        start = end = position.character
        while start > 0 and (line[start - 1].isalnum() or line[start - 1] == "_"):
            start -= 1
        while end < len(line) and (line[end].isalnum() or line[end] == "_"):
            end += 1
        if start == end:
            return None
        return Range.of(position.line, start, position.line, end)


class Environment(ABC):
    """Editor capabilities: buffers, cursor, providers and UI.

    Implementations are used by one agent run at a time; callers never issue
    concurrent edits against the same environment.
    """

    @abstractmethod
    async def active_document(self) -> TextDocument: ...

    @abstractmethod
    async def open_document(self, uri: str) -> TextDocument: ...

    @abstractmethod
    async def selection(self) -> Selection: ...

    @abstractmethod
    async def set_selection(self, selection: Selection) -> None: ...

    async def cursor(self) -> Position:
        return (await self.selection()).active

    @abstractmethod
    async def insert(self, position: Position, text: str) -> Position:
        """Insert into the active document, returning the end of the inserted text."""

    @abstractmethod
    async def replace(self, range: Range, text: str) -> Range:
        """Replace a range of the active document, returning the new text's range."""

    @abstractmethod
    async def diagnostics(self, uri: str) -> list[Diagnostic]: ...

    @abstractmethod
    async def next_problem(self) -> None:
        """Move the cursor to the next diagnostic of the active document."""

    @abstractmethod
    async def document_symbols(self, uri: str) -> list[SymbolInformation]: ...

    @abstractmethod
    async def references(self, location: Location) -> list[Location]: ...

    @abstractmethod
    async def find_files(self, folder: str, extension: str) -> list[str]: ...

    @abstractmethod
    async def show_input_box(self, prompt: str, placeholder: str = "") -> str | None:
        """Blocking prompt. ``None`` means the user dismissed it."""

    @abstractmethod
    async def show_text(self, content: str, language: str = "json") -> None:
        """Display read-only content, e.g. a JSON tool result."""

    @abstractmethod
    async def show_message(self, message: str) -> None: ...
