"""Navigation tools: cursor, symbols, references, problems and surrounding text."""

from __future__ import annotations

import logging
from typing import Any

from editor_agent.action import Action, cancel, from_environment, pure, sequence, traverse
from editor_agent.diagnostics import resolve_next_problem
from editor_agent.environment import TextDocument
from editor_agent.languages import LanguageRegistry
from editor_agent.models.schemas import (
    DiagnosticContext,
    Location,
    Position,
    Range,
    Selection,
    SurroundingContextInput,
    SurroundingRanges,
    SurroundingText,
    SymbolInformation,
    SymbolsListInput,
    TranslateCursorInput,
)
from editor_agent.tools import Codec, Tool, list_codec, model_codec
from editor_agent.tools.schema import (
    array_schema,
    empty_schema,
    integer_schema,
    object_schema,
    string_schema,
)

logger = logging.getLogger(__name__)

# --- Helper actions ---

get_cursor: Action[Position] = from_environment(lambda env: env.cursor())

get_selection: Action[Selection] = from_environment(lambda env: env.selection())

current_document: Action[TextDocument] = from_environment(lambda env: env.active_document())


def get_document(uri: str) -> Action[TextDocument]:
    return from_environment(lambda env: env.open_document(uri))


def clamp_position(position: Position, document: TextDocument) -> Position:
    return document.clamp_position(position)


def surrounding_line_ranges(document: TextDocument, target: Range, n: int) -> SurroundingRanges:
    """Ranges covering up to ``n`` whole lines on each side of ``target.start``."""
    start_line = max(0, target.start.line - n)
    end_line = min(document.line_count - 1, target.start.line + n)

    start = clamp_position(Position(line=start_line, character=0), document)
    end = clamp_position(document.end_of_line(end_line), document)

    after = Range(start=target.end, end=end) if target.end <= end else Range.empty(target.end)
    return SurroundingRanges(
        before=Range(start=start, end=target.start),
        target=target,
        after=after,
    )


def resolve_surrounding_text(document: TextDocument, ranges: SurroundingRanges) -> SurroundingText:
    return SurroundingText(
        before=document.get_text(ranges.before),
        target=document.get_text(ranges.target),
        after=document.get_text(ranges.after),
    )


def get_surrounding_lines(document: TextDocument, target: Range, n: int) -> Action[SurroundingText]:
    return pure(surrounding_line_ranges(document, target, n)).map(
        lambda ranges: resolve_surrounding_text(document, ranges)
    )


def get_all_lines(document: Action[TextDocument], target: Action[Range]) -> Action[SurroundingText]:
    """Split the whole document into text before, inside and after ``target``."""

    def split(pair: tuple[TextDocument, Range]) -> SurroundingText:
        doc, r = pair
        full = doc.full_range
        return SurroundingText(
            before=doc.get_text(Range(start=full.start, end=r.start)),
            target=doc.get_text(r),
            after=doc.get_text(Range(start=r.end, end=full.end)),
        )

    return document.and_(target).map(split)


location_at_cursor: Action[Location] = sequence(get_cursor, current_document).map(
    lambda pair: Location.at(pair[1].uri, pair[0])
)


def translate_position(position: Position, request: TranslateCursorInput) -> Position | None:
    """Deltas are applied first, then absolute values override per axis.

    Returns None when the result would fall before the start of the document.
    """
    line, character = position.line, position.character
    if request.line_delta is not None or request.character_delta is not None:
        line += request.line_delta or 0
        character += request.character_delta or 0
    if request.line_value is not None:
        line = request.line_value
    if request.character_value is not None:
        character = request.character_value
    if line < 0 or character < 0:
        return None
    return Position(line=line, character=character)


# --- Schemas ---


def position_schema() -> dict[str, Any]:
    return (
        object_schema()
        .property("line", integer_schema().minimum(0).build())
        .property("character", integer_schema().minimum(0).build())
        .required("line", "character")
        .build()
    )


def range_schema() -> dict[str, Any]:
    return (
        object_schema()
        .property("start", position_schema())
        .property("end", position_schema())
        .required("start", "end")
        .build()
    )


def location_schema() -> dict[str, Any]:
    return (
        object_schema()
        .property("uri", string_schema().description("Absolute file path").build())
        .property("range", range_schema())
        .required("uri", "range")
        .build()
    )


# --- Tools ---


def create_navigation_tools(languages: LanguageRegistry) -> list[Tool]:
    location = model_codec(Location)
    identity = Codec.identity()

    def translate_cursor(request: TranslateCursorInput) -> Action[Location]:
        def locate(pair: tuple[Position, TextDocument]) -> Action[Location]:
            cursor, document = pair
            target = translate_position(cursor, request)
            if target is None:
                logger.info("Cursor translation from %s by %s is out of bounds", cursor, request)
                return cancel()
            return pure(Location.at(document.uri, target))

        return sequence(get_cursor, current_document).bind(locate)

    def symbols_list(request: SymbolsListInput) -> Action[list[list[SymbolInformation]]]:
        return traverse(
            request.locations,
            lambda loc: from_environment(lambda env: env.document_symbols(loc.uri)),
        )

    def references(loc: Location) -> Action[list[Location]]:
        return from_environment(lambda env: env.references(loc))

    def surrounding_ctx(request: SurroundingContextInput) -> Action[SurroundingText]:
        target = request.location.range
        return get_document(request.location.uri).bind(
            lambda doc: get_surrounding_lines(doc, target, request.surrounding_lines)
        )

    cursor_location_tool = Tool.create(
        "cursor_location",
        "Retrieves the current cursor position within the active text editor. "
        "Returns a Location containing the file URI and the precise cursor position (line and character).",
        empty_schema(),
        lambda _: location_at_cursor,
    ).wrap(identity, location)

    translate_cursor_tool = (
        Tool.create(
            "translate_cursor",
            "Computes a new cursor location from the current one using deltas or absolute values "
            "for line and character. Deltas are applied first; absolute values take precedence.",
            object_schema()
            .property("lineDelta", integer_schema().build())
            .property("characterDelta", integer_schema().build())
            .property("lineValue", integer_schema().minimum(0).build())
            .property("characterValue", integer_schema().minimum(0).build())
            .build(),
            translate_cursor,
        )
        .with_example(
            TranslateCursorInput(line_delta=-2),
            Location.at("/home/user/project/main.py", Position(line=8, character=4)),
        )
        .wrap(model_codec(TranslateCursorInput), location)
    )

    symbols_list_tool = Tool.create(
        "symbols_list",
        "For each location, find and return the symbols (functions, classes, variables) "
        "in that location's file. Helps to understand the structure of the codebase. "
        "Locations must be known to use this tool.",
        object_schema()
        .property("locations", array_schema(location_schema()).build())
        .required("locations")
        .build(),
        symbols_list,
    ).wrap(model_codec(SymbolsListInput), list_codec(list_codec(model_codec(SymbolInformation))))

    references_tool = Tool.create(
        "references",
        "Finds all references to the symbol at a given location in the codebase. "
        "Useful to understand how a function, variable or class is used. "
        "The location must be known to use this tool.",
        location_schema(),
        references,
    ).wrap(location, list_codec(location))

    next_problem_tool = Tool.create(
        "next_problem",
        "Moves to the next problem in the editor and extracts its context.",
        empty_schema(),
        lambda _: resolve_next_problem,
    ).wrap(identity, model_codec(DiagnosticContext))

    surrounding_ctx_tool = Tool.create(
        "surrounding_ctx",
        "Extracts the text surrounding a given location: up to surroundingLines lines "
        "before and after it, and the text of the location itself.",
        object_schema()
        .property("surroundingLines", integer_schema().minimum(0).build())
        .property("location", location_schema())
        .required("surroundingLines", "location")
        .build(),
        surrounding_ctx,
    ).wrap(model_codec(SurroundingContextInput), model_codec(SurroundingText))

    directory_ctx_tool = Tool.create(
        "directory_ctx",
        "Provides language-specific context for the directory of the active document: "
        "available types, function signatures and other definitions.",
        empty_schema(),
        lambda _: languages.directory_context(),
    )

    return [
        cursor_location_tool,
        translate_cursor_tool,
        symbols_list_tool,
        references_tool,
        next_problem_tool,
        surrounding_ctx_tool,
        directory_ctx_tool,
    ]
