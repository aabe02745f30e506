"""Environment over files on disk, with in-memory buffers and a console UI."""

from __future__ import annotations

import ast
import fnmatch
import logging
import re
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax

from editor_agent.environment import Environment, TextDocument
from editor_agent.languages import python
from editor_agent.models.schemas import (
    Diagnostic,
    DiagnosticSeverity,
    Location,
    Position,
    Range,
    Selection,
    SymbolInformation,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE_KB = 100
MAX_REFERENCE_RESULTS = 200

LANGUAGE_IDS = {
    ".py": "python",
    ".go": "go",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".js": "javascript",
    ".rs": "rust",
    ".java": "java",
    ".json": "json",
    ".md": "markdown",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def language_for(path: str | Path) -> str:
    return LANGUAGE_IDS.get(Path(path).suffix.lower(), "plaintext")


def _should_skip(path: Path, exclude_patterns: list[str]) -> bool:
    rel = str(path)
    return any(
        fnmatch.fnmatch(rel, pat) or any(fnmatch.fnmatch(part, pat) for part in path.parts)
        for pat in exclude_patterns
    )


def python_syntax_diagnostics(document: TextDocument) -> list[Diagnostic]:
    try:
        ast.parse(document.text, filename=document.uri)
    except SyntaxError as e:
        line = max((e.lineno or 1) - 1, 0)
        start = document.clamp_position(Position(line=line, character=max((e.offset or 1) - 1, 0)))
        if e.end_lineno and e.end_offset:
            end = document.clamp_position(Position(line=e.end_lineno - 1, character=max(e.end_offset - 1, 0)))
        else:
            end = document.end_of_line(start.line)
        if end < start:
            end = start
        return [
            Diagnostic(
                range=Range(start=start, end=end),
                message=e.msg,
                severity=DiagnosticSeverity.ERROR,
                code=type(e).__name__,
                source="python",
            )
        ]
    return []


class LocalEnvironment(Environment):
    """Edits are kept in memory until ``save()``."""

    def __init__(
        self,
        path: str | Path,
        work_dir: Path | None = None,
        selection: Selection | None = None,
        console: Console | None = None,
        exclude_patterns: list[str] | None = None,
        max_reference_results: int = MAX_REFERENCE_RESULTS,
        max_file_size_kb: int = DEFAULT_MAX_FILE_SIZE_KB,
    ) -> None:
        self.work_dir = (work_dir or Path.cwd()).resolve()
        self.console = console or Console()
        self.exclude_patterns = exclude_patterns or []
        self.max_reference_results = max_reference_results
        self.max_file_size_kb = max_file_size_kb

        self._buffers: dict[str, TextDocument] = {}
        self._modified: set[str] = set()
        self._published: dict[str, list[Diagnostic]] = {}

        self._active = self._uri(path)
        self._selection = self._clamp_selection(selection or Selection.at(Position(line=0, character=0)))

    def _uri(self, path: str | Path) -> str:
        p = Path(path)
        if not p.is_absolute():
            p = self.work_dir / p
        return str(p.resolve())

    def _load(self, uri: str) -> TextDocument:
        uri = self._uri(uri)
        if uri not in self._buffers:
            text = Path(uri).read_text(encoding="utf-8")
            self._buffers[uri] = TextDocument(uri, text, language_for(uri))
            logger.debug("Opened %s (%d lines)", uri, self._buffers[uri].line_count)
        return self._buffers[uri]

    def _clamp_selection(self, selection: Selection) -> Selection:
        document = self._load(self._active)
        return Selection(
            anchor=document.clamp_position(selection.anchor),
            active=document.clamp_position(selection.active),
        )

    def _commit(self, text: str) -> TextDocument:
        old = self._buffers[self._active]
        document = TextDocument(old.uri, text, old.language_id)
        self._buffers[self._active] = document
        self._modified.add(self._active)
        return document

    # --- buffers ---

    async def active_document(self) -> TextDocument:
        return self._load(self._active)

    async def open_document(self, uri: str) -> TextDocument:
        return self._load(uri)

    def modified(self) -> list[str]:
        return sorted(self._modified)

    def save(self) -> list[str]:
        saved = []
        for uri in self.modified():
            Path(uri).write_text(self._buffers[uri].text, encoding="utf-8")
            logger.info("Written: %s (%d lines)", uri, self._buffers[uri].line_count)
            saved.append(uri)
        self._modified.clear()
        return saved

    # --- cursor and edits ---

    async def selection(self) -> Selection:
        return self._selection

    async def set_selection(self, selection: Selection) -> None:
        self._selection = self._clamp_selection(selection)

    async def insert(self, position: Position, text: str) -> Position:
        old = self._load(self._active)
        offset = old.offset_at(position)
        document = self._commit(old.text[:offset] + text + old.text[offset:])

        def shift(p: Position) -> Position:
            o = old.offset_at(p)
            return document.position_at(o + len(text) if o >= offset else o)

        self._selection = Selection(anchor=shift(self._selection.anchor), active=shift(self._selection.active))
        return document.position_at(offset + len(text))

    async def replace(self, range: Range, text: str) -> Range:
        old = self._load(self._active)
        start, end = old.offset_at(range.start), old.offset_at(range.end)
        document = self._commit(old.text[:start] + text + old.text[end:])
        new_range = Range(start=document.position_at(start), end=document.position_at(start + len(text)))

        if self._selection.range == range:
            self._selection = Selection(anchor=new_range.start, active=new_range.end)
        else:
            delta = len(text) - (end - start)

            def shift(p: Position) -> Position:
                o = old.offset_at(p)
                if o >= end:
                    return document.position_at(o + delta)
                return document.position_at(min(o, start))

            self._selection = Selection(anchor=shift(self._selection.anchor), active=shift(self._selection.active))
        return new_range

    # --- language features ---

    def publish_diagnostics(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        """Attach diagnostics from an external linter to a file."""
        self._published[self._uri(uri)] = list(diagnostics)

    async def diagnostics(self, uri: str) -> list[Diagnostic]:
        document = self._load(uri)
        found = list(self._published.get(document.uri, []))
        if document.language_id == python.LANGUAGE_ID:
            found.extend(python_syntax_diagnostics(document))
        return sorted(found, key=lambda d: d.range.start.as_tuple())

    async def next_problem(self) -> None:
        problems = await self.diagnostics(self._active)
        if not problems:
            return
        cursor = self._selection.active
        target = next((d for d in problems if d.range.start > cursor), problems[0])
        self._selection = Selection.at(target.range.start)

    async def document_symbols(self, uri: str) -> list[SymbolInformation]:
        document = self._load(uri)
        if document.language_id == python.LANGUAGE_ID:
            return python.extract_symbols(document.text, document.uri)
        return []

    async def references(self, location: Location) -> list[Location]:
        """Whole-word matches of the identifier at ``location`` in same-language files."""
        document = self._load(location.uri)
        word_range = document.word_range_at(location.range.start)
        if word_range is None:
            return []
        word = document.get_text(word_range)
        regex = re.compile(rf"\b{re.escape(word)}\b")
        suffix = Path(document.uri).suffix

        results: list[Location] = []
        for path in self._walk(self.work_dir, suffix):
            candidate = self._scan(path)
            if candidate is None:
                continue
            for i in range(candidate.line_count):
                for match in regex.finditer(candidate.line_at(i)):
                    results.append(Location(uri=candidate.uri, range=Range.of(i, match.start(), i, match.end())))
                    if len(results) >= self.max_reference_results:
                        logger.warning("References truncated at %d results", self.max_reference_results)
                        return results
        return results

    def _scan(self, path: Path) -> TextDocument | None:
        """Open buffer for ``path`` if any, else an uncached, leniently decoded read."""
        uri = self._uri(path)
        if uri in self._buffers:
            return self._buffers[uri]
        try:
            text = Path(uri).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Skipping %s: %s", uri, e)
            return None
        return TextDocument(uri, text, language_for(uri))

    async def find_files(self, folder: str, extension: str) -> list[str]:
        root = Path(self._uri(folder))
        found = {str(p) for p in self._walk(root, f".{extension}")}
        found.update(
            uri for uri in self._buffers if uri.endswith(f".{extension}") and Path(uri).is_relative_to(root)
        )
        return sorted(found)

    def _walk(self, root: Path, suffix: str) -> list[Path]:
        files: list[Path] = []
        for path in sorted(root.rglob(f"*{suffix}")):
            if not path.is_file() or _should_skip(path.relative_to(root), self.exclude_patterns):
                continue
            if path.stat().st_size > self.max_file_size_kb * 1024:
                logger.debug("Skipping %s (larger than %d KB)", path, self.max_file_size_kb)
                continue
            files.append(path)
        return files

    # --- UI ---

    async def show_input_box(self, prompt: str, placeholder: str = "") -> str | None:
        hint = f" [dim]({escape(placeholder)})[/]" if placeholder else ""
        try:
            return self.console.input(f"[bold]{escape(prompt)}[/]{hint} ")
        except (EOFError, KeyboardInterrupt):
            return None

    async def show_text(self, content: str, language: str = "json") -> None:
        self.console.print(
            Panel(
                Syntax(content, language, theme="ansi_dark", word_wrap=True),
                border_style="dim",
                padding=(0, 1),
            )
        )

    async def show_message(self, message: str) -> None:
        self.console.print(f"[yellow]{escape(message)}[/]")
