"""AST-based symbols and directory definitions for Python sources."""

from __future__ import annotations

import ast
import logging
import os

from editor_agent.action import Action, from_environment
from editor_agent.environment import Environment
from editor_agent.models.schemas import Location, Range, SymbolInformation, SymbolKind

logger = logging.getLogger(__name__)

LANGUAGE_ID = "python"
EXTENSION = "py"


def extract_symbols(source: str, uri: str) -> list[SymbolInformation]:
    """Classes, functions, methods and module-level names defined in ``source``."""
    try:
        tree = ast.parse(source, filename=uri)
    except SyntaxError:
        return []

    symbols: list[SymbolInformation] = []
    for stmt in tree.body:
        if isinstance(stmt, ast.ClassDef):
            symbols.append(_symbol(stmt.name, SymbolKind.CLASS, uri, stmt))
            for item in stmt.body:
                if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    kind = SymbolKind.CONSTRUCTOR if item.name == "__init__" else SymbolKind.METHOD
                    symbols.append(_symbol(item.name, kind, uri, item, container=stmt.name))
                elif isinstance(item, (ast.Assign, ast.AnnAssign)):
                    for name in _assigned_names(item):
                        symbols.append(_symbol(name, SymbolKind.FIELD, uri, item, container=stmt.name))
        elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            symbols.append(_symbol(stmt.name, SymbolKind.FUNCTION, uri, stmt))
        elif isinstance(stmt, (ast.Assign, ast.AnnAssign)):
            for name in _assigned_names(stmt):
                kind = SymbolKind.CONSTANT if name.isupper() else SymbolKind.VARIABLE
                symbols.append(_symbol(name, kind, uri, stmt))
    return symbols


def summarize_definitions(source: str, path: str) -> str:
    """Render signatures (with first docstring line) of one file's definitions."""
    try:
        tree = ast.parse(source, filename=path)
    except SyntaxError as e:
        logger.debug("Skipping %s: %s", path, e)
        return ""

    lines: list[str] = []
    for stmt in tree.body:
        if isinstance(stmt, ast.ClassDef):
            bases = ", ".join(ast.unparse(b) for b in [*stmt.bases, *stmt.keywords])
            lines.append(f"class {stmt.name}({bases}):" if bases else f"class {stmt.name}:")
            lines.extend(f"    {line}" for line in _doc_lines(stmt))
            for item in stmt.body:
                if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    lines.append(f"    {_get_signature(item)}")
        elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            lines.append(_get_signature(stmt))
            lines.extend(f"    {line}" for line in _doc_lines(stmt))
    return "\n".join(lines)


async def _directory_definitions(env: Environment) -> str:
    document = await env.active_document()
    folder = os.path.dirname(document.uri)
    parts: list[str] = []
    for path in await env.find_files(folder, EXTENSION):
        source = (await env.open_document(path)).text
        summary = summarize_definitions(source, path)
        if summary:
            parts.append(f"# {os.path.relpath(path, folder)}\n{summary}")
    return "\n\n".join(parts)


find_definitions: Action[str] = from_environment(_directory_definitions)


def _symbol(
    name: str,
    kind: SymbolKind,
    uri: str,
    node: ast.stmt,
    container: str = "",
) -> SymbolInformation:
    end_line = node.end_lineno or node.lineno
    end_col = node.end_col_offset if node.end_col_offset is not None else node.col_offset
    return SymbolInformation(
        name=name,
        kind=kind,
        container_name=container,
        location=Location(uri=uri, range=Range.of(node.lineno - 1, node.col_offset, end_line - 1, end_col)),
    )


def _assigned_names(stmt: ast.Assign | ast.AnnAssign) -> list[str]:
    targets = stmt.targets if isinstance(stmt, ast.Assign) else [stmt.target]
    return [t.id for t in targets if isinstance(t, ast.Name)]


def _doc_lines(node: ast.ClassDef | ast.FunctionDef | ast.AsyncFunctionDef) -> list[str]:
    doc = ast.get_docstring(node)
    if not doc:
        return []
    return [f'"""{doc.splitlines()[0]}"""']


def _get_signature(func: ast.FunctionDef | ast.AsyncFunctionDef) -> str:
    args = []
    for arg in func.args.args:
        annotation = ""
        if arg.annotation:
            annotation = f": {ast.unparse(arg.annotation)}"
        args.append(f"{arg.arg}{annotation}")
    if func.args.vararg:
        args.append(f"*{func.args.vararg.arg}")
    elif func.args.kwonlyargs:
        args.append("*")
    for arg in func.args.kwonlyargs:
        annotation = f": {ast.unparse(arg.annotation)}" if arg.annotation else ""
        args.append(f"{arg.arg}{annotation}")
    if func.args.kwarg:
        args.append(f"**{func.args.kwarg.arg}")
    ret = ""
    if func.returns:
        ret = f" -> {ast.unparse(func.returns)}"
    prefix = "async " if isinstance(func, ast.AsyncFunctionDef) else ""
    return f"{prefix}def {func.name}({', '.join(args)}){ret}"
