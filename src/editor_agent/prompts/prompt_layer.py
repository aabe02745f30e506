"""Prompt templates stored as .txt files next to this module."""

from __future__ import annotations

from pathlib import Path

TEMPLATES_DIR = Path(__file__).parent / "templates"

_cache: dict[str, str] = {}


def load_prompt(name: str) -> str:
    """Raw template text for ``name`` (no extension), with {variable} placeholders."""
    if name not in _cache:
        path = TEMPLATES_DIR / f"{name}.txt"
        _cache[name] = path.read_text(encoding="utf-8").strip()
    return _cache[name]


def render_prompt(name: str, **kwargs: object) -> str:
    return load_prompt(name).format(**kwargs)


def tag(name: str, content: str, **attrs: str) -> str:
    """Wrap ``content`` in an XML-style tag; empty content renders nothing."""
    if not content:
        return ""
    rendered = "".join(f' {key}="{value}"' for key, value in attrs.items())
    return f"<{name}{rendered}>{content}</{name}>"
