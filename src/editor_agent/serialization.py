"""JSON rendering shared by tool descriptions, history and approvals."""

from __future__ import annotations

import json
from typing import Any

from pydantic_core import to_jsonable_python


def to_jsonable(value: Any) -> Any:
    """Convert models, dataclasses and enums into plain JSON data."""
    return to_jsonable_python(value, by_alias=True)


def canonical_json(value: Any) -> str:
    """Stable, compact JSON: sorted keys, no whitespace."""
    return json.dumps(to_jsonable(value), sort_keys=True, separators=(",", ":"))


def pretty_json(value: Any) -> str:
    return json.dumps(to_jsonable(value), indent=2)
