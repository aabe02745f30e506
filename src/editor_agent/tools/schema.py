"""Explicit JSON-schema builders for tool inputs."""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel


class SchemaBuilder:
    def __init__(self, type_: str | None = "object") -> None:
        self._schema: dict[str, Any] = {}
        if type_ is not None:
            self._schema["type"] = type_
        if type_ == "object":
            self._schema["properties"] = {}

    def title(self, title: str) -> SchemaBuilder:
        self._schema["title"] = title
        return self

    def description(self, description: str) -> SchemaBuilder:
        self._schema["description"] = description
        return self

    def property(self, name: str, schema: dict[str, Any]) -> SchemaBuilder:
        self._schema.setdefault("properties", {})[name] = schema
        return self

    def required(self, *names: str) -> SchemaBuilder:
        self._schema.setdefault("required", []).extend(names)
        return self

    def items(self, schema: dict[str, Any]) -> SchemaBuilder:
        self._schema["items"] = schema
        return self

    def minimum(self, value: float) -> SchemaBuilder:
        self._schema["minimum"] = value
        return self

    def maximum(self, value: float) -> SchemaBuilder:
        self._schema["maximum"] = value
        return self

    def min_length(self, value: int) -> SchemaBuilder:
        self._schema["minLength"] = value
        return self

    def max_length(self, value: int) -> SchemaBuilder:
        self._schema["maxLength"] = value
        return self

    def pattern(self, pattern: str) -> SchemaBuilder:
        self._schema["pattern"] = pattern
        return self

    def enum(self, *values: Any) -> SchemaBuilder:
        self._schema["enum"] = list(values)
        return self

    def build(self) -> dict[str, Any]:
        return copy.deepcopy(self._schema)


def object_schema() -> SchemaBuilder:
    return SchemaBuilder("object")


def string_schema() -> SchemaBuilder:
    return SchemaBuilder("string")


def number_schema() -> SchemaBuilder:
    return SchemaBuilder("number")


def integer_schema() -> SchemaBuilder:
    return SchemaBuilder("integer")


def boolean_schema() -> SchemaBuilder:
    return SchemaBuilder("boolean")


def array_schema(items: dict[str, Any] | None = None) -> SchemaBuilder:
    builder = SchemaBuilder("array")
    if items is not None:
        builder.items(items)
    return builder


def empty_schema() -> dict[str, Any]:
    """Schema for tools that take no input."""
    return object_schema().build()


def detect_schema(sample: Any) -> dict[str, Any]:
    """Derive a schema from a sample value.

    Authoring aid only: paste the output into an explicit builder call rather
    than declaring a tool's schema with it.
    """
    if isinstance(sample, BaseModel):
        sample = sample.model_dump(mode="json", by_alias=True)
    if sample is None:
        return {"type": "null"}
    if isinstance(sample, bool):
        return boolean_schema().build()
    if isinstance(sample, int):
        return integer_schema().build()
    if isinstance(sample, float):
        return number_schema().build()
    if isinstance(sample, str):
        return string_schema().build()
    if isinstance(sample, (list, tuple)):
        return array_schema(detect_schema(sample[0]) if sample else {}).build()
    if isinstance(sample, dict):
        builder = object_schema()
        for key, value in sample.items():
            builder.property(key, detect_schema(value))
        return builder.build()
    raise TypeError(f"Unsupported type: {type(sample).__name__}")
