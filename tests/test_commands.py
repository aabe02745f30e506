"""Tests for editor commands and the command session."""

from __future__ import annotations

import asyncio

import pytest

from editor_agent.action import Cancelled, Success, pure
from editor_agent.commands import (
    Command,
    NoPreviousCommandError,
    Session,
    UnknownCommandError,
    complete_at_cursor,
    default_commands,
    fix_next_problem,
    replace_selection,
    show_definitions,
)
from editor_agent.config import Settings
from editor_agent.languages import LanguageRegistry, default_registry
from editor_agent.models.schemas import Diagnostic, Position, Range, Selection

from fakes import FakeModel, call, make_env

SOURCE = "def add(a, b):\n    \n\n\ndef sub(a, b):\n    return a - b\n"


def run(action, env):
    return asyncio.run(action.execute(env))


def text_of(env) -> str:
    return asyncio.run(env.active_document()).text


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class Counter:
    def __init__(self) -> None:
        self.count = 0

    def bump(self, _):
        self.count += 1


def test_session_run_and_repeat(tmp_path):
    env = make_env(tmp_path, "x = 1\n")
    counter = Counter()
    session = Session([Command("count", "Count", pure(1).side_effect(counter.bump))])
    assert asyncio.run(session.run("count", env)) == Success(1)
    assert asyncio.run(session.repeat(env)) == Success(1)
    assert counter.count == 2
    assert session.last.name == "count"


def test_session_repeat_before_run(tmp_path):
    env = make_env(tmp_path, "x = 1\n")
    with pytest.raises(NoPreviousCommandError, match="No command has been run yet"):
        asyncio.run(Session().repeat(env))


def test_session_unknown_command(tmp_path):
    env = make_env(tmp_path, "x = 1\n")
    session = Session()
    with pytest.raises(UnknownCommandError, match="nope"):
        asyncio.run(session.run("nope", env))
    assert session.last is None


def test_default_commands():
    session = Session(default_commands(FakeModel(), settings=Settings(llm_api_key="test")))
    assert session.names() == [
        "complete",
        "complete_full",
        "refactor",
        "refactor_full",
        "fix",
        "definitions",
        "agent",
    ]


# ---------------------------------------------------------------------------
# completion / refactoring
# ---------------------------------------------------------------------------

def test_complete_inserts_streamed_chunks(tmp_path):
    env = make_env(tmp_path, SOURCE, selection=Selection.at(Position(line=1, character=4)))
    model = FakeModel(chunks=["return ", "a + b"])
    result = run(complete_at_cursor(model, default_registry(), 10), env)
    assert result == Success("return a + b")
    assert text_of(env).splitlines()[1] == "    return a + b"

    prompt = model.stream_prompts[0]
    assert "<code>def add(a, b):\n    <cursor/>\n\n\ndef sub" in prompt
    assert "def sub(a, b)" in prompt.split("<context>")[1]


def test_complete_window_limits_code(tmp_path):
    text = "\n".join(f"v{i} = {i}" for i in range(30)) + "\n"
    env = make_env(tmp_path, text, selection=Selection.at(Position(line=15, character=0)))
    model = FakeModel(chunks=["# here\n"])
    run(complete_at_cursor(model, LanguageRegistry(), 2), env)
    code = model.stream_prompts[0].split("<code>")[1]
    assert code.startswith("v13 = 13\nv14 = 14\n<cursor/>v15 = 15\nv16 = 16\nv17 = 17")
    assert "v12" not in code
    assert "<context></context>" in model.stream_prompts[0]


def test_complete_full_uses_whole_document(tmp_path):
    text = "\n".join(f"v{i} = {i}" for i in range(30)) + "\n"
    env = make_env(tmp_path, text, selection=Selection.at(Position(line=15, character=0)))
    model = FakeModel(chunks=["x"])
    run(complete_at_cursor(model, LanguageRegistry(), None), env)
    assert "<code>v0 = 0\n" in model.stream_prompts[0]
    assert "v29 = 29" in model.stream_prompts[0]


def test_refactor_replaces_selection(tmp_path):
    selection = Selection(anchor=Position(line=5, character=11), active=Position(line=5, character=16))
    env = make_env(tmp_path, SOURCE, answers=["Use subtraction helper"], selection=selection)
    model = FakeModel(chunks=["operator", ".sub(a, b)"])
    result = run(replace_selection(model, default_registry(), 20), env)
    assert result == Success("operator.sub(a, b)")
    assert text_of(env).splitlines()[5] == "    return operator.sub(a, b)"
    assert env.prompts == ["Enter refactoring instructions"]

    prompt = model.stream_prompts[0]
    assert "<instruction>Use subtraction helper</instruction>" in prompt
    assert "    return <selection>a - b</selection>\n" in prompt


def test_refactor_dismissed_instruction_cancels(tmp_path):
    env = make_env(tmp_path, SOURCE, answers=[None])
    model = FakeModel(chunks=["ignored"])
    assert isinstance(run(replace_selection(model, default_registry(), 20), env), Cancelled)
    assert model.stream_prompts == []
    assert text_of(env) == SOURCE


# ---------------------------------------------------------------------------
# fixes / definitions
# ---------------------------------------------------------------------------

def test_fix_replaces_problem_line(tmp_path):
    env = make_env(tmp_path, "x = 1\ny = undefined_name\nz = 3\n")
    env.publish_diagnostics(
        str(tmp_path / "main.py"),
        [Diagnostic(range=Range.of(1, 4, 1, 18), message="Undefined name 'undefined_name'", code="F821")],
    )
    model = FakeModel(chunks=["y = ", "x"])
    result = run(fix_next_problem(model, default_registry(), 20), env)
    assert result == Success("y = x")
    assert text_of(env) == "x = 1\ny = x\nz = 3\n"

    prompt = model.stream_prompts[0]
    assert prompt.startswith("Resolve the following issue:\nMessage: Undefined name 'undefined_name'")
    assert "Code: F821" in prompt
    assert "<selection>y = undefined_name</selection>" in prompt


def test_fix_without_problems_cancels(tmp_path):
    env = make_env(tmp_path, "x = 1\n")
    model = FakeModel(chunks=["never"])
    assert isinstance(run(fix_next_problem(model, default_registry(), 20), env), Cancelled)
    assert model.stream_prompts == []


def test_show_definitions(tmp_path):
    env = make_env(tmp_path, SOURCE)
    result = run(show_definitions(default_registry()), env)
    assert "def add(a, b)" in result.value
    assert env.shown == [result.value]


def test_show_definitions_empty(tmp_path):
    env = make_env(tmp_path, "hello", name="notes.txt")
    run(show_definitions(default_registry()), env)
    assert env.shown == ["No definitions found"]


def test_agent_command_runs_agent(tmp_path):
    env = make_env(tmp_path, SOURCE, answers=["summarise"])
    model = FakeModel([call("finish", summary="nothing to do")])
    session = Session(default_commands(model, settings=Settings(llm_api_key="test")))
    result = asyncio.run(session.run("agent", env))
    assert result.value.summary == "nothing to do"
    assert result.value.goal == "summarise"
