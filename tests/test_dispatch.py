"""Tests for model dispatch: tool choice, execution and approval gates."""

from __future__ import annotations

import asyncio
import logging

import pytest

from editor_agent.action import Cancelled, Success, cancel, pure
from editor_agent.dispatch import choose_tool, decide_tool, execute_choice, request_approval
from editor_agent.models.agent_schemas import (
    Approved,
    NoToolChosenError,
    Rejected,
    ToolCall,
    ToolNotFoundError,
)
from editor_agent.tools import DuplicateToolError, Tool
from editor_agent.tools.interaction import prompt_user_tool
from editor_agent.tools.schema import empty_schema, object_schema, string_schema

from fakes import FakeModel, call, make_env


def run(action, env):
    return asyncio.run(action.execute(env))


def _echo() -> Tool:
    return Tool.create(
        "echo",
        "Returns its input",
        object_schema().property("text", string_schema().build()).build(),
        lambda args: pure(args["text"].upper()),
    )


def _constant(name: str, value="ok") -> Tool:
    return Tool.create(name, name, empty_schema(), lambda _: pure(value))


@pytest.fixture
def env(tmp_path):
    return make_env(tmp_path, "x = 1\n")


def test_decide_tool_runs_chosen_tool(env):
    model = FakeModel([call("echo", text="hi")])
    result = run(decide_tool(model, "prompt", [_constant("other"), _echo()]), env)
    assert isinstance(result, Success)
    decision = result.value
    assert decision.tool.name == "echo"
    assert decision.input == {"text": "hi"}
    assert decision.output == "HI"
    assert model.prompts == ["prompt"]


def test_model_receives_wire_tools(env):
    model = FakeModel([call("echo", text="hi")])
    run(decide_tool(model, "prompt", [_echo()]), env)
    assert model.tools[0] == [
        {
            "name": "echo",
            "description": "Returns its input",
            "input_schema": {"type": "object", "properties": {"text": {"type": "string"}}},
        }
    ]


def test_no_tool_chosen_is_fatal(env):
    model = FakeModel([[]])
    with pytest.raises(NoToolChosenError, match="No tool was chosen"):
        run(decide_tool(model, "prompt", [_echo()]), env)
    assert model.calls == 1


def test_unknown_tool_is_fatal(env):
    model = FakeModel([call("missing")])
    with pytest.raises(ToolNotFoundError, match="missing"):
        run(decide_tool(model, "prompt", [_echo()]), env)


def test_duplicate_tools_rejected_before_running():
    model = FakeModel([call("a")])
    with pytest.raises(DuplicateToolError):
        decide_tool(model, "prompt", [_constant("a"), _constant("a")])
    assert model.calls == 0


def test_only_first_call_is_honoured(env, caplog):
    caplog.set_level(logging.INFO, logger="editor_agent.dispatch")
    model = FakeModel([call("a") + call("b")])
    decision = run(decide_tool(model, "prompt", [_constant("a", 1), _constant("b", 2)]), env).value
    assert decision.tool.name == "a"
    assert decision.output == 1
    assert "2 tool calls" in caplog.text


def test_tool_cancellation_propagates(env):
    cancelling = Tool.create("nope", "Cancels", empty_schema(), lambda _: cancel())
    result = run(decide_tool(FakeModel([call("nope")]), "prompt", [cancelling]), env)
    assert isinstance(result, Cancelled)


def test_choose_tool_does_not_execute(env):
    ran = []
    tool = Tool.create("t", "t", empty_schema(), lambda _: pure(None).side_effect(ran.append))
    choice = run(choose_tool(FakeModel([[ToolCall(name="t")]]), "p", [tool]), env).value
    assert choice.tool is tool
    assert choice.input == {}
    assert ran == []


# ---------------------------------------------------------------------------
# approvals
# ---------------------------------------------------------------------------

def test_request_approval_yes(tmp_path):
    env = make_env(tmp_path, "", answers=["Yes"])
    result = run(request_approval("About to run echo", {"text": "hi"}), env)
    assert result == Success(Approved({"text": "hi"}))
    assert env.messages == ["About to run echo"]
    assert env.shown == ['{\n  "text": "hi"\n}']


def test_request_approval_no(tmp_path):
    env = make_env(tmp_path, "", answers=["nah"])
    assert run(request_approval("t", 1), env) == Success(Rejected("nah"))


def test_request_approval_dismissed_is_rejection(tmp_path):
    env = make_env(tmp_path, "", answers=[None])
    result = run(request_approval("t", 1), env)
    assert isinstance(result.value, Rejected)


def test_interactive_approves_input_and_output(tmp_path):
    env = make_env(tmp_path, "", answers=["y", "y"])
    model = FakeModel([call("echo", text="hi")])
    decision = run(decide_tool(model, "prompt", [_echo()], interactive=True), env).value
    assert decision.output == "HI"
    assert len(env.prompts) == 2
    assert env.shown[1] == '"HI"'


def test_interactive_rejected_input_skips_execution(tmp_path):
    ran = []
    tool = Tool.create("t", "t", empty_schema(), lambda _: pure("out").side_effect(ran.append))
    env = make_env(tmp_path, "", answers=["n"])
    choice = run(choose_tool(FakeModel([call("t")]), "p", [tool]), env).value
    assert isinstance(run(execute_choice(choice, interactive=True), env), Cancelled)
    assert ran == []


def test_interactive_rejected_output_cancels(tmp_path):
    env = make_env(tmp_path, "", answers=["y", None])
    model = FakeModel([call("echo", text="hi")])
    assert isinstance(run(decide_tool(model, "prompt", [_echo()], interactive=True), env), Cancelled)


def test_prompt_user_tool_returns_answer(tmp_path):
    env = make_env(tmp_path, "", answers=["rename it"])
    result = run(prompt_user_tool.run({"prompt": "New name?", "placeholder": "snake_case"}), env)
    assert result == Success("rename it")
    assert env.prompts == ["New name?"]


def test_prompt_user_tool_dismissed_cancels(tmp_path):
    env = make_env(tmp_path, "", answers=[None])
    assert isinstance(run(prompt_user_tool.run({"prompt": "New name?"}), env), Cancelled)
