from __future__ import annotations

import io

from rich.console import Console

from editor_agent.agents.agent import Agent
from editor_agent.agents.console_callback import MAX_RESULT_LINES, ConsoleCallback, _format_arg_value, _truncate

from fakes import FakeModel


def _callback() -> ConsoleCallback:
    return ConsoleCallback(Console(file=io.StringIO(), width=120))


def _output(cb: ConsoleCallback) -> str:
    return cb.console.file.getvalue()


def test_truncate_long_results():
    text = "\n".join(str(i) for i in range(MAX_RESULT_LINES + 5))
    truncated = _truncate(text)
    assert truncated.endswith("... (5 more lines)")
    assert _truncate("short") == "short"


def test_format_arg_value():
    assert _format_arg_value("plain") == "plain"
    assert _format_arg_value({"line": 1}) == '{\n  "line": 1\n}'
    assert _format_arg_value("x" * 200).endswith("...")


def test_print_tools_lists_agent_toolkit():
    cb = _callback()
    cb.print_tools(Agent("goal", FakeModel()).toolkit)
    output = _output(cb)
    assert "setPlan(plan)" in output
    assert "surrounding_ctx(surroundingLines, location)" in output


def test_round_flow_is_rendered():
    cb = _callback()
    cb.on_round_start(1, 4)
    cb.on_tool_call("setPlan", {"plan": "read the code"})
    cb.on_tool_result("setPlan", {"plan": "read the code"})
    cb.on_cancelled("next_problem")
    cb.on_finish("Renamed the function", 2)
    output = _output(cb)
    assert "Round 1/4" in output
    assert "plan: read the code" in output
    assert "next_problem was cancelled" in output
    assert "Result (2 rounds)" in output
    assert "Renamed the function" in output


def test_finish_without_summary():
    cb = _callback()
    cb.on_finish(None, 1)
    assert "No summary." in _output(cb)


LOCATION = {"uri": "/work/pkg/main.py", "range": {"start": {"line": 4, "character": 0}, "end": {"line": 4, "character": 3}}}


def test_locations_are_rendered_as_file_line_column():
    cb = _callback()
    cb.on_tool_call("references", {"location": LOCATION})
    cb.on_tool_result("references", [LOCATION, LOCATION])
    cb.on_tool_result("cursor_location", LOCATION)
    output = _output(cb)
    assert "location: main.py:5:1" in output
    assert output.count("main.py:5:1") == 4


def test_control_tools_listed_last():
    cb = _callback()
    cb.print_tools(Agent("goal", FakeModel()).toolkit)
    output = _output(cb)
    assert output.index("cursor_location") < output.index("setPlan")
    assert output.index("directory_ctx") < output.index("finish(")
