from __future__ import annotations

import asyncio

import pytest
from pydantic import BaseModel

from mcp_vmanomaly.tools import ToolContext, ToolDenyList, ToolRegistry, ToolSpec
from mcp_vmanomaly.tools.core import tool
from mcp_vmanomaly.tools.core.errors import ToolAlreadyRegisteredError, ToolNotFoundError


def run_async(coro):
    return asyncio.run(coro)


class EchoArgs(BaseModel):
    text: str


class SleepArgs(BaseModel):
    seconds: float


@tool(args_model=EchoArgs, name="echo")
async def echo(args: EchoArgs) -> str:
    """Echo the text back."""
    return args.text


@tool(args_model=EchoArgs, name="whoami")
def whoami(args: EchoArgs, ctx: ToolContext) -> str:
    return f"{args.text}:{ctx.headers.get('authorization', '-')}"


@tool(args_model=SleepArgs, name="sleep")
async def sleep(args: SleepArgs) -> str:
    await asyncio.sleep(args.seconds)
    return "slept"


@tool(args_model=EchoArgs, name="boom")
async def boom(args: EchoArgs) -> str:
    raise RuntimeError(f"boom: {args.text}")


def make_registry(**kwargs) -> ToolRegistry:
    registry = ToolRegistry(**kwargs)
    registry.register_many([echo, whoami, sleep, boom])
    return registry


def test_decorator_builds_spec_from_function():
    assert isinstance(echo.spec, ToolSpec)
    assert echo.spec.name == "echo"
    assert echo.spec.description == "Echo the text back."
    assert echo.spec.parameters_schema["properties"] == {"text": {"type": "string"}}
    assert echo.spec.parameters_schema["required"] == ["text"]


def test_duplicate_registration_is_rejected_unless_overwriting():
    registry = make_registry()

    with pytest.raises(ToolAlreadyRegisteredError):
        registry.register(echo)
    registry.register(echo, overwrite=True)

    assert [t.spec.name for t in registry.list()].count("echo") == 1


def test_deny_list_hides_tool_from_listing_and_lookup():
    registry = make_registry(deny_list=ToolDenyList(["sleep", " boom ", ""]))

    assert [t.spec.name for t in registry.list()] == ["echo", "whoami"]
    with pytest.raises(ToolNotFoundError, match="Unknown tool: sleep"):
        registry.get("sleep")
    with pytest.raises(ToolNotFoundError):
        run_async(registry.call("boom", {"text": "x"}))


def test_deny_list_normalizes_names():
    deny = ToolDenyList([" a ", "b", "", "a"])

    assert len(deny) == 2
    assert list(deny) == ["a", "b"]
    assert "a" in deny and deny.allows("c")


def test_call_passes_context_to_tools_that_ask_for_it():
    registry = make_registry()
    ctx = ToolContext(headers={"authorization": "Bearer t"})

    result = run_async(registry.call("whoami", {"text": "me"}, ctx=ctx))
    anonymous = run_async(registry.call("whoami", {"text": "me"}))

    assert result.output == "me:Bearer t"
    assert anonymous.output == "me:-"


def test_invalid_arguments_and_tool_errors_become_failed_results():
    registry = make_registry()

    invalid = run_async(registry.call("echo", {}))
    failed = run_async(registry.call("boom", {"text": "x"}))

    assert invalid.success is False
    assert "Invalid arguments for 'echo'" in invalid.error_message
    assert failed.success is False
    assert failed.error_message == "boom: x"
    assert failed.tool_name == "boom"


def test_timeout_precedence_call_over_registry_default():
    registry = make_registry(default_timeout=0.01)

    timed_out = run_async(registry.call("sleep", {"seconds": 0.5}))
    allowed = run_async(registry.call("sleep", {"seconds": 0.05}, timeout=2.0))

    assert timed_out.success is False
    assert "timed out" in timed_out.error_message
    assert allowed.output == "slept"


def test_registry_rejects_non_positive_concurrency():
    with pytest.raises(ValueError):
        ToolRegistry(max_concurrency=0)
