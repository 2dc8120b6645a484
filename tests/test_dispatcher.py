"""Tests for the tool dispatcher."""

import json
import logging

import pytest

from sandboxed_agent.dispatcher import ToolDispatcher, ToolOutcome, decode_arguments
from sandboxed_agent.exceptions import ConfigurationError, SandboxRuntimeError, SandboxTimeout
from sandboxed_agent.tool_registry import Tool, ToolRegistry


def make_dispatcher(received: list) -> ToolDispatcher:
    registry = ToolRegistry()

    def echo(**kwargs):
        received.append(kwargs)
        return {"echo": kwargs}

    async def needs_config():
        raise ConfigurationError("API key missing")

    async def explode(reason: str = "boom"):
        raise RuntimeError(reason)

    async def broken_code():
        raise SandboxRuntimeError("ZeroDivisionError: division by zero", ["before"])

    async def slow_code():
        raise SandboxTimeout(2000)

    registry.register_tool(Tool("echo", "", echo, {"type": "object", "properties": {}}))
    registry.register_tool(Tool("needs_config", "", needs_config, {}))
    registry.register_tool(Tool("explode", "", explode, {}))
    registry.register_tool(Tool("broken_code", "", broken_code, {}))
    registry.register_tool(Tool("slow_code", "", slow_code, {}))
    return ToolDispatcher(registry)


class TestDecodeArguments:
    """Tests for fail-soft argument decoding."""

    def test_valid_object(self):
        """Test decoding a JSON object."""
        assert decode_arguments("t", '{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty(self, raw):
        """Test empty arguments decode to an empty object."""
        assert decode_arguments("t", raw) == {}

    def test_malformed_json_logs_warning(self, caplog):
        """Test malformed JSON becomes {} and is logged."""
        with caplog.at_level(logging.WARNING, logger="sandboxed_agent.dispatcher"):
            assert decode_arguments("search", "{query: oops") == {}
        assert "Malformed arguments for 'search'" in caplog.text

    @pytest.mark.parametrize("raw", ["[1, 2]", '"text"', "42", "null"])
    def test_non_object_json(self, raw):
        """Test JSON that is not an object becomes {}."""
        assert decode_arguments("t", raw) == {}


class TestToolOutcome:
    """Tests for ToolOutcome serialization."""

    def test_success_content_is_compact(self):
        """Test compact JSON serialization."""
        assert ToolOutcome.success({"logs": [], "result": 4}).to_content() == '{"logs":[],"result":4}'

    def test_failure_payload(self):
        """Test failure payload from a plain exception."""
        outcome = ToolOutcome.failure(ValueError("bad"))
        assert not outcome.ok
        assert outcome.value == {"error": "bad"}
        assert outcome.error == "bad"

    def test_failure_without_message_uses_type(self):
        """Test failure payload for an exception without a message."""
        assert ToolOutcome.failure(KeyError()).value == {"error": "KeyError"}

    def test_non_ascii_kept(self):
        """Test non-ASCII text is not escaped."""
        assert ToolOutcome.success("héllo").to_content() == '"héllo"'


class TestToolDispatcher:
    """Tests for ToolDispatcher.invoke."""

    @pytest.mark.asyncio
    async def test_success(self):
        """Test a successful invocation."""
        received = []
        dispatcher = make_dispatcher(received)
        outcome = await dispatcher.invoke("echo", '{"x": 1}')
        assert outcome.ok
        assert outcome.value == {"echo": {"x": 1}}
        assert received == [{"x": 1}]

    @pytest.mark.asyncio
    async def test_malformed_arguments_invoke_with_empty_object(self):
        """Test that malformed arguments never prevent the call."""
        received = []
        dispatcher = make_dispatcher(received)
        outcome = await dispatcher.invoke("echo", "not json at all")
        assert outcome.ok
        assert received == [{}]

    @pytest.mark.asyncio
    async def test_unknown_tool_is_contained(self):
        """Test dispatching an unregistered name."""
        dispatcher = make_dispatcher([])
        outcome = await dispatcher.invoke("weather", "{}")
        assert not outcome.ok
        assert outcome.value == {"error": "Unknown tool: weather"}

    @pytest.mark.asyncio
    async def test_configuration_error_is_contained(self):
        """Test missing configuration becomes an error payload."""
        outcome = await make_dispatcher([]).invoke("needs_config", "{}")
        assert outcome.value == {"error": "API key missing"}

    @pytest.mark.asyncio
    async def test_arbitrary_exception_is_contained(self):
        """Test that any exception from a tool is converted."""
        outcome = await make_dispatcher([]).invoke("explode", '{"reason": "kaboom"}')
        assert outcome.value == {"error": "kaboom"}

    @pytest.mark.asyncio
    async def test_bad_argument_names_are_contained(self):
        """Test that unexpected keyword arguments are reported, not raised."""
        outcome = await make_dispatcher([]).invoke("explode", '{"unexpected": 1}')
        assert not outcome.ok
        assert "unexpected" in outcome.error

    @pytest.mark.asyncio
    async def test_sandbox_runtime_error_keeps_logs(self):
        """Test sandbox errors carry logs and the error text."""
        outcome = await make_dispatcher([]).invoke("broken_code", "{}")
        assert json.loads(outcome.to_content()) == {
            "logs": ["before"],
            "error": "ZeroDivisionError: division by zero",
        }

    @pytest.mark.asyncio
    async def test_sandbox_timeout_is_contained(self):
        """Test sandbox timeouts become an error payload."""
        outcome = await make_dispatcher([]).invoke("slow_code", "{}")
        assert outcome.value == {"error": "evaluate timed out after 2000 ms"}

    def test_dispatcher_freezes_registry(self):
        """Test the registry is closed once a dispatcher owns it."""
        registry = ToolRegistry()
        ToolDispatcher(registry)
        assert registry.frozen
