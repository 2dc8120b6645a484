"""
Tool dispatcher - resolves a tool call, runs it and normalises the outcome

No exception raised by a tool crosses this boundary. Every failure is turned
into an `{"error": ...}` payload so the model can see it and decide what to
do next.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from .exceptions import AgentError
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one tool invocation: a success value or an error payload"""
    ok: bool
    value: Any

    @classmethod
    def success(cls, value: Any) -> "ToolOutcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: Exception) -> "ToolOutcome":
        if isinstance(error, AgentError):
            payload = error.to_payload()
        else:
            payload = {"error": str(error) or type(error).__name__}
        return cls(ok=False, value=payload)

    @property
    def error(self) -> str | None:
        if self.ok:
            return None
        return self.value.get("error")

    def to_content(self) -> str:
        """Serialise for a `tool` message"""
        return json.dumps(self.value, ensure_ascii=False, separators=(",", ":"), default=str)


def decode_arguments(tool_name: str, arguments: str | None) -> dict:
    """
    Decode raw tool-call arguments as a JSON object

    Anything that is not a JSON object is replaced with `{}`; the tool still
    runs. The substitution is logged since it may hide a model error.
    """
    if not arguments or not arguments.strip():
        return {}
    try:
        decoded = json.loads(arguments)
    except json.JSONDecodeError as e:
        logger.warning(
            f"Malformed arguments for '{tool_name}' ({e}); using empty object: {arguments[:200]!r}"
        )
        return {}
    if not isinstance(decoded, dict):
        logger.warning(
            f"Arguments for '{tool_name}' are {type(decoded).__name__}, not an object; using empty object"
        )
        return {}
    return decoded


class ToolDispatcher:
    """
    Tool dispatcher

    Usage:
        dispatcher = ToolDispatcher(registry)
        outcome = await dispatcher.invoke("search", '{"query": "python"}')
        content = outcome.to_content()
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry
        self.registry.freeze()

    def schemas(self) -> list[dict]:
        return self.registry.schemas()

    async def invoke(self, name: str, arguments: str | None) -> ToolOutcome:
        try:
            tool = self.registry.resolve(name)
            args = decode_arguments(name, arguments)
            logger.info(f"Invoking tool '{name}' with {sorted(args)}")
            result = await tool.invoke(args)
        except Exception as e:
            logger.error(f"Tool '{name}' failed: {e}")
            return ToolOutcome.failure(e)

        logger.debug(f"Tool '{name}' result: {str(result)[:200]}")
        return ToolOutcome.success(result)
