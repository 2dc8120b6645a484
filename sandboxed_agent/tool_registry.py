"""
Tool registry - the closed set of tools advertised to the model
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, get_type_hints

from .exceptions import UnknownTool


@dataclass(frozen=True)
class Tool:
    """Tool definition: schema advertised to the model plus its implementation"""
    name: str
    description: str
    func: Callable
    parameters: dict

    def to_schema(self) -> dict:
        """Convert to the chat-completions function tool format"""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    async def invoke(self, arguments: dict) -> Any:
        if inspect.iscoroutinefunction(self.func):
            return await self.func(**arguments)
        return self.func(**arguments)


class ToolRegistry:
    """
    Tool registry

    Maps tool names to implementations. Once frozen, the set of names is
    closed: nothing can be added and unknown names fail with UnknownTool.

    Usage:
        registry = ToolRegistry()

        @registry.register(description="Add two numbers")
        def add(a: int, b: int) -> int:
            return a + b

        registry.freeze()
        tool = registry.resolve("add")
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}
        self._frozen = False

    def register(
        self,
        name: str | None = None,
        description: str | None = None,
        parameters: dict | None = None,
    ) -> Callable:
        """
        Decorator: register a tool function

        The parameter schema is inferred from the function signature when not
        given explicitly.
        """
        def decorator(func: Callable) -> Callable:
            tool_name = name or func.__name__
            tool_desc = description or inspect.getdoc(func) or f"Tool: {tool_name}"

            schema = parameters
            if schema is None:
                schema = self._infer_schema_from_function(func)

            self.register_tool(Tool(
                name=tool_name,
                description=tool_desc,
                func=func,
                parameters=schema,
            ))
            return func

        return decorator

    def register_tool(self, tool: Tool) -> None:
        """Register a Tool object directly"""
        if self._frozen:
            raise RuntimeError(f"Cannot register '{tool.name}': tool registry is frozen")
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def freeze(self) -> None:
        """Close the set of tool names"""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolve(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownTool(name)
        return tool

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict]:
        return [tool.to_schema() for tool in self._tools.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def _infer_schema_from_function(self, func: Callable) -> dict:
        """Infer a JSON Schema from the function signature"""
        sig = inspect.signature(func)
        hints = get_type_hints(func)

        properties = {}
        required = []

        type_map = {
            str: "string",
            int: "integer",
            float: "number",
            bool: "boolean",
            list: "array",
            dict: "object"
        }

        for param_name, param in sig.parameters.items():
            if param_name in ('self', 'cls'):
                continue
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue

            param_type = hints.get(param_name, str)
            prop: dict[str, Any] = {
                "type": type_map.get(param_type, "string"),
                "description": f"Parameter: {param_name}"
            }

            if param.default is inspect.Parameter.empty:
                required.append(param_name)
            elif param.default is not None:
                prop["default"] = param.default

            properties[param_name] = prop

        return {
            "type": "object",
            "properties": properties,
            "required": required
        }
