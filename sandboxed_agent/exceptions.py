"""Custom exceptions"""

from typing import Any


class AgentError(Exception):
    """Base class for agent errors"""

    def to_payload(self) -> dict[str, Any]:
        """Payload fed back to the model when this error is contained"""
        return {"error": str(self)}


class ConfigurationError(AgentError):
    """A required external setting (credential, base URL, ...) is missing"""
    pass


class TransportError(AgentError):
    """Network failure or non-success status from an external backend"""
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class UnknownTool(AgentError):
    """Dispatch of a tool name that is not registered"""
    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class SandboxError(AgentError):
    """Base class for sandbox errors"""
    pass


class SandboxViolation(SandboxError):
    """Code touches an attribute or name that leads out of the sandbox"""
    pass


class SandboxTimeout(SandboxError):
    """Isolate did not answer before the deadline"""
    def __init__(self, timeout_ms: float):
        self.timeout_ms = timeout_ms
        super().__init__(f"evaluate timed out after {timeout_ms:g} ms")


class SandboxRuntimeError(SandboxError):
    """Isolate reported an error while running the code"""
    def __init__(self, message: str, logs: list[str] | None = None):
        self.message = message
        self.logs = list(logs or [])
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        return {"logs": self.logs, "error": self.message}
