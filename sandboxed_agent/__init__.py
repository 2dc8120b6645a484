# Sandboxed Agent
# Tool-calling agent loop for chat-completions models
# Code evaluation runs in a fresh isolated process per call

from .orchestrator import AgentOrchestrator, OrchestratorConfig, LoopState, TurnResult
from .conversation import ConversationStore, Message, Role, ToolCall
from .tool_registry import ToolRegistry, Tool
from .dispatcher import ToolDispatcher, ToolOutcome
from .sandbox import SandboxExecutor, SandboxConfig, SandboxResult
from .tools import BuiltinTools, ToolSettings
from .model_client import ChatCompletionsClient, ModelClientConfig, ModelReply
from .config import AgentSettings
from .exceptions import (
    AgentError,
    ConfigurationError,
    TransportError,
    UnknownTool,
    SandboxError,
    SandboxTimeout,
    SandboxViolation,
    SandboxRuntimeError
)

__all__ = [
    # Core
    "AgentOrchestrator",
    "OrchestratorConfig",
    "LoopState",
    "TurnResult",
    "AgentSettings",
    # Conversation
    "ConversationStore",
    "Message",
    "Role",
    "ToolCall",
    # Tool management
    "ToolRegistry",
    "Tool",
    "ToolDispatcher",
    "ToolOutcome",
    "BuiltinTools",
    "ToolSettings",
    # Sandbox
    "SandboxExecutor",
    "SandboxConfig",
    "SandboxResult",
    # Model endpoint
    "ChatCompletionsClient",
    "ModelClientConfig",
    "ModelReply",
    # Exceptions
    "AgentError",
    "ConfigurationError",
    "TransportError",
    "UnknownTool",
    "SandboxError",
    "SandboxTimeout",
    "SandboxViolation",
    "SandboxRuntimeError"
]
