"""
Agent orchestrator - drives the model / tool-execution loop

Responsibilities:
1. Talk to the model endpoint with the conversation and tool schemas
2. Run requested tool calls one at a time, in order, through the dispatcher
3. Record everything in the conversation store and stop at the loop bound
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from .conversation import ConversationStore, Message, Role, ToolCall
from .dispatcher import ToolDispatcher
from .exceptions import ConfigurationError
from .model_client import ChatCompletionsClient
from .tools import BuiltinTools

if TYPE_CHECKING:
    from .config import AgentSettings

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """You are a helpful agent. Think step-by-step, and when external info or computation helps,
use the available tools via function calls. Prefer short, clear messages. When done, provide a concise answer."""

MAX_LOOPS_MESSAGE = "[Stopped after max tool loops]"


class LoopState(Enum):
    """Orchestration loop states"""
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE_FINAL = "done_final"
    DONE_MAX_LOOPS = "done_max_loops"


@dataclass
class OrchestratorConfig:
    """Orchestrator configuration; read at the start of every turn"""
    model: str = "gpt-4o-mini"
    max_loops: int = 6  # tool round-trips per turn
    temperature: float | None = 0.2
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


@dataclass
class TurnResult:
    """Terminal state of one user turn"""
    state: LoopState
    content: str
    loops: int
    model_calls: int
    warning: str | None = None

    @property
    def stopped_early(self) -> bool:
        return self.state is LoopState.DONE_MAX_LOOPS


class AgentOrchestrator:
    """
    Agent orchestrator

    Owns the conversation for one session. Tool failures are contained by the
    dispatcher and shown to the model; a failing model endpoint aborts the
    turn with TransportError (or ConfigurationError without an API key).

    Usage:
        agent = AgentOrchestrator.from_settings(AgentSettings.from_env())

        result = await agent.run_turn("What is 2+2? Use code.")
        print(result.state, result.content)
    """

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        model_client: ChatCompletionsClient | None = None,
        dispatcher: ToolDispatcher | None = None,
        on_message: Callable[[Message], None] | None = None
    ):
        self.config = config or OrchestratorConfig()
        self.model_client = model_client or ChatCompletionsClient()
        self.dispatcher = dispatcher or ToolDispatcher(BuiltinTools().build_registry())
        self.on_message = on_message
        self.conversation = ConversationStore(self.config.system_prompt)
        self.state: LoopState | None = None

    @classmethod
    def from_settings(
        cls,
        settings: "AgentSettings",
        on_message: Callable[[Message], None] | None = None
    ) -> "AgentOrchestrator":
        tools = BuiltinTools(settings.tools, settings.sandbox_executor())
        return cls(
            config=settings.orchestrator,
            model_client=ChatCompletionsClient(settings.model_client),
            dispatcher=ToolDispatcher(tools.build_registry()),
            on_message=on_message,
        )

    def _append(self, message: Message) -> None:
        self.conversation.append(message)
        if self.on_message is not None:
            self.on_message(message)

    def _set_state(self, state: LoopState) -> None:
        logger.debug(f"Loop state: {self.state} -> {state}")
        self.state = state

    def _read_loop_bound(self) -> int:
        value = self.config.max_loops
        try:
            bound = int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"max_loops must be a positive integer, got {value!r}")
        if bound < 1:
            raise ConfigurationError(f"max_loops must be a positive integer, got {value!r}")
        return bound

    def _unique_calls(self, tool_calls: list[ToolCall]) -> list[ToolCall]:
        seen = set()
        unique = []
        for call in tool_calls:
            if call.id in seen:
                logger.warning(f"Dropping duplicate tool call id {call.id} ({call.name})")
                continue
            seen.add(call.id)
            unique.append(call)
        return unique

    async def run_turn(self, user_text: str) -> TurnResult:
        """
        Run one user turn to a terminal state

        Args:
            user_text: the user's message

        Returns:
            TurnResult with DONE_FINAL, or DONE_MAX_LOOPS plus a warning
        """
        max_loops = self._read_loop_bound()
        self._append(Message.user(user_text))

        loops = 0
        model_calls = 0

        while True:
            self._set_state(LoopState.AWAITING_MODEL)
            logger.info(f"Loop {loops + 1}/{max_loops}: calling model {self.config.model}")

            reply = await self.model_client.complete(
                model=self.config.model,
                messages=self.conversation.as_payload(),
                tools=self.dispatcher.schemas(),
                temperature=self.config.temperature,
            )
            model_calls += 1

            if not reply.tool_calls:
                final = Message.assistant(reply.content or "")
                self._append(final)
                self._set_state(LoopState.DONE_FINAL)
                return TurnResult(LoopState.DONE_FINAL, final.content, loops, model_calls)

            tool_calls = self._unique_calls(reply.tool_calls)
            self._append(Message.assistant(reply.content or "", tool_calls=tool_calls))

            self._set_state(LoopState.EXECUTING_TOOLS)
            await self._execute_tool_calls(tool_calls)

            loops += 1
            if loops >= max_loops:
                warning = f"Reached max tool loops ({max_loops}); stopping."
                logger.warning(warning)
                self._append(Message.assistant(MAX_LOOPS_MESSAGE))
                self._set_state(LoopState.DONE_MAX_LOOPS)
                return TurnResult(
                    LoopState.DONE_MAX_LOOPS, MAX_LOOPS_MESSAGE, loops, model_calls, warning
                )

    async def _execute_tool_calls(self, tool_calls: list[ToolCall]) -> None:
        """Run calls sequentially; ids are unique, see _unique_calls"""
        for call in tool_calls:
            outcome = await self.dispatcher.invoke(call.name, call.arguments)
            self._append(Message.tool(call.id, outcome.to_content()))

    def transcript(self) -> tuple[Message, ...]:
        return self.conversation.snapshot()

    def last_assistant_message(self) -> Message | None:
        for message in reversed(self.conversation.snapshot()):
            if message.role is Role.ASSISTANT:
                return message
        return None

    async def aclose(self) -> None:
        await self.model_client.aclose()
