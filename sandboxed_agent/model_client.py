"""
Chat-completions model endpoint client

Failures here are not contained: they abort the turn.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .conversation import ToolCall
from .exceptions import ConfigurationError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class ModelClientConfig:
    """Model endpoint configuration"""
    api_key: str | None = None
    base_url: str = "https://api.openai.com/v1"
    timeout_seconds: float = 120.0


@dataclass
class ModelReply:
    """First choice's message from the endpoint"""
    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str | None = None
    usage: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "ModelReply":
        try:
            choice = data["choices"][0]
            message = choice["message"]
        except (KeyError, IndexError, TypeError):
            raise TransportError(f"Malformed model response: {str(data)[:200]}")

        return cls(
            content=message.get("content"),
            tool_calls=[ToolCall.from_api(tc) for tc in message.get("tool_calls") or []],
            finish_reason=choice.get("finish_reason"),
            usage=data.get("usage") or {},
        )


class ChatCompletionsClient:
    """
    Minimal OpenAI-compatible chat-completions client

    Usage:
        client = ChatCompletionsClient(ModelClientConfig(api_key="sk-..."))
        reply = await client.complete(
            model="gpt-4o-mini",
            messages=store.as_payload(),
            tools=registry.schemas(),
        )
    """

    def __init__(
        self,
        config: ModelClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None
    ):
        self.config = config or ModelClientConfig()
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazily created shared client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._http_client

    async def complete(
        self,
        model: str,
        messages: list[dict],
        tools: list[dict],
        temperature: float | None = None
    ) -> ModelReply:
        api_key = (self.config.api_key or "").strip()
        if not api_key:
            raise ConfigurationError("Model API key is required")

        body: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "tools": tools,
            "tool_choice": "auto",
        }
        if temperature is not None:
            body["temperature"] = temperature

        url = self.config.base_url.rstrip("/") + "/chat/completions"
        try:
            response = await self.http_client.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {api_key}"},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Model endpoint request failed: {e}")

        if not response.is_success:
            raise TransportError(
                f"Model endpoint error {response.status_code}: {response.text}",
                response.status_code
            )

        try:
            data = response.json()
        except ValueError:
            raise TransportError(f"Model endpoint returned invalid JSON: {response.text[:200]}")

        reply = ModelReply.from_api(data)
        logger.debug(
            f"Model reply: finish_reason={reply.finish_reason}, "
            f"tool_calls={[tc.name for tc in reply.tool_calls]}"
        )
        return reply

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
