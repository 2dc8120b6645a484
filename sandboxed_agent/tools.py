"""
Built-in tools: web search, HTTP proxy call and sandboxed code evaluation

Settings are read on every call, so credentials may be supplied (or changed)
after the registry has been built. Missing settings surface as
ConfigurationError and are contained by the dispatcher like any other tool
failure.
"""

import json
import logging
import math
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

import httpx

from .exceptions import ConfigurationError, TransportError
from .sandbox import SandboxExecutor
from .tool_registry import Tool, ToolRegistry

logger = logging.getLogger(__name__)

GOOGLE_CSE_URL = "https://www.googleapis.com/customsearch/v1"
DEFAULT_TOP_K = 5
MAX_TOP_K = 10
ALLOWED_METHODS = ("GET", "POST")


@dataclass
class ToolSettings:
    """External settings consumed by the built-in tools"""
    google_api_key: str | None = None
    google_cse_id: str | None = None
    aipipe_base_url: str | None = None
    aipipe_token: str | None = None
    http_timeout_seconds: float = 30.0
    max_eval_timeout_ms: float = 30000.0


SEARCH_PARAMETERS = {
    "type": "object",
    "properties": {
        "query": {"type": "string", "description": "Search query text"},
        "top_k": {"type": "number", "description": "Max results to return (1-10)", "default": DEFAULT_TOP_K}
    },
    "required": ["query"]
}

PROXY_CALL_PARAMETERS = {
    "type": "object",
    "properties": {
        "endpoint": {"type": "string", "description": "Endpoint path, e.g., /v1/run"},
        "payload": {"type": "object", "description": "JSON payload to send"},
        "method": {"type": "string", "enum": list(ALLOWED_METHODS), "default": "POST"}
    },
    "required": ["endpoint"]
}

EVALUATE_PARAMETERS = {
    "type": "object",
    "properties": {
        "code": {
            "type": "string",
            "description": "Python code to execute. The value of the last expression is returned; "
                           "use print() or console.log() for logs."
        },
        "timeout_ms": {"type": "number", "description": "Max execution time", "default": 2000}
    },
    "required": ["code"]
}


def clamp_top_k(top_k: Any) -> int:
    """Coerce to an int in [1, MAX_TOP_K]; unusable values fall back to the default"""
    try:
        value = float(top_k)
    except (TypeError, ValueError):
        value = 0.0
    if not value or math.isnan(value):
        value = DEFAULT_TOP_K
    return int(min(MAX_TOP_K, max(1, value)))


def parse_body(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


class BuiltinTools:
    """
    Implementations of the search, proxy_call and evaluate tools

    Usage:
        tools = BuiltinTools(ToolSettings(google_api_key="..."), SandboxExecutor())
        registry = tools.build_registry()
    """

    def __init__(
        self,
        settings: ToolSettings | None = None,
        sandbox: SandboxExecutor | None = None,
        http_client: httpx.AsyncClient | None = None
    ):
        self.settings = settings or ToolSettings()
        self.sandbox = sandbox or SandboxExecutor()
        self._http_client = http_client

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.settings.http_timeout_seconds) as client:
            yield client

    async def search(self, query: str, top_k: Any = DEFAULT_TOP_K) -> list[dict]:
        """Search Google (CSE) and return a list of {title, link, snippet}"""
        key = (self.settings.google_api_key or "").strip()
        cx = (self.settings.google_cse_id or "").strip()
        if not key or not cx:
            raise ConfigurationError("Google API Key and CSE ID required for search")

        params = {"q": query, "key": key, "cx": cx, "num": clamp_top_k(top_k)}
        try:
            async with self._http() as client:
                response = await client.get(GOOGLE_CSE_URL, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"Google CSE request failed: {e}")

        if not response.is_success:
            raise TransportError(f"Google CSE error: {response.status_code}", response.status_code)

        items = response.json().get("items") or []
        return [
            {"title": item.get("title"), "link": item.get("link"), "snippet": item.get("snippet")}
            for item in items
        ]

    async def proxy_call(
        self,
        endpoint: str,
        payload: dict | None = None,
        method: str = "POST"
    ) -> Any:
        """Call an AI Pipe proxy endpoint with JSON input; returns JSON output"""
        base = (self.settings.aipipe_base_url or "").strip()
        if not base:
            raise ConfigurationError("AI Pipe base URL not set")

        method = str(method).upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported method '{method}', expected one of {ALLOWED_METHODS}")

        url = base.rstrip("/") + endpoint
        headers = {"Content-Type": "application/json"}
        token = (self.settings.aipipe_token or "").strip()
        if token:
            headers["Authorization"] = token

        body = None
        if method == "POST":
            body = json.dumps(payload if payload is not None else {})

        try:
            async with self._http() as client:
                response = await client.request(method, url, headers=headers, content=body)
        except httpx.HTTPError as e:
            raise TransportError(f"AI Pipe request failed: {e}")

        text = response.text
        if not response.is_success:
            raise TransportError(f"AI Pipe error {response.status_code}: {text}", response.status_code)
        return parse_body(text)

    def _coerce_timeout(self, timeout_ms: Any) -> float:
        """Positive finite milliseconds; anything else means the sandbox default"""
        try:
            value = float(timeout_ms)
        except (TypeError, ValueError):
            return self.sandbox.config.timeout_ms
        if not math.isfinite(value) or value <= 0:
            return self.sandbox.config.timeout_ms
        return value

    async def evaluate(self, code: str, timeout_ms: Any = None) -> dict:
        """Run Python code in an isolated sandbox and return logs + result"""
        timeout_ms = min(self._coerce_timeout(timeout_ms), self.settings.max_eval_timeout_ms)

        logger.info(f"Evaluating code in sandbox (timeout {timeout_ms:g} ms)")
        logger.debug(f"Code:\n{code}")
        result = await self.sandbox.run(code, timeout_ms)
        return result.to_payload()

    def build_registry(self) -> ToolRegistry:
        registry = ToolRegistry()
        registry.register_tool(Tool(
            name="search",
            description="Search Google (CSE) and return a list of {title, link, snippet}",
            func=self.search,
            parameters=SEARCH_PARAMETERS,
        ))
        registry.register_tool(Tool(
            name="proxy_call",
            description="Call an AI Pipe proxy endpoint with JSON input; returns JSON output",
            func=self.proxy_call,
            parameters=PROXY_CALL_PARAMETERS,
        ))
        registry.register_tool(Tool(
            name="evaluate",
            description="Securely run Python code in a sandbox and return console output + result",
            func=self.evaluate,
            parameters=EVALUATE_PARAMETERS,
        ))
        registry.freeze()
        return registry
