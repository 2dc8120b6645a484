"""
Agent settings

Every component has its own config dataclass; AgentSettings bundles them and
can be loaded from environment variables:

    OPENAI_API_KEY, OPENAI_BASE_URL       model endpoint
    AGENT_MODEL, AGENT_MAX_LOOPS          orchestrator
    GOOGLE_API_KEY, GOOGLE_CSE_ID         search tool
    AIPIPE_BASE_URL, AIPIPE_TOKEN         proxy_call tool
    SANDBOX_TIMEOUT_MS                    evaluate tool default timeout
"""

import os
from dataclasses import dataclass, field
from typing import Mapping

from .exceptions import ConfigurationError
from .model_client import ModelClientConfig
from .orchestrator import OrchestratorConfig
from .sandbox import SandboxConfig, SandboxExecutor
from .tools import ToolSettings


def _get_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


@dataclass
class AgentSettings:
    """All settings needed to build an agent"""
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    model_client: ModelClientConfig = field(default_factory=ModelClientConfig)
    tools: ToolSettings = field(default_factory=ToolSettings)
    sandbox: SandboxConfig = field(default_factory=SandboxConfig)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AgentSettings":
        env = os.environ if env is None else env

        orchestrator = OrchestratorConfig()
        orchestrator.model = env.get("AGENT_MODEL") or orchestrator.model
        orchestrator.max_loops = _get_number(env, "AGENT_MAX_LOOPS", orchestrator.max_loops, int)

        model_client = ModelClientConfig(api_key=env.get("OPENAI_API_KEY"))
        model_client.base_url = env.get("OPENAI_BASE_URL") or model_client.base_url

        tools = ToolSettings(
            google_api_key=env.get("GOOGLE_API_KEY"),
            google_cse_id=env.get("GOOGLE_CSE_ID"),
            aipipe_base_url=env.get("AIPIPE_BASE_URL"),
            aipipe_token=env.get("AIPIPE_TOKEN"),
        )

        sandbox = SandboxConfig()
        sandbox.timeout_ms = _get_number(env, "SANDBOX_TIMEOUT_MS", sandbox.timeout_ms, float)

        return cls(
            orchestrator=orchestrator,
            model_client=model_client,
            tools=tools,
            sandbox=sandbox,
        )

    def sandbox_executor(self) -> SandboxExecutor:
        return SandboxExecutor(self.sandbox)
