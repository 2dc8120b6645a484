"""Tests for environment-driven settings."""

import pytest

from sandboxed_agent.config import AgentSettings
from sandboxed_agent.exceptions import ConfigurationError
from sandboxed_agent.sandbox import SandboxExecutor


class TestAgentSettings:
    """Tests for AgentSettings.from_env."""

    def test_defaults(self):
        """Test an empty environment yields the defaults."""
        settings = AgentSettings.from_env({})
        assert settings.orchestrator.model == "gpt-4o-mini"
        assert settings.orchestrator.max_loops == 6
        assert settings.model_client.api_key is None
        assert settings.model_client.base_url == "https://api.openai.com/v1"
        assert settings.tools.google_api_key is None
        assert settings.tools.aipipe_base_url is None
        assert settings.sandbox.timeout_ms == 2000.0

    def test_reads_environment(self):
        """Test every supported variable."""
        settings = AgentSettings.from_env({
            "OPENAI_API_KEY": "sk-1",
            "OPENAI_BASE_URL": "https://proxy.example.com/v1",
            "AGENT_MODEL": "gpt-4.1",
            "AGENT_MAX_LOOPS": "3",
            "GOOGLE_API_KEY": "gk",
            "GOOGLE_CSE_ID": "cx",
            "AIPIPE_BASE_URL": "https://pipe.example.com",
            "AIPIPE_TOKEN": "Bearer t",
            "SANDBOX_TIMEOUT_MS": "750",
        })
        assert settings.model_client.api_key == "sk-1"
        assert settings.model_client.base_url == "https://proxy.example.com/v1"
        assert settings.orchestrator.model == "gpt-4.1"
        assert settings.orchestrator.max_loops == 3
        assert settings.tools.google_api_key == "gk"
        assert settings.tools.google_cse_id == "cx"
        assert settings.tools.aipipe_base_url == "https://pipe.example.com"
        assert settings.tools.aipipe_token == "Bearer t"
        assert settings.sandbox.timeout_ms == 750.0

    def test_blank_numbers_use_defaults(self):
        """Test blank numeric variables are ignored."""
        settings = AgentSettings.from_env({"AGENT_MAX_LOOPS": "  ", "SANDBOX_TIMEOUT_MS": ""})
        assert settings.orchestrator.max_loops == 6
        assert settings.sandbox.timeout_ms == 2000.0

    @pytest.mark.parametrize("name,value", [
        ("AGENT_MAX_LOOPS", "six"),
        ("AGENT_MAX_LOOPS", "2.5"),
        ("SANDBOX_TIMEOUT_MS", "fast"),
    ])
    def test_invalid_numbers(self, name, value):
        """Test malformed numbers are configuration errors."""
        with pytest.raises(ConfigurationError) as exc_info:
            AgentSettings.from_env({name: value})
        assert name in str(exc_info.value)

    def test_reads_process_environment(self, monkeypatch):
        """Test os.environ is used when no mapping is given."""
        monkeypatch.setenv("AGENT_MODEL", "env-model")
        monkeypatch.delenv("AGENT_MAX_LOOPS", raising=False)
        monkeypatch.delenv("SANDBOX_TIMEOUT_MS", raising=False)
        assert AgentSettings.from_env().orchestrator.model == "env-model"

    def test_sandbox_executor(self):
        """Test the executor is built from the sandbox settings."""
        settings = AgentSettings.from_env({"SANDBOX_TIMEOUT_MS": "500"})
        executor = settings.sandbox_executor()
        assert isinstance(executor, SandboxExecutor)
        assert executor.config.timeout_ms == 500.0
