"""
tests/unit/test_bootstrap.py — Runtime wiring + logging context tests
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import structlog

from taskweave.bootstrap import bootstrap
from taskweave.brain.llm_client import BaseLLMClient
from taskweave.capabilities import CapabilityRegistry
from taskweave.config.settings import Settings
from taskweave.exceptions import LLMConnectionError
from taskweave.observability.logger import session_context, setup_logging
from taskweave.reasoning import LLMReasoningProvider, RuleBasedProvider


@pytest.fixture(autouse=True)
def _reset_contextvars():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


class TestSessionContext:
    def test_binds_and_clears(self):
        with session_context("s1", "a1"):
            assert structlog.contextvars.get_contextvars() == {"session_id": "s1", "agent_id": "a1"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_nested_restores_outer(self):
        with session_context("s1", "parent"):
            with session_context("s1", "child"):
                assert structlog.contextvars.get_contextvars()["agent_id"] == "child"
            assert structlog.contextvars.get_contextvars()["agent_id"] == "parent"

    def test_setup_writes_log_file(self, tmp_path):
        setup_logging(level="DEBUG", log_dir=tmp_path, console_output=False)
        assert (tmp_path / "taskweave.log").exists()


class TestBootstrap:
    def test_rules_mode(self):
        settings = Settings(agent={"reasoning": "rules"})

        runtime = bootstrap(settings, configure_logging=False)

        assert isinstance(runtime.provider, RuleBasedProvider)
        assert runtime.llm_client is None
        assert "calculator" in runtime.registry.names()

    def test_llm_mode_uses_given_client(self):
        client = MagicMock(spec=BaseLLMClient)

        runtime = bootstrap(Settings(), llm_client=client, configure_logging=False)

        assert isinstance(runtime.provider, LLMReasoningProvider)
        assert runtime.llm_client is client

    def test_llm_mode_without_key_fails(self):
        with pytest.raises(LLMConnectionError):
            bootstrap(Settings(), configure_logging=False)

    def test_default_configuration_uses_every_capability(self):
        runtime = bootstrap(
            Settings(agent={"reasoning": "rules"}),
            configure_logging=False,
            enable_filesystem=False,
        )
        config = runtime.default_configuration()
        assert set(config.capabilities) == {"calculator", "wait", "get_timestamp"}

    def test_configured_capability_subset(self):
        runtime = bootstrap(
            Settings(agent={"reasoning": "rules", "capabilities": ["calculator"]}),
            configure_logging=False,
        )
        assert runtime.default_configuration().capabilities == ("calculator",)

    @pytest.mark.asyncio
    async def test_new_agent_runs_turn(self):
        registry = CapabilityRegistry()
        runtime = bootstrap(
            Settings(agent={"reasoning": "rules", "capabilities": ["calculator"]}),
            registry=registry,
            configure_logging=False,
        )
        agent = runtime.new_agent(session_id="boot")

        response = await agent.execute("calculate 2+2")

        # Supplied registry is used as-is (empty), so the rule is skipped
        assert response.capability_calls == []
        assert agent.session_id == "boot"
