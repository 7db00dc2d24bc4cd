"""
bootstrap.py — Runtime Factory

Composition root: builds the process-wide capability registry, the LLM
client and the reasoning provider once from settings. Agents receive these
explicitly; nothing else in the package creates shared instances.

Usage:
    from taskweave.bootstrap import bootstrap

    runtime = bootstrap(load_settings())
    agent = runtime.new_agent()
    response = await agent.execute("calculate 2 + 2")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from taskweave.agent.core import Agent
from taskweave.agent.state import SessionConfiguration
from taskweave.brain import LLMClientFactory
from taskweave.brain.llm_client import BaseLLMClient
from taskweave.capabilities import CapabilityRegistry, setup_capabilities
from taskweave.observability.logger import get_logger, setup_logging_from_settings
from taskweave.reasoning.base import ReasoningProvider
from taskweave.reasoning.generative import LLMReasoningProvider
from taskweave.reasoning.rules import RuleBasedProvider

log = get_logger(__name__)


@dataclass
class Runtime:
    """All wired components returned by bootstrap()."""
    settings: Any
    registry: CapabilityRegistry
    provider: ReasoningProvider
    llm_client: Optional[BaseLLMClient] = None

    def default_configuration(self, **overrides: Any) -> SessionConfiguration:
        capabilities = self.settings.agent.capabilities or self.registry.names()
        return SessionConfiguration.from_settings(
            self.settings, capabilities=capabilities, **overrides
        )

    def new_agent(
        self,
        configuration: Optional[SessionConfiguration] = None,
        session_id: Optional[str] = None,
    ) -> Agent:
        return Agent(
            configuration or self.default_configuration(),
            self.registry,
            self.provider,
            session_id=session_id,
        )


def bootstrap(
    settings,
    *,
    registry: Optional[CapabilityRegistry] = None,
    llm_client: Optional[BaseLLMClient] = None,
    configure_logging: bool = True,
    enable_utility: bool = True,
    enable_filesystem: bool = True,
) -> Runtime:
    """
    Wire up the runtime from settings.

    Args:
        settings:          Loaded Settings object.
        registry:          Pre-built registry; a new one with the built-in
                           capabilities is created if omitted.
        llm_client:        Pre-created LLM client (used when agent.reasoning
                           is "llm"); built from settings if omitted.
        configure_logging: Apply the `logging` settings section.
    """
    if configure_logging:
        setup_logging_from_settings(settings)

    if registry is None:
        registry = setup_capabilities(
            CapabilityRegistry(),
            enable_utility=enable_utility,
            enable_filesystem=enable_filesystem,
        )

    provider: ReasoningProvider
    if settings.agent.reasoning == "rules":
        provider = RuleBasedProvider()
    else:
        llm_client = llm_client or LLMClientFactory.from_settings(settings)
        provider = LLMReasoningProvider(
            llm_client,
            LLMClientFactory.config_from_settings(settings),
            registry,
        )

    log.info(
        "bootstrap.ready",
        reasoning=settings.agent.reasoning,
        capabilities=registry.names(),
    )
    return Runtime(settings=settings, registry=registry, provider=provider, llm_client=llm_client)
