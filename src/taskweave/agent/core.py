"""
agent/core.py — Agent Core

Drives one session through the turn state machine:

    IDLE → THINKING → EXECUTING_CAPABILITY* → COMPLETED | ERROR
                                            ↘ WAITING_FOR_INPUT (interactive mode)

Turn flow (execute):
    0. iteration cap check
    1. append user message, iteration_count += 1
    2. provider.think()
    3. capability calls, sequential and in declared order
    4. synthesis pass (providers that support it, only when calls ran)
    5. append assistant message, final status, AgentResponse

execute() never raises. A failure anywhere in the turn becomes a normal
response with status=ERROR.

Usage:
    agent = Agent(configuration, registry, provider)
    response = await agent.execute("calculate 2 + 2")
    print(response.message)
"""

from __future__ import annotations

import copy
import uuid
from typing import Any, Optional

from taskweave.agent.delegation import DelegationManager
from taskweave.agent.state import (
    AgentContext,
    AgentMode,
    AgentResponse,
    AgentStatus,
    SessionConfiguration,
    SessionState,
)
from taskweave.brain.types import Message, utcnow
from taskweave.capabilities.registry import CapabilityRegistry
from taskweave.capabilities.types import CapabilityResult
from taskweave.exceptions import IterationLimitError
from taskweave.memory.session_memory import SessionMemory
from taskweave.observability.logger import get_logger, session_context
from taskweave.reasoning.base import ReasoningProvider
from taskweave.reasoning.types import CapabilityCall, Decision, NextAction

log = get_logger(__name__)

RESULT_KEY_PREFIX = "capability_result_"

# Fields update_context() accepts
_CONTEXT_FIELDS = frozenset({"environment", "working_memory", "messages", "parent_id"})


def result_key(capability_name: str) -> str:
    """Working-memory key under which a capability's latest result is stored."""
    return f"{RESULT_KEY_PREFIX}{capability_name}"


class Agent:
    """
    One orchestration session.

    Args:
        configuration: Immutable session configuration.
        registry:      Capability registry (shared across agents).
        provider:      Reasoning strategy.
        session_id:    Session namespace; a new one is generated if omitted.
        parent_id:     Informational id of the spawning agent, if any.
        memory:        Pre-built SessionMemory. Built from configuration if omitted.
    """

    def __init__(
        self,
        configuration: SessionConfiguration,
        registry: CapabilityRegistry,
        provider: ReasoningProvider,
        session_id: Optional[str] = None,
        parent_id: Optional[str] = None,
        memory: Optional[SessionMemory] = None,
        environment: Optional[dict[str, Any]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.configuration = configuration
        self.session_id = session_id or str(uuid.uuid4())
        self.parent_id = parent_id

        self._registry = registry
        self._provider = provider
        self._memory = memory or SessionMemory(
            self.session_id,
            path=configuration.memory.resolve_path(
                self.session_id, agent_id=self.id if parent_id else None,
            ),
        )
        self._environment: dict[str, Any] = dict(environment or {})
        self._delegation = DelegationManager(self)

        self._status = AgentStatus.IDLE
        self._iteration_count = 0
        self._current_task: Optional[str] = None
        self._start_time = utcnow()
        self._end_time = None

    # ── Accessors ─────────────────────────────────────────────────────────────

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def provider(self) -> ReasoningProvider:
        return self._provider

    @property
    def memory(self) -> SessionMemory:
        return self._memory

    @property
    def delegation(self) -> DelegationManager:
        return self._delegation

    @property
    def status(self) -> AgentStatus:
        return self._status

    @property
    def iteration_count(self) -> int:
        return self._iteration_count

    @property
    def available_capabilities(self) -> list[str]:
        """Configured capability names that are currently registered."""
        return [n for n in self.configuration.capabilities if self._registry.has(n)]

    @property
    def state(self) -> SessionState:
        """Deep-copied, frozen snapshot of the session."""
        return SessionState(
            id=self.id,
            configuration=self.configuration,
            status=self._status,
            context=AgentContext(
                session_id=self.session_id,
                parent_id=self.parent_id,
                messages=[m.model_copy(deep=True) for m in self._memory.history()],
                working_memory=copy.deepcopy(self._memory.working_memory),
                available_capabilities=self.available_capabilities,
                environment=copy.deepcopy(self._environment),
            ),
            current_task=self._current_task,
            iteration_count=self._iteration_count,
            subagents=self._delegation.snapshots(),
            start_time=self._start_time,
            end_time=self._end_time,
        )

    # ── Turn execution ────────────────────────────────────────────────────────

    async def execute(self, user_input: str) -> AgentResponse:
        """Run one turn. Never raises."""
        with session_context(self.session_id, self.id):
            try:
                return await self._run_turn(user_input)
            except IterationLimitError as e:
                self._fail()
                log.warning("agent.iteration_limit", limit=e.limit, iterations=self._iteration_count)
                return AgentResponse.error(
                    f"Error: {e}", error=str(e), error_type="iteration_limit"
                )
            except Exception as e:
                self._fail()
                log.error(
                    "agent.execute.unhandled",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                return AgentResponse.error(
                    f"Error: {e}", error=str(e), error_type=type(e).__name__
                )

    async def _run_turn(self, user_input: str) -> AgentResponse:
        # ── Step 0: Iteration cap ─────────────────────────────────────────────
        limit = self.configuration.max_iterations
        if limit is not None and self._iteration_count >= limit:
            raise IterationLimitError(limit)

        # ── Step 1: Record input ──────────────────────────────────────────────
        self._memory.add_message(Message.user(user_input))
        self._iteration_count += 1
        self._current_task = user_input
        self._end_time = None
        self._status = AgentStatus.THINKING

        log.info(
            "agent.turn_start",
            agent=self.configuration.name,
            iteration=self._iteration_count,
            input_preview=user_input[:80],
        )

        # ── Step 2: Reason ────────────────────────────────────────────────────
        try:
            decision = await self._provider.think(
                self.configuration.system_prompt,
                self._memory.history()[:-1],
                self.available_capabilities,
                user_input,
            )
        except Exception as e:
            self._fail()
            log.error("agent.think_failed", error=str(e), error_type=type(e).__name__)
            return AgentResponse.error(
                f"Error: {e}", error=str(e), error_type=type(e).__name__
            )

        # ── Step 3: Capabilities ──────────────────────────────────────────────
        if decision.capability_calls:
            await self._dispatch(decision.capability_calls)

        # ── Step 4: Synthesis ─────────────────────────────────────────────────
        message = decision.message
        if decision.capability_calls and self._provider.supports_synthesis:
            message = await self._synthesize(user_input, decision)

        # ── Step 5: Finalise ──────────────────────────────────────────────────
        self._memory.add_message(Message.assistant(
            message,
            metadata={
                "reasoning": decision.metadata.get("reasoning"),
                "capability_calls": [c.to_dict() for c in decision.capability_calls],
            },
        ))

        if (
            self.configuration.mode == AgentMode.INTERACTIVE
            and decision.next_action == NextAction.AWAIT_INPUT
        ):
            self._status = AgentStatus.WAITING_FOR_INPUT
        else:
            self._status = AgentStatus.COMPLETED
        self._end_time = utcnow()

        log.info(
            "agent.turn_done",
            status=self._status.value,
            calls=len(decision.capability_calls),
            next_action=decision.next_action.value,
        )
        return AgentResponse.from_decision(decision, message=message)

    async def _dispatch(self, calls: list[CapabilityCall]) -> None:
        """Invoke each call in order. A failed result never stops the rest."""
        self._status = AgentStatus.EXECUTING_CAPABILITY
        allowed = set(self.configuration.capabilities)

        for call in calls:
            if call.name in allowed:
                result = await self._registry.invoke(call.name, call.parameters)
            else:
                log.warning("agent.capability_not_allowed", capability=call.name)
                result = CapabilityResult.fail(
                    f'Capability "{call.name}" is not available to agent '
                    f'"{self.configuration.name}"',
                    error_type="not_allowed",
                )

            self._memory.set(result_key(call.name), result.to_dict())
            self._memory.add_message(Message.tool(
                result.to_json(),
                metadata={
                    "capability": call.name,
                    "parameters": call.parameters,
                    "reasoning": call.reasoning,
                },
            ))

    async def _synthesize(self, user_input: str, decision: Decision) -> str:
        try:
            summary = await self._provider.synthesize(
                user_input, decision, self._memory.history()
            )
        except Exception as e:
            log.warning("agent.synthesis_failed", error=str(e), error_type=type(e).__name__)
            return decision.message

        if summary is None or summary.is_error or not summary.message:
            log.debug("agent.synthesis_skipped")
            return decision.message
        return summary.message

    def _fail(self) -> None:
        self._status = AgentStatus.ERROR
        self._end_time = utcnow()

    # ── Context & persistence ─────────────────────────────────────────────────

    def update_context(self, **changes: Any) -> None:
        """
        Merge changes into the session context.

        environment     → dict merged into the environment
        working_memory  → dict of keys written to working memory
        messages        → iterable of Messages appended to the history
        parent_id       → replaces the informational parent id
        """
        unknown = set(changes) - _CONTEXT_FIELDS
        if unknown:
            raise ValueError(f"Unknown context fields: {sorted(unknown)}")

        if "environment" in changes:
            self._environment.update(changes["environment"] or {})
        for key, value in (changes.get("working_memory") or {}).items():
            self._memory.set(key, value)
        for message in changes.get("messages") or ():
            self._memory.add_message(message)
        if "parent_id" in changes:
            self.parent_id = changes["parent_id"]

        log.debug("agent.context_updated", fields=sorted(changes))

    async def persist(self) -> Optional[str]:
        """Write the memory snapshot when persistence is enabled. Returns the path."""
        if not self._persistence_enabled():
            log.debug("agent.persist_skipped", reason="persistence disabled")
            return None
        path = await self._memory.persist()
        return str(path)

    async def load_memory(self) -> bool:
        """Load the memory snapshot when persistence is enabled."""
        if not self._persistence_enabled():
            return False
        return await self._memory.load()

    def _persistence_enabled(self) -> bool:
        options = self.configuration.memory
        return options.enabled and options.persist_to_disk

    # ── Delegation ────────────────────────────────────────────────────────────

    async def spawn_subagent(
        self,
        configuration: SessionConfiguration,
        task: str,
        provider: Optional[ReasoningProvider] = None,
    ) -> AgentResponse:
        """See DelegationManager.spawn."""
        return await self._delegation.spawn(configuration, task, provider=provider)

    def __repr__(self) -> str:
        return (
            f"<Agent name={self.configuration.name} id={self.id[:8]} "
            f"status={self._status.value} iterations={self._iteration_count}>"
        )
