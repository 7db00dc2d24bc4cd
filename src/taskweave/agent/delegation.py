"""
agent/delegation.py — Delegation Manager

Spawns child agents on behalf of a parent. The parent owns an
id → SessionState map of terminal snapshots; children hold no reference
back to the parent, only its id for information.

spawn() raises exactly two errors to its caller:
    SubagentPermissionError  → parent configuration forbids spawning
    QuotaError               → parent already holds max_subagents children
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from taskweave.exceptions import QuotaError, SubagentPermissionError
from taskweave.observability.logger import get_logger

if TYPE_CHECKING:
    from taskweave.agent.core import Agent
    from taskweave.agent.state import AgentResponse, SessionConfiguration, SessionState
    from taskweave.reasoning.base import ReasoningProvider

log = get_logger(__name__)


class DelegationManager:

    def __init__(self, owner: "Agent"):
        self._owner_id = owner.id
        self._owner_config = owner.configuration
        self._session_id = owner.session_id
        self._registry = owner.registry
        self._default_provider = owner.provider
        self._snapshots: dict[str, "SessionState"] = {}

    @property
    def count(self) -> int:
        return len(self._snapshots)

    def snapshots(self) -> dict[str, "SessionState"]:
        return dict(self._snapshots)

    def get(self, child_id: str) -> Optional["SessionState"]:
        return self._snapshots.get(child_id)

    async def spawn(
        self,
        configuration: "SessionConfiguration",
        task: str,
        provider: Optional["ReasoningProvider"] = None,
    ) -> "AgentResponse":
        """
        Run `task` to completion in a new child agent.

        The child shares the capability registry and the session id but gets
        its own SessionMemory. Its terminal snapshot is stored under the
        child's id, which is also returned in response.metadata["subagent_id"].

        Raises:
            SubagentPermissionError: spawning is not allowed for this agent.
            QuotaError:              max_subagents reached; count unchanged.
        """
        if not self._owner_config.can_spawn_subagents:
            raise SubagentPermissionError(self._owner_config.name)

        limit = self._owner_config.max_subagents
        if self.count >= limit:
            log.warning("delegation.quota_reached", limit=limit)
            raise QuotaError(limit)

        from taskweave.agent.core import Agent

        child = Agent(
            configuration,
            self._registry,
            provider or self._default_provider,
            session_id=self._session_id,
            parent_id=self._owner_id,
        )
        log.info(
            "delegation.spawn",
            child=configuration.name,
            child_id=child.id,
            parent_id=self._owner_id,
        )

        response = await child.execute(task)
        self._snapshots[child.id] = child.state

        log.info(
            "delegation.child_done",
            child_id=child.id,
            status=child.status.value,
            subagents=self.count,
        )
        response.metadata["subagent_id"] = child.id
        return response

    def __repr__(self) -> str:
        return f"<DelegationManager owner={self._owner_id[:8]} subagents={self.count}>"
