"""
memory/session_memory.py — Session Memory

Per-session state owned by exactly one Agent:

  - working memory   → key/value store, last write wins
  - conversation log → append-only list of Messages; prune() is the only
                       operation that ever removes entries
  - snapshot         → optional JSON file, rewritten atomically by persist()

Snapshot format (the sole on-disk contract for load()):

    {
      "workingMemory":       [[key, value], ...],
      "conversationHistory": [{role, content, metadata?, timestamp}, ...],
      "timestamp":           "2024-01-01T00:00:00+00:00"
    }

File I/O runs in the default executor so the event loop never blocks on disk.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from taskweave.brain.types import Message, utcnow
from taskweave.exceptions import MemoryNotConfiguredError, MemoryStoreError
from taskweave.observability.logger import get_logger

log = get_logger(__name__)


class SessionMemory:
    """
    Working memory + conversation log for one session.

    Not thread-safe and not meant to be shared: each Agent (including each
    subagent) constructs its own instance.
    """

    def __init__(self, session_id: str, path: Optional[str | Path] = None):
        self.session_id = session_id
        self.path: Optional[Path] = Path(path) if path is not None else None
        self._working: dict[str, Any] = {}
        self._history: list[Message] = []

    # ── Working memory ────────────────────────────────────────────────────────

    def set(self, key: str, value: Any) -> None:
        self._working[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._working.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._working

    def keys(self) -> list[str]:
        return list(self._working)

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        return self._working.pop(key, _MISSING) is not _MISSING

    def clear_working_memory(self) -> None:
        self._working.clear()

    @property
    def working_memory(self) -> dict[str, Any]:
        """Shallow copy of the working store."""
        return dict(self._working)

    # ── Conversation log ──────────────────────────────────────────────────────

    def add_message(self, message: Message) -> Message:
        """Append a message. Message assigns its own timestamp when none is given."""
        self._history.append(message)
        return message

    def history(self) -> list[Message]:
        return list(self._history)

    def get_recent(self, n: int) -> list[Message]:
        """The last min(n, len) messages in original order."""
        if n <= 0:
            return []
        return list(self._history[-n:])

    def search(self, text: str) -> list[Message]:
        """Case-insensitive substring scan over message content."""
        needle = text.lower()
        return [m for m in self._history if needle in m.content.lower()]

    def prune(self, keep_last: int) -> int:
        """
        Drop all but the last `keep_last` messages.

        Returns:
            Number of messages removed.
        """
        keep_last = max(0, keep_last)
        removed = max(0, len(self._history) - keep_last)
        if removed:
            self._history = self._history[removed:]
            log.debug("memory.pruned", session_id=self.session_id, removed=removed)
        return removed

    def clear_conversation(self) -> None:
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)

    # ── Introspection ─────────────────────────────────────────────────────────

    def stats(self) -> dict[str, Any]:
        return {
            "working_memory_size": len(self._working),
            "conversation_length": len(self._history),
            "session_id": self.session_id,
        }

    def export(self) -> dict[str, Any]:
        """Deep, JSON-safe copy of the whole session memory."""
        return json.loads(json.dumps(
            {
                "sessionId": self.session_id,
                "workingMemory": self._working,
                "conversationHistory": [m.to_record() for m in self._history],
            },
            default=str,
        ))

    # ── Persistence ───────────────────────────────────────────────────────────

    async def persist(self) -> Path:
        """
        Atomically rewrite the snapshot file.

        The payload goes to a temp file in the target directory and is moved
        into place with os.replace(). The temp file is removed on every
        failure path.

        Raises:
            MemoryNotConfiguredError: no snapshot path configured.
            MemoryStoreError:         serialisation or filesystem failure.
        """
        path = self._require_path()
        payload = {
            "workingMemory": [[k, copy.deepcopy(v)] for k, v in self._working.items()],
            "conversationHistory": [m.to_record() for m in self._history],
            "timestamp": utcnow().isoformat(),
        }

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, indent=2, default=str)
                os.replace(tmp_name, path)
            except BaseException:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
                raise

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, _write)
        except (OSError, TypeError, ValueError) as e:
            log.error("memory.persist_failed", session_id=self.session_id,
                      path=str(path), error=str(e))
            raise MemoryStoreError(f"Failed to persist memory to {path}: {e}") from e

        log.info(
            "memory.persisted",
            session_id=self.session_id,
            path=str(path),
            messages=len(self._history),
            keys=len(self._working),
        )
        return path

    async def load(self) -> bool:
        """
        Replace current state with the snapshot on disk.

        A missing file is an empty initial state, not an error.

        Returns:
            True if a snapshot was read, False if none existed.

        Raises:
            MemoryNotConfiguredError: no snapshot path configured.
            MemoryStoreError:         unreadable or malformed snapshot.
        """
        path = self._require_path()

        def _read() -> Optional[str]:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

        loop = asyncio.get_running_loop()
        try:
            raw = await loop.run_in_executor(None, _read)
        except OSError as e:
            raise MemoryStoreError(f"Failed to read memory from {path}: {e}") from e

        if raw is None:
            self._working = {}
            self._history = []
            log.debug("memory.load_empty", session_id=self.session_id, path=str(path))
            return False

        try:
            data = json.loads(raw)
            working = {str(k): v for k, v in data.get("workingMemory", [])}
            history = [Message.model_validate(r) for r in data.get("conversationHistory", [])]
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError, ValidationError) as e:
            log.error("memory.load_failed", session_id=self.session_id,
                      path=str(path), error=str(e))
            raise MemoryStoreError(f"Malformed memory snapshot at {path}: {e}") from e

        self._working = working
        self._history = history
        log.info(
            "memory.loaded",
            session_id=self.session_id,
            path=str(path),
            messages=len(history),
            keys=len(working),
        )
        return True

    def _require_path(self) -> Path:
        if self.path is None:
            raise MemoryNotConfiguredError(
                f"Session {self.session_id} has no memory path configured"
            )
        return self.path

    def __repr__(self) -> str:
        return (
            f"<SessionMemory session={self.session_id} "
            f"messages={len(self._history)} keys={len(self._working)}>"
        )


_MISSING = object()
