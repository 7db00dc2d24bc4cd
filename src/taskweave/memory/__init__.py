"""
memory/ — Per-session working memory and conversation log.
"""

from taskweave.memory.session_memory import SessionMemory

__all__ = ["SessionMemory"]
