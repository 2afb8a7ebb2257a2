"""
soulycore.services - Service layer

Wires the memory core together and drives chat turns through it.
"""

from soulycore.services.chat_service import ChatService, ChatTurnResult
from soulycore.services.memory_core import MemoryCore, build_memory_core

__all__ = ["ChatService", "ChatTurnResult", "MemoryCore", "build_memory_core"]
