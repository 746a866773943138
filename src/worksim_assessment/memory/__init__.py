"""
Memory module for coworker conversation context.
"""

from worksim_assessment.memory.conversation_memory import (
    ConversationMemoryBuilder,
    CoworkerMemory,
)

__all__ = [
    "ConversationMemoryBuilder",
    "CoworkerMemory",
]
