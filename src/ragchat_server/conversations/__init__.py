"""
Conversation Persistence Package
"""

from .models import (
    ChatMessage,
    ConversationSummary,
    DocumentRecord,
    MessageMetadata,
)
from .store import ConversationStore, InMemoryConversationStore
from .sql_store import SqlConversationStore

__all__ = [
    "ChatMessage",
    "ConversationSummary",
    "DocumentRecord",
    "MessageMetadata",
    "ConversationStore",
    "InMemoryConversationStore",
    "SqlConversationStore",
]
