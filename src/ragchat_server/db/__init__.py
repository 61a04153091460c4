"""
Database Package

Provides SQLAlchemy async session management and model definitions for the
SQL-backed conversation store.
"""

from .session import create_session_factory, create_schema
from .models import Base, Conversation, ConversationMessage, ConversationDocument

__all__ = [
    "create_session_factory",
    "create_schema",
    "Base",
    "Conversation",
    "ConversationMessage",
    "ConversationDocument",
]
