"""
Conversation Store

Persistence collaborator for conversation records: message history, upload
timestamps and per-file document metadata.

This module defines the abstract interface plus an in-memory implementation.
The in-memory store is:

- Process-local (no persistence across restarts)
- Thread-safe via a re-entrant lock
- Copy-on-read (callers cannot mutate internal state)

A SQLAlchemy-backed implementation with the same interface lives in
``sql_store``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from threading import RLock
from typing import Dict, List, Optional

from .models import ChatMessage, ConversationSummary, DocumentRecord, utcnow

DEFAULT_USER_ID = "default"


class ConversationStore(ABC):
    """
    Interface consumed by the ingestion pipeline and the chat service.
    """

    @abstractmethod
    async def upsert_conversation(self, convo_id: str, user_id: str) -> None:
        """Create the conversation if it does not exist yet."""

    @abstractmethod
    async def clear_messages(self, convo_id: str) -> None:
        """Drop the conversation's message history."""

    @abstractmethod
    async def set_last_upload(self, convo_id: str, timestamp: datetime) -> None:
        """Record when documents were last uploaded."""

    @abstractmethod
    async def append_document_metadata(
        self,
        convo_id: str,
        record: DocumentRecord,
    ) -> None:
        """Append one file's metadata, creating the conversation if needed."""

    @abstractmethod
    async def add_message(
        self,
        convo_id: str,
        message: ChatMessage,
        user_id: str = DEFAULT_USER_ID,
    ) -> None:
        """Append a message, creating the conversation if needed."""

    @abstractmethod
    async def get_history(
        self,
        convo_id: str,
        limit: Optional[int] = None,
    ) -> List[ChatMessage]:
        """Return the most recent messages, oldest first."""

    @abstractmethod
    async def get_documents(self, convo_id: str) -> List[DocumentRecord]:
        """Return document metadata in upload order."""

    @abstractmethod
    async def get_last_upload(self, convo_id: str) -> Optional[datetime]:
        """Return the last upload timestamp, if any."""

    @abstractmethod
    async def list_conversations(
        self,
        user_id: str,
        limit: int = 50,
    ) -> List[ConversationSummary]:
        """Return a user's conversations, most recently updated first."""

    async def initialize(self) -> None:
        """Prepare backing storage (e.g. create tables)."""

    async def ping(self) -> bool:
        """Return True when the store is usable."""
        return True

    async def close(self) -> None:
        """Release any held resources."""


# ---------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------

@dataclass
class _ConversationState:
    convo_id: str
    user_id: str
    messages: List[ChatMessage] = field(default_factory=list)
    documents: List[DocumentRecord] = field(default_factory=list)
    last_upload: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


class InMemoryConversationStore(ConversationStore):
    """
    In-memory store mapping conversation ids to their state.
    """

    def __init__(self, max_messages_per_conversation: Optional[int] = None) -> None:
        """
        Parameters
        ----------
        max_messages_per_conversation : Optional[int]
            If provided, each conversation keeps only its most recent N
            messages.
        """
        self._store: Dict[str, _ConversationState] = {}
        self._lock = RLock()
        self._max_messages = max_messages_per_conversation

    def _get_or_create(self, convo_id: str, user_id: str) -> _ConversationState:
        state = self._store.get(convo_id)
        if state is None:
            state = _ConversationState(convo_id=convo_id, user_id=user_id)
            self._store[convo_id] = state
        return state

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    async def upsert_conversation(self, convo_id: str, user_id: str) -> None:
        with self._lock:
            self._get_or_create(convo_id, user_id)

    async def clear_messages(self, convo_id: str) -> None:
        with self._lock:
            state = self._store.get(convo_id)
            if state is None:
                return
            state.messages = []
            state.updated_at = utcnow()

    async def set_last_upload(self, convo_id: str, timestamp: datetime) -> None:
        with self._lock:
            state = self._store.get(convo_id)
            if state is None:
                return
            state.last_upload = timestamp
            state.updated_at = utcnow()

    async def append_document_metadata(
        self,
        convo_id: str,
        record: DocumentRecord,
    ) -> None:
        with self._lock:
            state = self._get_or_create(convo_id, DEFAULT_USER_ID)
            state.documents.append(record)
            state.last_upload = record.uploaded_at
            state.updated_at = utcnow()

    async def add_message(
        self,
        convo_id: str,
        message: ChatMessage,
        user_id: str = DEFAULT_USER_ID,
    ) -> None:
        with self._lock:
            state = self._get_or_create(convo_id, user_id)
            state.messages.append(message.model_copy(deep=True))

            if self._max_messages is not None and self._max_messages > 0:
                excess = len(state.messages) - self._max_messages
                if excess > 0:
                    state.messages = state.messages[excess:]

            state.updated_at = utcnow()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_history(
        self,
        convo_id: str,
        limit: Optional[int] = None,
    ) -> List[ChatMessage]:
        with self._lock:
            state = self._store.get(convo_id)
            if state is None:
                return []
            messages = state.messages[-limit:] if limit else state.messages
            return [m.model_copy(deep=True) for m in messages]

    async def get_documents(self, convo_id: str) -> List[DocumentRecord]:
        with self._lock:
            state = self._store.get(convo_id)
            return list(state.documents) if state else []

    async def get_last_upload(self, convo_id: str) -> Optional[datetime]:
        with self._lock:
            state = self._store.get(convo_id)
            return state.last_upload if state else None

    async def list_conversations(
        self,
        user_id: str,
        limit: int = 50,
    ) -> List[ConversationSummary]:
        with self._lock:
            states = sorted(
                (s for s in self._store.values() if s.user_id == user_id),
                key=lambda s: s.updated_at,
                reverse=True,
            )[:limit]

            return [
                ConversationSummary(
                    convo_id=s.convo_id,
                    message_count=len(s.messages),
                    last_message=s.messages[-1].message if s.messages else "No messages",
                    last_message_time=s.updated_at,
                    created_at=s.created_at,
                    has_documents=bool(s.documents),
                )
                for s in states
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
