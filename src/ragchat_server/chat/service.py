"""
Chat Service

Runs one chat turn on top of the RAG pipeline:

1. Persist the incoming message and broadcast it to the conversation.
2. For user messages, retrieve context from the conversation's index.
3. Ask the completion service for a reply, grounded when context was found.
4. Persist and broadcast the bot reply, annotated with the retrieval outcome.

Retrieval failures never reach this layer (they degrade to "no context");
completion failures are answered with a fixed apology so the turn always
produces a reply.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from pydantic import BaseModel

from ..config import settings
from ..conversations.models import ChatMessage, MessageMetadata, utcnow
from ..conversations.store import ConversationStore, DEFAULT_USER_ID
from ..core.errors import CompletionError
from ..llm.client import CompletionClient
from ..llm.prompts import build_prompt
from ..rag.ingestion import Broadcaster
from ..rag.models import RetrievalOutcome
from ..rag.retrieval import RetrievalOrchestrator

logger = logging.getLogger("ragchat.chat")

NEW_MESSAGE_EVENT = "new_message"
FALLBACK_REPLY = "Sorry, I'm having trouble responding right now."


class ChatTurn(BaseModel):
    """Messages produced by one call to ``handle_message``."""
    message: ChatMessage
    reply: Optional[ChatMessage] = None
    retrieval: Optional[RetrievalOutcome] = None


class ChatService:
    """
    Conversation-level chat orchestration.
    """

    def __init__(
        self,
        conversations: ConversationStore,
        retrieval: RetrievalOrchestrator,
        completion: CompletionClient,
        broadcaster: Broadcaster,
        history_limit: Optional[int] = None,
    ) -> None:
        self._conversations = conversations
        self._retrieval = retrieval
        self._completion = completion
        self._broadcaster = broadcaster
        self._history_limit = history_limit or settings.history_limit
        self._last_id = 0

    def _next_message_id(self) -> int:
        # Millisecond timestamps, bumped so ids stay unique within a process.
        self._last_id = max(int(utcnow().timestamp() * 1000), self._last_id + 1)
        return self._last_id

    async def join(self, convo_id: str, user_id: str) -> List[ChatMessage]:
        """
        Ensure the conversation exists and return its recent history.
        """
        await self._conversations.upsert_conversation(convo_id, user_id)
        return await self._conversations.get_history(convo_id, limit=self._history_limit)

    async def handle_message(
        self,
        convo_id: str,
        message: str,
        sender: Any = "user",
        user_id: str = DEFAULT_USER_ID,
    ) -> ChatTurn:
        """
        Persist a message and, for user messages, produce the bot reply.
        """
        incoming = ChatMessage(
            id=self._next_message_id(),
            sender=sender,
            message=message,
        )
        await self._conversations.add_message(convo_id, incoming, user_id)
        await self._broadcaster.emit_to_conversation(convo_id, NEW_MESSAGE_EVENT, incoming)

        if incoming.sender != "user":
            return ChatTurn(message=incoming)

        outcome = await self._retrieval.retrieve(convo_id, message)

        try:
            reply_text = await self._completion.complete(build_prompt(message, outcome))
            metadata = MessageMetadata(
                rag_context=outcome.context_used,
                chunks=outcome.chunk_count,
            )
        except CompletionError as exc:
            logger.error("Bot response error for %s: %s", convo_id, exc)
            reply_text = FALLBACK_REPLY
            metadata = MessageMetadata()

        reply = ChatMessage(
            id=self._next_message_id(),
            sender="bot",
            message=reply_text,
            metadata=metadata,
        )
        await self._conversations.add_message(convo_id, reply, user_id)
        await self._broadcaster.emit_to_conversation(convo_id, NEW_MESSAGE_EVENT, reply)

        return ChatTurn(message=incoming, reply=reply, retrieval=outcome)
