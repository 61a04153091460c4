"""
Conversation Data Models

Pydantic models exchanged with the conversation-persistence collaborator and
returned over the API. Field aliases keep the camelCase wire names the chat
clients already speak (``convoId``, ``ragContext`` ...).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageMetadata(BaseModel):
    """
    Retrieval outcome attached to a chat message.
    """

    rag_context: bool = Field(default=False, alias="ragContext")
    chunks: int = Field(default=0, ge=0)

    model_config = ConfigDict(populate_by_name=True)


class ChatMessage(BaseModel):
    """
    A single persisted chat message.
    """

    id: int
    sender: Literal["user", "bot"]
    message: str = Field(..., min_length=1)
    ts: datetime = Field(default_factory=utcnow)
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)

    model_config = ConfigDict(populate_by_name=True)


class DocumentRecord(BaseModel):
    """
    Metadata for one successfully ingested file.
    """

    filename: str = Field(..., min_length=1)
    uploaded_at: datetime = Field(default_factory=utcnow, alias="uploadedAt")
    chunks: int = Field(..., ge=0)
    words: int = Field(..., ge=0)
    storage_url: Optional[str] = Field(default=None, alias="storageUrl")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ConversationSummary(BaseModel):
    """
    One row of a user's conversation list.
    """

    convo_id: str = Field(..., alias="convoId")
    message_count: int = Field(..., ge=0, alias="messageCount")
    last_message: str = Field(..., alias="lastMessage")
    last_message_time: datetime = Field(..., alias="lastMessageTime")
    created_at: datetime = Field(..., alias="createdAt")
    has_documents: bool = Field(..., alias="hasDocuments")

    model_config = ConfigDict(populate_by_name=True)
