"""
API Models

Pydantic models for request/response validation across the upload, chat,
conversation and WebSocket surfaces. Wire names are camelCase via aliases.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ConfigDict

from ..conversations.models import ConversationSummary, DocumentRecord
from ..rag.models import FileResult


# ---------------------------------------------------------------------
# Upload Models
# ---------------------------------------------------------------------

class UploadResponse(BaseModel):
    """
    Per-file ingestion results, in upload order.
    """
    results: List[FileResult]


# ---------------------------------------------------------------------
# Chat Models
# ---------------------------------------------------------------------

class ChatRequest(BaseModel):
    """
    One chat message sent to a conversation.
    """
    convo_id: str = Field(..., min_length=1, alias="convoId")
    message: str = Field(..., min_length=1)
    sender: Literal["user", "bot"] = "user"
    user_id: Optional[str] = Field(default=None, alias="userId")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class JoinPayload(BaseModel):
    """
    WebSocket ``join`` event payload.
    """
    convo_id: str = Field(..., min_length=1, alias="convoId")
    user: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class SendMessagePayload(BaseModel):
    """
    WebSocket ``send_message`` event payload.
    """
    convo_id: str = Field(..., min_length=1, alias="convoId")
    message: str = Field(..., min_length=1)
    sender: Literal["user", "bot"] = "user"

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------
# Conversation Models
# ---------------------------------------------------------------------

class ConversationListResponse(BaseModel):
    conversations: List[ConversationSummary]


class DocumentListResponse(BaseModel):
    documents: List[DocumentRecord]


# ---------------------------------------------------------------------
# Health Models
# ---------------------------------------------------------------------

class HealthResponse(BaseModel):
    ok: bool
    services: Dict[str, str] = Field(default_factory=dict)
