"""
Chat Routes

HTTP counterpart of the WebSocket chat events, plus conversation listings.

- ``POST /chat``: send one message; user messages get a (possibly grounded)
  bot reply
- ``GET /conversations/{user_id}``: a user's conversations, newest first
- ``GET /conversations/{convo_id}/documents``: documents ingested into a
  conversation
"""

from fastapi import APIRouter, Depends, status
from typing import Annotated

from .dependencies import get_chat_service, get_conversation_store
from .models import ChatRequest, ConversationListResponse, DocumentListResponse
from ..chat.service import ChatService, ChatTurn
from ..conversations.store import ConversationStore, DEFAULT_USER_ID

router = APIRouter(tags=["chat"])

CONVERSATION_LIST_LIMIT = 50


@router.post(
    "/chat",
    response_model=ChatTurn,
    summary="Send a chat message to a conversation",
    status_code=status.HTTP_200_OK,
)
async def chat(
    req: ChatRequest,
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> ChatTurn:
    """
    Persist the message and return it together with the bot reply.
    """
    return await service.handle_message(
        req.convo_id,
        req.message,
        sender=req.sender,
        user_id=req.user_id or DEFAULT_USER_ID,
    )


@router.get(
    "/conversations/{user_id}",
    response_model=ConversationListResponse,
    summary="List a user's conversations",
)
async def list_conversations(
    user_id: str,
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> ConversationListResponse:
    conversations = await store.list_conversations(user_id, limit=CONVERSATION_LIST_LIMIT)
    return ConversationListResponse(conversations=conversations)


@router.get(
    "/conversations/{convo_id}/documents",
    response_model=DocumentListResponse,
    summary="List documents ingested into a conversation",
)
async def list_documents(
    convo_id: str,
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> DocumentListResponse:
    return DocumentListResponse(documents=await store.get_documents(convo_id))
