from fastapi import APIRouter, Depends
from typing import Annotated

from .dependencies import get_conversation_store, get_index_manager
from .models import HealthResponse
from ..conversations.store import ConversationStore
from ..vectorstore.manager import VectorIndexManager

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(
    index_manager: Annotated[VectorIndexManager, Depends(get_index_manager)],
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> HealthResponse:
    vector_ok = await index_manager.heartbeat()
    store_ok = await store.ping()

    return HealthResponse(
        ok=vector_ok,
        services={
            "vector_store": "connected" if vector_ok else "error",
            "conversation_store": "connected" if store_ok else "disconnected",
        },
    )
