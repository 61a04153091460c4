from functools import lru_cache

from ..config import settings
from ..chat.service import ChatService
from ..conversations.store import ConversationStore, InMemoryConversationStore
from ..conversations.sql_store import SqlConversationStore
from ..db.session import create_session_factory
from ..embeddings.embedder import Embedder
from ..extraction.extractor import TextExtractor
from ..llm.client import CompletionClient
from ..rag.ingestion import IngestionOrchestrator
from ..rag.retrieval import RetrievalOrchestrator
from ..realtime.hub import ConnectionHub
from ..vectorstore import ChromaBackend, FaissBackend, VectorIndexManager


@lru_cache
def get_embedder() -> Embedder:
    return Embedder()


@lru_cache
def get_completion_client() -> CompletionClient:
    return CompletionClient()


@lru_cache
def get_index_manager() -> VectorIndexManager:
    if settings.vector_backend == "faiss":
        return VectorIndexManager(FaissBackend())
    return VectorIndexManager(ChromaBackend())


@lru_cache
def get_conversation_store() -> ConversationStore:
    if settings.conversation_store == "sql":
        engine, factory = create_session_factory()
        return SqlConversationStore(factory, engine=engine)
    return InMemoryConversationStore(max_messages_per_conversation=200)


@lru_cache
def get_hub() -> ConnectionHub:
    return ConnectionHub()


@lru_cache
def get_text_extractor() -> TextExtractor:
    return TextExtractor()


# One orchestrator per process so every upload shares the per-index locks.
@lru_cache
def get_ingestion_orchestrator() -> IngestionOrchestrator:
    return IngestionOrchestrator(
        index_manager=get_index_manager(),
        embedder=get_embedder(),
        conversations=get_conversation_store(),
        broadcaster=get_hub(),
        extractor=get_text_extractor(),
    )


@lru_cache
def get_retrieval_orchestrator() -> RetrievalOrchestrator:
    return RetrievalOrchestrator(
        index_manager=get_index_manager(),
        embedder=get_embedder(),
    )


@lru_cache
def get_chat_service() -> ChatService:
    return ChatService(
        conversations=get_conversation_store(),
        retrieval=get_retrieval_orchestrator(),
        completion=get_completion_client(),
        broadcaster=get_hub(),
    )
