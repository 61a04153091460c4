import asyncio
import hashlib
from typing import Any, List, Optional, Tuple

import pytest

from ragchat_server.conversations.store import InMemoryConversationStore
from ragchat_server.core.errors import EmbeddingError
from ragchat_server.extraction.extractor import TextExtractor
from ragchat_server.rag.ingestion import IngestionOrchestrator
from ragchat_server.rag.retrieval import RetrievalOrchestrator
from ragchat_server.vectorstore import FaissBackend, VectorIndexManager

DIM = 64


class HashingEmbedder:
    """
    Deterministic bag-of-words embedder: each word bumps one hashed dimension.

    Texts containing ``fail_marker`` raise EmbeddingError, mimicking a
    provider rejecting one chunk.
    """

    def __init__(self, fail_marker: Optional[str] = None) -> None:
        self.fail_marker = fail_marker
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        await asyncio.sleep(0)

        if self.fail_marker and self.fail_marker in text:
            raise EmbeddingError("Embedding generation failed: HTTPStatusError")

        vector = [0.0] * DIM
        vector[0] = 0.01
        for word in text.lower().split():
            digest = hashlib.md5(word.encode("utf-8")).digest()
            vector[1 + digest[0] % (DIM - 1)] += 1.0
        return vector


class RecordingBroadcaster:
    def __init__(self) -> None:
        self.events: List[Tuple[str, str, Any]] = []

    async def emit_to_conversation(self, convo_id: str, event: str, payload: Any = None) -> int:
        self.events.append((convo_id, event, payload))
        return 0


@pytest.fixture
def faiss_backend():
    return FaissBackend()


@pytest.fixture
def index_manager(faiss_backend):
    return VectorIndexManager(faiss_backend)


@pytest.fixture
def embedder():
    return HashingEmbedder()


@pytest.fixture
def store():
    return InMemoryConversationStore()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def ingestion(index_manager, embedder, store, broadcaster):
    return IngestionOrchestrator(
        index_manager=index_manager,
        embedder=embedder,
        conversations=store,
        broadcaster=broadcaster,
        extractor=TextExtractor(extensions=[".txt", ".pdf"]),
        chunk_size=500,
    )


@pytest.fixture
def retrieval(index_manager, embedder):
    return RetrievalOrchestrator(index_manager=index_manager, embedder=embedder, top_k=3)


def words(prefix: str, n: int) -> str:
    """Return ``n`` distinct words sharing a prefix."""
    return " ".join(f"{prefix}{i}" for i in range(n))
