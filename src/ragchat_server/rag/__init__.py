"""
Conversation-Scoped RAG Pipeline

Ingestion (chunk → embed → index, full replace per conversation) and
retrieval (embed → top-k → context) orchestrators.
"""

from .chunker import chunk_text, count_words
from .ingestion import IngestionOrchestrator
from .locks import KeyedLock
from .models import FileResult, RetrievalOutcome, SourceDocument
from .retrieval import RetrievalOrchestrator

__all__ = [
    "chunk_text",
    "count_words",
    "IngestionOrchestrator",
    "KeyedLock",
    "FileResult",
    "RetrievalOutcome",
    "SourceDocument",
    "RetrievalOrchestrator",
]
