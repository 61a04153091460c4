"""
Vector Store Package

Per-conversation nearest-neighbour indexes over a pluggable backend
(ChromaDB over HTTP, or in-process FAISS).
"""

from .base import IndexBackend
from .chroma import ChromaBackend
from .faiss_backend import FaissBackend
from .manager import IndexHandle, VectorIndexManager
from .models import CollectionRef, QueryMatch

__all__ = [
    "IndexBackend",
    "ChromaBackend",
    "FaissBackend",
    "IndexHandle",
    "VectorIndexManager",
    "CollectionRef",
    "QueryMatch",
]
