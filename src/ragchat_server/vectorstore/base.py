"""
Vector Backend Interface

A backend stores named collections of ``(id, vector, text, metadata)`` tuples
and answers nearest-neighbour queries against one collection at a time.

Error contract
--------------
- ``IndexNotFoundError`` when a named collection does not exist
- ``TransportError`` for network failures and malformed responses
- any other ``RagError`` for backend-side rejections

The index manager translates these into the lifecycle-specific errors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from .models import CollectionRef, QueryMatch


class IndexBackend(ABC):
    """Abstract nearest-neighbour search backend."""

    @abstractmethod
    async def heartbeat(self) -> bool:
        """Return True when the backend is reachable."""

    @abstractmethod
    async def delete_collection(self, name: str) -> None:
        """Delete a collection by name; raise IndexNotFoundError if absent."""

    @abstractmethod
    async def create_collection(self, name: str) -> CollectionRef:
        """Create an empty collection."""

    @abstractmethod
    async def get_collection(self, name: str) -> CollectionRef:
        """Look up an existing collection by name."""

    @abstractmethod
    async def add(
        self,
        collection: CollectionRef,
        ids: List[str],
        embeddings: List[List[float]],
        documents: List[str],
        metadatas: List[Dict[str, Any]],
    ) -> None:
        """Insert vectors with their texts and metadata."""

    @abstractmethod
    async def query(
        self,
        collection: CollectionRef,
        embedding: List[float],
        k: int,
    ) -> List[QueryMatch]:
        """Return up to ``k`` matches, best first."""
