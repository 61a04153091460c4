"""
Vector Index Manager

Owns the lifecycle of the one index ("collection") each conversation has,
on top of any ``IndexBackend``.

The manager is stateless: every operation names the index it acts on and no
conversation-specific handle outlives the request that obtained it. The
backend is the single source of truth.

Error translation
-----------------
- delete: "not found" is success; anything else -> IndexDeleteError
- create: any failure -> IndexCreateError
- get: IndexNotFoundError passes through; anything else -> TransportError
- handle.add: any failure -> IndexWriteError (fails one chunk only)
- handle.query: any failure -> IndexQueryError (IndexNotFoundError kept)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from .base import IndexBackend
from .models import CollectionRef, QueryMatch, clean_metadata
from ..core.errors import (
    IndexCreateError,
    IndexDeleteError,
    IndexNotFoundError,
    IndexQueryError,
    IndexWriteError,
    RagError,
    TransportError,
)

logger = logging.getLogger("ragchat.index")


class IndexHandle:
    """
    Request-scoped access to one live collection.
    """

    def __init__(self, backend: IndexBackend, collection: CollectionRef) -> None:
        self._backend = backend
        self.collection = collection

    @property
    def name(self) -> str:
        return self.collection.name

    async def add(
        self,
        id: str,
        vector: List[float],
        text: str,
        metadata: Dict[str, Any],
    ) -> None:
        """
        Insert one ``(id, vector, text, metadata)`` tuple.

        Raises
        ------
        IndexWriteError
            If the insert fails for any reason.
        """
        if not vector:
            raise IndexWriteError(f"Refusing to index chunk {id} with an empty vector.")

        try:
            await self._backend.add(
                self.collection,
                ids=[id],
                embeddings=[vector],
                documents=[text],
                metadatas=[clean_metadata(metadata)],
            )
        except IndexWriteError:
            raise
        except (RagError, TypeError) as exc:
            raise IndexWriteError(f"Failed to index chunk {id}: {exc}") from exc

    async def query(self, vector: List[float], k: int) -> List[QueryMatch]:
        """
        Return up to ``k`` nearest neighbours of ``vector``, best first.
        """
        if k <= 0:
            return []

        try:
            matches = await self._backend.query(self.collection, vector, k)
        except (IndexNotFoundError, IndexQueryError):
            raise
        except RagError as exc:
            raise IndexQueryError(f"Query against {self.name} failed: {exc}") from exc

        return matches[:k]


class VectorIndexManager:
    """
    Create, replace, look up and delete per-conversation indexes by name.
    """

    def __init__(self, backend: IndexBackend) -> None:
        self._backend = backend

    async def heartbeat(self) -> bool:
        try:
            return await self._backend.heartbeat()
        except RagError:
            return False

    async def delete_index(self, name: str) -> None:
        """
        Delete the named index. A missing index counts as success.
        """
        try:
            await self._backend.delete_collection(name)
        except IndexNotFoundError:
            logger.debug("Index %s did not exist; nothing to delete", name)
            return
        except IndexDeleteError:
            raise
        except RagError as exc:
            raise IndexDeleteError(f"Failed to delete index {name}: {exc}") from exc

        logger.info("Deleted index %s", name)

    async def create_index(self, name: str) -> IndexHandle:
        """
        Create a fresh, empty index.
        """
        try:
            collection = await self._backend.create_collection(name)
        except IndexCreateError:
            raise
        except RagError as exc:
            raise IndexCreateError(f"Failed to create index {name}: {exc}") from exc

        logger.info("Created index %s (id=%s)", name, collection.id)
        return IndexHandle(self._backend, collection)

    async def get_index(self, name: str) -> IndexHandle:
        """
        Open an existing index.

        Raises
        ------
        IndexNotFoundError
            If the conversation has never been ingested.
        TransportError
            For any other lookup failure.
        """
        try:
            collection = await self._backend.get_collection(name)
        except (IndexNotFoundError, TransportError):
            raise
        except RagError as exc:
            raise TransportError(f"Failed to open index {name}: {exc}") from exc

        return IndexHandle(self._backend, collection)
