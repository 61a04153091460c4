"""
FAISS Vector Backend

In-process implementation of the vector backend. Each collection is an
independent FAISS index, so conversations never share vectors.

Key Properties
--------------
- Explicit ID management via IndexIDMap2
- Cosine similarity (inner product over L2-normalised vectors)
- Exact search, so identical queries against an unchanged collection always
  return the same ordering
- Concurrency-safe (thread locking per collection and for the registry)

Collections live only as long as the process; use the Chroma backend when the
index must outlive it.
"""

from __future__ import annotations

import uuid
from threading import RLock
from typing import Any, Dict, List, Optional, Tuple

import faiss
import numpy as np

from .base import IndexBackend
from .models import CollectionRef, QueryMatch
from ..core.errors import (
    IndexCreateError,
    IndexNotFoundError,
    IndexQueryError,
    IndexWriteError,
)


# ---------------------------------------------------------------------
# Single Collection
# ---------------------------------------------------------------------

class FaissCollection:
    """
    One FAISS index with its id → (chunk id, text, metadata) map.
    """

    def __init__(self, ref: CollectionRef) -> None:
        self.ref = ref
        self._index: Optional[faiss.IndexIDMap2] = None
        self._dim: Optional[int] = None
        self._records: Dict[int, Tuple[str, str, Dict[str, Any]]] = {}
        self._chunk_ids: set[str] = set()
        self._next_id: int = 0
        self._lock = RLock()

    def _init_index(self, dim: int) -> None:
        base = faiss.IndexFlatIP(dim)
        self._index = faiss.IndexIDMap2(base)
        self._dim = dim

    def _validate(
        self,
        ids: List[str],
        embeddings: List[List[float]],
        documents: List[str],
        metadatas: List[Dict[str, Any]],
    ) -> None:
        if not (len(ids) == len(embeddings) == len(documents) == len(metadatas)):
            raise IndexWriteError("ids, embeddings, documents and metadatas differ in length.")

        dim = self._dim if self._dim is not None else len(embeddings[0])
        if dim == 0:
            raise IndexWriteError("Embedding vectors must be non-empty.")

        for i, emb in enumerate(embeddings):
            if len(emb) != dim:
                raise IndexWriteError(
                    f"Inconsistent embedding dimensionality at index {i}: "
                    f"got {len(emb)}, expected {dim}."
                )

        for chunk_id in ids:
            if chunk_id in self._chunk_ids:
                raise IndexWriteError(f"Duplicate chunk id: {chunk_id}")

    def add(
        self,
        ids: List[str],
        embeddings: List[List[float]],
        documents: List[str],
        metadatas: List[Dict[str, Any]],
    ) -> None:
        if not ids:
            return

        with self._lock:
            self._validate(ids, embeddings, documents, metadatas)

            if self._index is None:
                self._init_index(len(embeddings[0]))

            int_ids = np.arange(
                self._next_id,
                self._next_id + len(ids),
                dtype="int64",
            )

            vectors = np.asarray(embeddings, dtype="float32")
            faiss.normalize_L2(vectors)

            try:
                self._index.add_with_ids(vectors, int_ids)
            except Exception as exc:
                raise IndexWriteError(
                    f"Failed to add vectors to FAISS: {type(exc).__name__}"
                ) from exc

            self._next_id += len(ids)

            for int_id, chunk_id, text, meta in zip(int_ids, ids, documents, metadatas):
                self._records[int(int_id)] = (chunk_id, text, dict(meta))
                self._chunk_ids.add(chunk_id)

    def query(self, embedding: List[float], k: int) -> List[QueryMatch]:
        with self._lock:
            if self._index is None or not self._records:
                return []

            if len(embedding) != self._dim:
                raise IndexQueryError(
                    f"Query has {len(embedding)} dimensions, collection has {self._dim}."
                )

            q = np.asarray([embedding], dtype="float32")
            faiss.normalize_L2(q)

            try:
                scores, idxs = self._index.search(q, min(k, len(self._records)))
            except Exception as exc:
                raise IndexQueryError(
                    f"FAISS search failed: {type(exc).__name__}"
                ) from exc

            results: List[QueryMatch] = []

            for score, idx in zip(scores[0], idxs[0]):
                idx = int(idx)
                if idx == -1:
                    continue

                record = self._records.get(idx)
                if record is None:
                    continue

                chunk_id, text, meta = record
                results.append(
                    QueryMatch(id=chunk_id, text=text, score=float(score), metadata=meta)
                )

            return results

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


# ---------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------

class FaissBackend(IndexBackend):
    """
    Registry of named in-process FAISS collections.
    """

    def __init__(self) -> None:
        self._by_name: Dict[str, FaissCollection] = {}
        self._by_id: Dict[str, FaissCollection] = {}
        self._lock = RLock()

    def _resolve(self, ref: CollectionRef) -> FaissCollection:
        with self._lock:
            collection = self._by_id.get(ref.id)
        if collection is None:
            raise IndexNotFoundError(f"Collection {ref.name} no longer exists.")
        return collection

    async def heartbeat(self) -> bool:
        return True

    async def delete_collection(self, name: str) -> None:
        with self._lock:
            collection = self._by_name.pop(name, None)
            if collection is None:
                raise IndexNotFoundError(f"Collection {name} does not exist.")
            self._by_id.pop(collection.ref.id, None)

    async def create_collection(self, name: str) -> CollectionRef:
        with self._lock:
            if name in self._by_name:
                raise IndexCreateError(f"Collection {name} already exists.")

            ref = CollectionRef(id=uuid.uuid4().hex, name=name)
            collection = FaissCollection(ref)
            self._by_name[name] = collection
            self._by_id[ref.id] = collection
            return ref

    async def get_collection(self, name: str) -> CollectionRef:
        with self._lock:
            collection = self._by_name.get(name)
        if collection is None:
            raise IndexNotFoundError(f"Collection {name} does not exist.")
        return collection.ref

    async def add(
        self,
        collection: CollectionRef,
        ids: List[str],
        embeddings: List[List[float]],
        documents: List[str],
        metadatas: List[Dict[str, Any]],
    ) -> None:
        self._resolve(collection).add(ids, embeddings, documents, metadatas)

    async def query(
        self,
        collection: CollectionRef,
        embedding: List[float],
        k: int,
    ) -> List[QueryMatch]:
        return self._resolve(collection).query(embedding, k)

    def collection_names(self) -> List[str]:
        """Return the names of all live collections (diagnostics and tests)."""
        with self._lock:
            return sorted(self._by_name)
