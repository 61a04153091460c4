"""
ChromaDB Vector Backend

Talks to a ChromaDB server through its v2 HTTP API. Collections are scoped to
one tenant/database pair and created in cosine space.

Every call carries an explicit timeout and every response shape is validated
before it is converted into ``CollectionRef`` / ``QueryMatch`` results, so no
raw JSON ever leaves this module.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .base import IndexBackend
from .models import CollectionRef, QueryMatch
from ..config import settings
from ..core.errors import (
    IndexCreateError,
    IndexDeleteError,
    IndexNotFoundError,
    IndexQueryError,
    IndexWriteError,
    TransportError,
)

logger = logging.getLogger("ragchat.index")


class ChromaBackend(IndexBackend):
    """
    HTTP client for the ChromaDB v2 API.
    """

    def __init__(
        self,
        api_root: Optional[str] = None,
        tenant: Optional[str] = None,
        database: Optional[str] = None,
        timeout: Optional[float] = None,
        query_timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Parameters
        ----------
        api_root : Optional[str]
            API root such as ``http://localhost:8000/api/v2``.
            Defaults to settings.chroma_api_root.

        timeout : Optional[float]
            Timeout for heartbeat/create/delete/get calls.

        query_timeout : Optional[float]
            Timeout for add/query calls.

        client : Optional[httpx.AsyncClient]
            Shared client. When omitted, a client is opened per call.
        """
        self.api_root = (api_root or settings.chroma_api_root).rstrip("/")
        self.tenant = tenant or settings.chroma_tenant
        self.database = database or settings.chroma_database
        self.timeout = timeout if timeout is not None else settings.index_timeout
        self.query_timeout = (
            query_timeout if query_timeout is not None else settings.index_query_timeout
        )
        self._client = client

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def _collections_url(self) -> str:
        return (
            f"{self.api_root}/tenants/{self.tenant}"
            f"/databases/{self.database}/collections"
        )

    async def _request(
        self,
        method: str,
        url: str,
        timeout: float,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.request(method, url, json=json, timeout=timeout)

            async with httpx.AsyncClient(timeout=timeout) as client:
                return await client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            logger.error(
                "Chroma %s %s failed (%s): %s",
                method,
                url,
                type(exc).__name__,
                str(exc),
            )
            raise TransportError(
                f"Vector store request failed: {type(exc).__name__}"
            ) from exc

    @staticmethod
    def _is_not_found(response: httpx.Response) -> bool:
        if response.status_code == 404:
            return True

        # Older Chroma releases answer a missing collection with a 4xx/5xx
        # whose body names the condition instead of a plain 404.
        if response.status_code >= 400:
            body = response.text.lower()
            return "does not exist" in body or "notfounderror" in body

        return False

    @staticmethod
    def _json(response: httpx.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{what}: response is not valid JSON.") from exc

    def _parse_collection(self, response: httpx.Response, name: str) -> CollectionRef:
        data = self._json(response, "collection lookup")
        if not isinstance(data, dict) or not data.get("id"):
            raise TransportError(f"Malformed collection response for {name}.")
        try:
            return CollectionRef(id=str(data["id"]), name=str(data.get("name") or name))
        except ValidationError as exc:
            raise TransportError(f"Malformed collection response for {name}.") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def heartbeat(self) -> bool:
        response = await self._request("GET", f"{self.api_root}/heartbeat", self.timeout)
        return response.is_success

    async def delete_collection(self, name: str) -> None:
        response = await self._request(
            "DELETE",
            f"{self._collections_url}/{name}",
            self.timeout,
        )

        if self._is_not_found(response):
            raise IndexNotFoundError(f"Collection {name} does not exist.")

        if not response.is_success:
            raise IndexDeleteError(
                f"Vector store refused to delete {name} (HTTP {response.status_code})."
            )

    async def create_collection(self, name: str) -> CollectionRef:
        response = await self._request(
            "POST",
            self._collections_url,
            self.timeout,
            json={
                "name": name,
                "metadata": {"hnsw:space": "cosine"},
                "get_or_create": False,
            },
        )

        if not response.is_success:
            raise IndexCreateError(
                f"Vector store refused to create {name} (HTTP {response.status_code})."
            )

        return self._parse_collection(response, name)

    async def get_collection(self, name: str) -> CollectionRef:
        response = await self._request(
            "GET",
            f"{self._collections_url}/{name}",
            self.timeout,
        )

        if self._is_not_found(response):
            raise IndexNotFoundError(f"Collection {name} does not exist.")

        if not response.is_success:
            raise TransportError(
                f"Collection lookup for {name} failed (HTTP {response.status_code})."
            )

        return self._parse_collection(response, name)

    async def add(
        self,
        collection: CollectionRef,
        ids: List[str],
        embeddings: List[List[float]],
        documents: List[str],
        metadatas: List[Dict[str, Any]],
    ) -> None:
        response = await self._request(
            "POST",
            f"{self._collections_url}/{collection.id}/add",
            self.query_timeout,
            json={
                "ids": ids,
                "embeddings": embeddings,
                "documents": documents,
                "metadatas": metadatas,
            },
        )

        if self._is_not_found(response):
            raise IndexNotFoundError(f"Collection {collection.name} no longer exists.")

        if not response.is_success:
            raise IndexWriteError(
                f"Vector store rejected insert into {collection.name} "
                f"(HTTP {response.status_code})."
            )

    async def query(
        self,
        collection: CollectionRef,
        embedding: List[float],
        k: int,
    ) -> List[QueryMatch]:
        response = await self._request(
            "POST",
            f"{self._collections_url}/{collection.id}/query",
            self.query_timeout,
            json={
                "query_embeddings": [embedding],
                "n_results": k,
                "include": ["documents", "metadatas", "distances"],
            },
        )

        if self._is_not_found(response):
            raise IndexNotFoundError(f"Collection {collection.name} no longer exists.")

        if not response.is_success:
            raise IndexQueryError(
                f"Query against {collection.name} failed (HTTP {response.status_code})."
            )

        return self._parse_query(self._json(response, "query"))

    @staticmethod
    def _parse_query(data: Any) -> List[QueryMatch]:
        """
        Convert Chroma's column-oriented, per-query nested lists into matches.

        Chroma returns:
            {"ids": [[...]], "documents": [[...]], "distances": [[...]],
             "metadatas": [[...]]}
        """
        if not isinstance(data, dict):
            raise IndexQueryError("Query response must be a JSON object.")

        def first_row(key: str, required: bool = True) -> Optional[List[Any]]:
            outer = data.get(key)
            if outer is None and not required:
                return None
            if not isinstance(outer, list):
                raise IndexQueryError(f"Query response missing '{key}'.")
            if not outer:
                return []
            row = outer[0]
            if row is None and not required:
                return None
            if not isinstance(row, list):
                raise IndexQueryError(f"Malformed '{key}' in query response.")
            return row

        ids = first_row("ids") or []
        documents = first_row("documents") or []
        distances = first_row("distances") or []
        metadatas = first_row("metadatas", required=False)

        if not (len(ids) == len(documents) == len(distances)):
            raise IndexQueryError("Query response columns differ in length.")
        if metadatas is not None and len(metadatas) != len(ids):
            raise IndexQueryError("Query response metadata count does not match ids.")

        matches: List[QueryMatch] = []
        for i, (chunk_id, text, distance) in enumerate(zip(ids, documents, distances)):
            if text is None:
                continue
            if not isinstance(text, str) or not isinstance(distance, (int, float)):
                raise IndexQueryError(f"Malformed query match at position {i}.")

            meta = metadatas[i] if metadatas is not None else None
            try:
                match = QueryMatch(
                    id=str(chunk_id),
                    text=text,
                    score=1.0 - float(distance),
                    metadata=meta if isinstance(meta, dict) else {},
                )
            except ValidationError as exc:
                raise IndexQueryError(f"Malformed query match at position {i}.") from exc
            matches.append(match)

        return matches
