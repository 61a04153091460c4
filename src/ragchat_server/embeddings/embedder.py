"""
Embedding Client

This module implements the embedding client used for both document chunks and
user queries. It calls an external provider over HTTP and is responsible for:

- Bounded timeouts on every call
- Network and transport error isolation
- Strict response validation (no empty or malformed vector ever escapes)

Two wire formats are supported:

- ``openai``: ``POST {base}/embeddings`` -> ``{"data": [{"embedding": [...]}]}``
- ``gemini``: ``POST {base}/models/{model}:embedContent`` ->
  ``{"embedding": {"values": [...]}}``

The class is stateless and performs no caching: every chunk and every query is
embedded afresh, even when the text repeats.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
import logging
import httpx

from ..config import settings
from ..core.errors import EmbeddingError

logger = logging.getLogger("ragchat.embedder")

OPENAI_BASE_URL = "https://api.openai.com/v1"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class Embedder:
    """
    Asynchronous single-text embedding generator.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        dimensions: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        provider : Optional[str]
            ``"openai"`` or ``"gemini"``. Defaults to settings.embedding_provider.

        api_key : Optional[str]
            Override for the provider API key.

        model : Optional[str]
            Override for the embedding model. Defaults to settings.embedding_model.

        base_url : Optional[str]
            Base URL of the provider API.

        timeout : Optional[float]
            HTTP timeout for each request, in seconds.

        dimensions : Optional[int]
            Expected vector length. When set, vectors of any other length are
            rejected.

        client : Optional[httpx.AsyncClient]
            Shared client to send requests through. When omitted, a client is
            opened per call.
        """
        self.provider = provider or settings.embedding_provider
        if self.provider not in ("openai", "gemini"):
            raise ValueError(f"Unknown embedding provider: {self.provider!r}")

        if api_key is None:
            secret = (
                settings.gemini_api_key
                if self.provider == "gemini"
                else settings.openai_api_key
            )
            api_key = secret.get_secret_value()

        self.api_key = api_key
        self.model = model or settings.embedding_model
        self.base_url = (
            base_url
            or settings.embedding_base_url
            or (GEMINI_BASE_URL if self.provider == "gemini" else OPENAI_BASE_URL)
        ).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.embedding_timeout
        self.dimensions = dimensions if dimensions is not None else settings.embedding_dimensions
        self._client = client

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> List[float]:
        """
        Generate the embedding vector for one text.

        Returns
        -------
        List[float]
            A non-empty vector of floats.

        Raises
        ------
        EmbeddingError
            If the provider is unreachable, answers with a non-2xx status, or
            returns no usable vector.
        """
        url, payload, headers, params = self._build_request(text)

        try:
            if self._client is not None:
                response = await self._client.post(
                    url,
                    json=payload,
                    headers=headers,
                    params=params,
                    timeout=self.timeout,
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        url,
                        json=payload,
                        headers=headers,
                        params=params,
                    )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "Embedding request failed (%s): provider=%s, chars=%d, error=%s",
                type(exc).__name__,
                self.provider,
                len(text),
                str(exc),
            )
            raise EmbeddingError(
                f"Embedding generation failed: {type(exc).__name__}"
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise EmbeddingError("Embedding response is not valid JSON.") from exc

        return self._validate_vector(self._extract_vector(data))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_request(
        self,
        text: str,
    ) -> Tuple[str, Dict[str, Any], Dict[str, str], Dict[str, str]]:
        if self.provider == "gemini":
            return (
                f"{self.base_url}/models/{self.model}:embedContent",
                {"content": {"parts": [{"text": text}]}},
                {},
                {"key": self.api_key},
            )

        return (
            f"{self.base_url}/embeddings",
            {"model": self.model, "input": text},
            {"Authorization": f"Bearer {self.api_key}"},
            {},
        )

    def _extract_vector(self, data: Any) -> Any:
        """
        Pull the raw vector out of the provider-specific response shape.
        """
        if not isinstance(data, dict):
            raise EmbeddingError("Embedding response must be a JSON object.")

        if self.provider == "gemini":
            embedding = data.get("embedding")
            if not isinstance(embedding, dict) or "values" not in embedding:
                raise EmbeddingError("Embedding response missing 'embedding.values'.")
            return embedding["values"]

        records = data.get("data")
        if not isinstance(records, list) or not records:
            raise EmbeddingError("Embedding response missing 'data' records.")

        record = records[0]
        if not isinstance(record, dict) or "embedding" not in record:
            raise EmbeddingError(f"Malformed embedding record: {record!r}")
        return record["embedding"]

    def _validate_vector(self, emb: Any) -> List[float]:
        if not isinstance(emb, list) or not emb:
            raise EmbeddingError("Embedding vector is missing or empty.")

        if not all(
            isinstance(x, (float, int)) and not isinstance(x, bool) for x in emb
        ):
            raise EmbeddingError("Invalid embedding vector: must be float list.")

        if self.dimensions is not None and len(emb) != self.dimensions:
            raise EmbeddingError(
                f"Embedding has {len(emb)} dimensions, expected {self.dimensions}."
            )

        return [float(x) for x in emb]
