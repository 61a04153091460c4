"""
Retrieval Orchestrator

Turns a user message into grounding context drawn from the conversation's own
index: embed the query, fetch the top-k nearest chunks, join them with blank
lines in relevance order.

Retrieval never raises to the chat turn. A conversation without documents,
an empty result, or any pipeline failure (embedding, lookup, query) all yield
the empty outcome so the conversation continues with an ungrounded answer.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import RetrievalOutcome
from ..config import settings
from ..core.errors import IndexNotFoundError, RagError
from ..embeddings.embedder import Embedder
from ..scoping import index_name_for
from ..vectorstore.manager import VectorIndexManager

logger = logging.getLogger("ragchat.retrieval")

CONTEXT_SEPARATOR = "\n\n"


class RetrievalOrchestrator:
    """
    Conversation-scoped top-k retrieval.
    """

    def __init__(
        self,
        index_manager: VectorIndexManager,
        embedder: Embedder,
        top_k: Optional[int] = None,
    ) -> None:
        self._index_manager = index_manager
        self._embedder = embedder
        self._top_k = top_k or settings.top_k

    async def retrieve(
        self,
        convo_id: str,
        query: str,
        k: Optional[int] = None,
    ) -> RetrievalOutcome:
        """
        Retrieve grounding context for one query.

        Parameters
        ----------
        convo_id : str
            Conversation whose index is searched. No other index is touched.
        query : str
            The user's message.
        k : Optional[int]
            Number of chunks to fetch. Defaults to the configured top-k.

        Returns
        -------
        RetrievalOutcome
            ``context_used`` is False and ``chunk_count`` 0 whenever nothing
            was retrieved.
        """
        if k is None:
            k = self._top_k

        try:
            name = index_name_for(convo_id)
            vector = await self._embedder.embed(query)
            handle = await self._index_manager.get_index(name)
            matches = await handle.query(vector, k)
        except IndexNotFoundError:
            logger.debug("No index for conversation %s; answering without context", convo_id)
            return RetrievalOutcome.empty()
        except RagError as exc:
            logger.error("RAG retrieval error for %s: %s", convo_id, exc)
            return RetrievalOutcome.empty()
        except Exception:
            logger.exception("Unexpected retrieval failure for %r", convo_id)
            return RetrievalOutcome.empty()

        chunks = [m.text for m in matches]
        if not chunks:
            return RetrievalOutcome.empty()

        logger.info("Retrieved %d chunk(s) for conversation %s", len(chunks), convo_id)

        return RetrievalOutcome(
            context_text=CONTEXT_SEPARATOR.join(chunks),
            context_used=True,
            chunk_count=len(chunks),
            chunks=chunks,
        )
