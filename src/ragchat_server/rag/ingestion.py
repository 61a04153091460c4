"""
Ingestion Orchestrator

Turns a batch of uploaded files into the searchable index of one
conversation.

Workflow
--------
1. Derive the index name from the conversation id.
2. Delete the previous index (missing is fine) and create an empty one.
   This supersedes the old generation immediately, even if the new upload
   later fails part-way: the conversation is then left with an empty or
   partial index rather than the old one.
3. Reset the conversation's history and tell connected clients to clear
   their chat display.
4. For each file, in order: extract text, chunk it, then embed and add each
   chunk in order.
5. Record a document-metadata entry for every fully indexed file.

Failure policy
--------------
- Index create/delete failures abort the whole request (IndexLifecycleError).
- Any other failure is isolated to the file it occurred in and reported in
  that file's result; the next file is still processed.

The whole sequence runs under a per-index lock so that two uploads to the
same conversation cannot interleave their delete/create/add calls.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol, Sequence

from .chunker import chunk_text, count_words
from .locks import KeyedLock
from .models import FileResult, SourceDocument
from ..config import settings
from ..conversations.models import DocumentRecord, utcnow
from ..conversations.store import ConversationStore
from ..core.errors import RagError, UnsupportedFormatError
from ..embeddings.embedder import Embedder
from ..extraction.extractor import TextExtractor
from ..scoping import index_name_for
from ..vectorstore.manager import IndexHandle, VectorIndexManager

logger = logging.getLogger("ragchat.ingestion")

CLEAR_HISTORY_EVENT = "clear_history"


class Broadcaster(Protocol):
    async def emit_to_conversation(
        self,
        convo_id: str,
        event: str,
        payload: Any = None,
    ) -> Any:
        ...


class IngestionOrchestrator:
    """
    Full-replace ingestion of a conversation's documents.
    """

    def __init__(
        self,
        index_manager: VectorIndexManager,
        embedder: Embedder,
        conversations: ConversationStore,
        broadcaster: Broadcaster,
        extractor: Optional[TextExtractor] = None,
        chunk_size: Optional[int] = None,
        locks: Optional[KeyedLock] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._index_manager = index_manager
        self._embedder = embedder
        self._conversations = conversations
        self._broadcaster = broadcaster
        self._extractor = extractor or TextExtractor()
        self._chunk_size = chunk_size or settings.chunk_size
        self._locks = locks or KeyedLock()
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        convo_id: str,
        user_id: str,
        documents: Sequence[SourceDocument],
    ) -> List[FileResult]:
        """
        Replace the conversation's index with the given documents.

        Returns
        -------
        List[FileResult]
            One result per input document, in input order.

        Raises
        ------
        IndexLifecycleError
            If the previous index cannot be deleted or the new one created.
        """
        name = index_name_for(convo_id)

        async with self._locks.hold(name):
            logger.info(
                "Ingesting %d file(s) into %s for conversation %s",
                len(documents),
                name,
                convo_id,
            )

            await self._index_manager.delete_index(name)
            handle = await self._index_manager.create_index(name)

            await self._reset_history(convo_id, user_id)

            results: List[FileResult] = []
            last_stamp = 0

            for document in documents:
                # Strictly increasing per document so repeated filenames in one
                # batch still produce distinct chunk ids.
                stamp = max(int(self._clock().timestamp() * 1000), last_stamp + 1)
                last_stamp = stamp

                results.append(
                    await self._ingest_document(handle, convo_id, user_id, document, stamp)
                )

        processed = sum(1 for r in results if r.status == "processed")
        logger.info(
            "Ingestion for %s finished: %d/%d file(s) processed",
            convo_id,
            processed,
            len(results),
        )
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _reset_history(self, convo_id: str, user_id: str) -> None:
        await self._conversations.upsert_conversation(convo_id, user_id)
        await self._conversations.clear_messages(convo_id)
        await self._conversations.set_last_upload(convo_id, self._clock())
        await self._broadcaster.emit_to_conversation(
            convo_id,
            CLEAR_HISTORY_EVENT,
            {"convoId": convo_id},
        )

    async def _ingest_document(
        self,
        handle: IndexHandle,
        convo_id: str,
        user_id: str,
        document: SourceDocument,
        stamp: int,
    ) -> FileResult:
        filename = document.filename

        try:
            text = await asyncio.to_thread(
                self._extractor.extract, filename, document.content
            )

            chunks = chunk_text(text, self._chunk_size)
            words = count_words(text)

            for i, chunk in enumerate(chunks):
                vector = await self._embedder.embed(chunk)
                await handle.add(
                    id=f"{convo_id}-{filename}-{i}-{stamp}",
                    vector=vector,
                    text=chunk,
                    metadata={
                        "convo_id": convo_id,
                        "user_id": user_id,
                        "file": filename,
                        "chunk_idx": i,
                        "ingested_at": stamp,
                        "storage_url": document.storage_url,
                    },
                )

            await self._conversations.append_document_metadata(
                convo_id,
                DocumentRecord(
                    filename=filename,
                    uploaded_at=self._clock(),
                    chunks=len(chunks),
                    words=words,
                    storage_url=document.storage_url,
                ),
            )

        except UnsupportedFormatError as exc:
            logger.info("Skipping %s in %s: %s", filename, convo_id, exc)
            return FileResult(file=filename, status="unsupported-format", error=str(exc))

        except RagError as exc:
            logger.warning("Failed to ingest %s into %s: %s", filename, convo_id, exc)
            return FileResult(
                file=filename,
                status="error",
                error=str(exc),
                storage_url=document.storage_url,
            )

        except Exception as exc:
            logger.exception("Unexpected failure ingesting %s into %s", filename, convo_id)
            return FileResult(
                file=filename,
                status="error",
                error=str(exc) or type(exc).__name__,
                storage_url=document.storage_url,
            )

        return FileResult(
            file=filename,
            status="processed",
            words=words,
            chunks=len(chunks),
            storage_url=document.storage_url,
        )
