"""
Upload Routes

Accepts multipart document uploads for a conversation and runs them through
the ingestion pipeline. Every upload fully replaces the conversation's index
and resets its chat history.

Responses
---------
- 200 with one result per file (``processed`` / ``unsupported-format`` /
  ``error``), even when some files failed
- 400 when no files were sent
- 500 only when the conversation's index could not be replaced
"""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from typing import Annotated, List, Optional

from .dependencies import get_ingestion_orchestrator
from .models import UploadResponse
from ..rag.ingestion import IngestionOrchestrator
from ..rag.models import SourceDocument

router = APIRouter(tags=["upload"])

DEFAULT_USER_ID = "default"
DEFAULT_CONVO_ID = "default-convo"


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload documents into a conversation's index",
)
async def upload_documents(
    ingestion: Annotated[IngestionOrchestrator, Depends(get_ingestion_orchestrator)],
    files: Annotated[Optional[List[UploadFile]], File()] = None,
    user_id: Annotated[Optional[str], Form(alias="userId")] = None,
    convo_id: Annotated[Optional[str], Form(alias="convoId")] = None,
) -> UploadResponse:
    """
    Chunk, embed and index the uploaded files for one conversation.
    """
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded.",
        )

    documents: List[SourceDocument] = []
    for upload in files:
        try:
            content = await upload.read()
        finally:
            await upload.close()
        documents.append(
            SourceDocument(filename=upload.filename or "upload", content=content)
        )

    # Index lifecycle failures propagate to the registered exception handler
    results = await ingestion.ingest(
        convo_id or DEFAULT_CONVO_ID,
        user_id or DEFAULT_USER_ID,
        documents,
    )

    return UploadResponse(results=results)
