"""
Error Taxonomy and Global Error Handling

This module defines the exception hierarchy shared by every component of the
RAG pipeline, plus the application-wide FastAPI exception handlers.

Taxonomy
--------
RagError
├── TransportError          outbound network call failed or returned garbage
├── EmbeddingError          provider failed or returned no usable vector
├── IndexLifecycleError     create/delete rejected (aborts a whole ingestion)
│   ├── IndexCreateError
│   └── IndexDeleteError
├── IndexNotFoundError      conversation was never ingested (recoverable)
├── IndexWriteError         a single add failed (fails one chunk only)
├── IndexQueryError         nearest-neighbour query failed
├── ExtractionError         document text could not be extracted
│   └── UnsupportedFormatError
└── CompletionError         completion service failed

Design Goals
------------
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("ragchat.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class RagError(RuntimeError):
    """Base error for every failure raised by the RAG pipeline."""


class TransportError(RagError):
    """Raised when an outbound network call fails or its response is malformed."""


class EmbeddingError(RagError):
    """Raised when embedding generation fails."""


class IndexLifecycleError(RagError):
    """Base error for index create/delete failures."""


class IndexCreateError(IndexLifecycleError):
    """Raised when the backend refuses to create a conversation index."""


class IndexDeleteError(IndexLifecycleError):
    """Raised when deleting an existing conversation index fails."""


class IndexNotFoundError(RagError):
    """Raised when a conversation has no index yet."""


class IndexWriteError(RagError):
    """Raised when a single vector insert fails."""


class IndexQueryError(RagError):
    """Raised when a nearest-neighbour query fails."""


class ExtractionError(RagError):
    """Raised when text cannot be extracted from an uploaded document."""


class UnsupportedFormatError(ExtractionError):
    """Raised for file types the extractor does not handle."""


class CompletionError(RagError):
    """Raised when the completion service call fails."""


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def index_lifecycle_error_handler(
    request: Request,
    exc: IndexLifecycleError,
) -> JSONResponse:
    """
    Report an aborted ingestion as a single top-level failure.

    Index create/delete failures are the only errors allowed to abort an
    upload request; the conversation may be left without a usable index.
    """
    logger.error(
        "Index lifecycle failure during request %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )

    payload: Dict[str, Any] = {
        "error": "processing_error",
        "detail": f"Processing error: {exc}",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
