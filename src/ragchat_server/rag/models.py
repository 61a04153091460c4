"""
Pipeline Data Models

Inputs and outputs of the ingestion and retrieval orchestrators.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ConfigDict


FileStatus = Literal["processed", "unsupported-format", "error"]


@dataclass(frozen=True)
class SourceDocument:
    """An uploaded file awaiting ingestion."""
    filename: str
    content: bytes
    storage_url: Optional[str] = None


class FileResult(BaseModel):
    """
    Outcome of ingesting one uploaded file.
    """

    file: str
    status: FileStatus
    words: Optional[int] = Field(default=None, ge=0)
    chunks: Optional[int] = Field(default=None, ge=0)
    storage_url: Optional[str] = Field(default=None, alias="storageUrl")
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class RetrievalOutcome(BaseModel):
    """
    Context retrieved for one chat turn.
    """

    context_text: str = Field(default="", alias="contextText")
    context_used: bool = Field(default=False, alias="contextUsed")
    chunk_count: int = Field(default=0, ge=0, alias="chunkCount")
    chunks: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def empty(cls) -> "RetrievalOutcome":
        return cls()
