"""
Vector Store Data Models

Explicit result types for every call made against a vector backend. Backends
validate the raw responses they receive and only ever hand these models back
to the index manager.
"""

from __future__ import annotations

from typing import Any, Dict, Union

from pydantic import BaseModel, Field, ConfigDict

MetadataValue = Union[str, int, float, bool]


class CollectionRef(BaseModel):
    """
    A backend collection, addressed by its backend id and its logical name.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid", frozen=True)


class QueryMatch(BaseModel):
    """
    One nearest-neighbour hit. Higher ``score`` means more similar.
    """

    id: str = Field(..., min_length=1)
    text: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)


def clean_metadata(metadata: Dict[str, Any]) -> Dict[str, MetadataValue]:
    """
    Drop ``None`` values and reject anything a vector backend cannot store.
    """
    cleaned: Dict[str, MetadataValue] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if not isinstance(value, (str, int, float, bool)):
            raise TypeError(
                f"Metadata value for {key!r} must be str, int, float or bool"
            )
        cleaned[key] = value
    return cleaned
