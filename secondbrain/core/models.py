"""Pydantic models representing core domain entities."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# Longest note title accepted, in characters.
MAX_TITLE_LENGTH = 512


class Chunk(BaseModel):
    """Contiguous slice of a note's text; the unit that gets embedded."""

    chunk_index: int
    text: str
    token_estimate: int


class VectorPayload(BaseModel):
    """Payload stored alongside each vector in the index."""

    item_id: str
    title: Optional[str] = None
    chunk_index: int
    text: str
    token_estimate: int
    metadata: Dict[str, Any] = Field(default_factory=dict)
    embedding_model: str
    content_hash: str


class VectorRecord(BaseModel):
    """Persisted (identifier, vector, payload) triple."""

    id: str
    vector: List[float]
    payload: VectorPayload


class RetrievalHit(BaseModel):
    """Single search hit: raw payload plus similarity score."""

    score: float
    payload: Dict[str, Any] = Field(default_factory=dict)


class AggregatedChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    chunk_index: int
    score: float


class AggregatedItem(BaseModel):
    """Hits of one note grouped together, best chunk first."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    title: Optional[str] = None
    chunks: Tuple[AggregatedChunk, ...] = ()
    top_score: float


class IngestResult(BaseModel):
    item_id: str
    chunk_count: int
    status: str = "persisted"


class SearchHit(BaseModel):
    """Flat, ungrouped search result."""

    score: float
    item_id: Optional[str] = None
    chunk_index: Optional[int] = None
    title: Optional[str] = None
    text: Optional[str] = None


class ChatResult(BaseModel):
    answer: Optional[str] = None
    notes: List[AggregatedItem] = Field(default_factory=list)
    model: Optional[str] = None


class RouteResult(BaseModel):
    action: Literal["ingest", "query"]
    result: Union[IngestResult, ChatResult]


class ItemPreview(BaseModel):
    item_id: str
    title: Optional[str] = None
    preview: str
    chunk_count: int


__all__ = [
    "Chunk",
    "VectorPayload",
    "VectorRecord",
    "RetrievalHit",
    "AggregatedChunk",
    "AggregatedItem",
    "IngestResult",
    "SearchHit",
    "ChatResult",
    "RouteResult",
    "ItemPreview",
]
