"""Core library exposing domain models, settings and exceptions."""

from .settings import Settings, get_settings
from .exceptions import (
    DomainError,
    ValidationError,
    ProviderError,
    VectorIndexError,
    Error,
)
from .models import (
    MAX_TITLE_LENGTH,
    Chunk,
    VectorPayload,
    VectorRecord,
    RetrievalHit,
    AggregatedChunk,
    AggregatedItem,
    IngestResult,
    SearchHit,
    ChatResult,
    RouteResult,
    ItemPreview,
)

__all__ = [
    "MAX_TITLE_LENGTH",
    "Settings",
    "get_settings",
    "DomainError",
    "ValidationError",
    "ProviderError",
    "VectorIndexError",
    "Error",
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
