"""Chunking, vector index access and retrieval helpers."""

from .chunking import chunk_text, content_hash
from .context import build_context
from .vector_index import VectorIndex
from .retrieval import Retriever, aggregate_hits

__all__ = [
    "chunk_text",
    "content_hash",
    "build_context",
    "VectorIndex",
    "Retriever",
    "aggregate_hits",
]
