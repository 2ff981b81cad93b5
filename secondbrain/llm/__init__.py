"""LLM client abstractions and implementations."""

from .llm_client import LLMClient, NO_RELEVANT_NOTES, NO_RESPONSE
from .intent import IngestIntent, QueryIntent, parse_intent
from .replicate_client import ReplicateLLMClient, LLMClientError
from .embeddings_provider import EmbeddingsProvider

__all__ = [
    "LLMClient",
    "NO_RELEVANT_NOTES",
    "NO_RESPONSE",
    "IngestIntent",
    "QueryIntent",
    "parse_intent",
    "ReplicateLLMClient",
    "LLMClientError",
    "EmbeddingsProvider",
]
