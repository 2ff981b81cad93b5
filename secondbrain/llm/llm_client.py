from __future__ import annotations

from abc import ABC, abstractmethod

from .intent import IngestIntent, QueryIntent

NO_RELEVANT_NOTES = "No relevant notes found."
NO_RESPONSE = "No response."


class LLMClient(ABC):
    """Abstract interface for language model interactions."""

    answer_model: str | None = None

    @abstractmethod
    async def classify_intent(self, text: str) -> IngestIntent | QueryIntent:
        """Decide whether free text is a new note or a question."""

    @abstractmethod
    async def answer_from_context(self, query: str, context: str) -> str:
        """Answer a query using only the provided notes context."""
