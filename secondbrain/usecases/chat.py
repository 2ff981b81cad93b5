from __future__ import annotations

import logging
from typing import Literal

from secondbrain.core.exceptions import ValidationError
from secondbrain.core.models import ChatResult
from secondbrain.core.settings import Settings, get_settings
from secondbrain.llm import LLMClient, NO_RELEVANT_NOTES
from secondbrain.rag import Retriever, build_context

logger = logging.getLogger("chat")


class Chat:
    """Retrieve notes relevant to a question and answer from them."""

    def __init__(
        self,
        llm: LLMClient,
        retriever: Retriever,
        settings: Settings | None = None,
    ) -> None:
        self.llm = llm
        self.retriever = retriever
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    async def __call__(
        self,
        query: str,
        k: int = 12,
        mode: Literal["answer", "notes"] = "answer",
    ) -> ChatResult:
        if not query or not query.strip():
            raise ValidationError("query required")

        items = await self.retriever.retrieve(
            query, k=k, score_threshold=self.settings.score_threshold
        )
        if mode == "notes":
            return ChatResult(answer=None, notes=list(items))

        context = build_context(items, self.settings.max_context_chars)
        if not context:
            logger.info("chat_no_context", extra={"k": k})
            return ChatResult(answer=NO_RELEVANT_NOTES, notes=list(items))

        answer = await self.llm.answer_from_context(query, context)
        return ChatResult(answer=answer, notes=list(items), model=self.llm.answer_model)
