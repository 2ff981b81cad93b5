from __future__ import annotations

import logging

from secondbrain.core.exceptions import ValidationError
from secondbrain.core.models import MAX_TITLE_LENGTH, RouteResult
from secondbrain.llm import IngestIntent, LLMClient

from .chat import Chat
from .ingest_text import IngestText

logger = logging.getLogger("route")


class RouteInput:
    """Classify free text, then either save it as a note or answer it.

    A classifier call that fails propagates; only malformed classifier
    output is coerced to a query.
    """

    def __init__(self, llm: LLMClient, ingest: IngestText, chat: Chat) -> None:
        self.llm = llm
        self.ingest = ingest
        self.chat = chat

    # ------------------------------------------------------------------
    async def __call__(self, text: str, k: int = 12) -> RouteResult:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("text required")

        intent = await self.llm.classify_intent(text)
        logger.info("route_classified", extra={"intent": intent.intent})

        if isinstance(intent, IngestIntent):
            note_text = (intent.text or "").strip() or text.strip()
            # Model output, so an overlong title is cut rather than rejected.
            title = (intent.title or "")[:MAX_TITLE_LENGTH] or None
            result = await self.ingest(note_text, title=title, metadata={})
            return RouteResult(action="ingest", result=result)

        answer = await self.chat(text, k=k, mode="answer")
        return RouteResult(action="query", result=answer)
