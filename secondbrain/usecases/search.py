from __future__ import annotations

import asyncio
from typing import List

from secondbrain.core.exceptions import ValidationError
from secondbrain.core.models import SearchHit
from secondbrain.core.settings import Settings, get_settings
from secondbrain.llm import EmbeddingsProvider
from secondbrain.rag import VectorIndex


class Search:
    """Run semantic search and return raw chunk hits without grouping."""

    def __init__(
        self,
        embeddings: EmbeddingsProvider,
        index: VectorIndex,
        settings: Settings | None = None,
    ) -> None:
        self.embeddings = embeddings
        self.index = index
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    async def __call__(self, query: str, k: int = 5) -> List[SearchHit]:
        if not query or not query.strip():
            raise ValidationError("q required")
        [query_vec] = await self.embeddings.embed_texts([query])
        hits = await asyncio.to_thread(
            self.index.search, query_vec, k, self.settings.score_threshold
        )
        return [
            SearchHit(
                score=hit.score,
                item_id=hit.payload.get("item_id"),
                chunk_index=hit.payload.get("chunk_index"),
                title=hit.payload.get("title"),
                text=hit.payload.get("text"),
            )
            for hit in hits
        ]
