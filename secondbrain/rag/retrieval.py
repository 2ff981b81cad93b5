from __future__ import annotations

import asyncio
from typing import Dict, List, Sequence, Tuple

from secondbrain.core.models import AggregatedChunk, AggregatedItem, RetrievalHit
from secondbrain.llm.embeddings_provider import EmbeddingsProvider
from secondbrain.rag.vector_index import VectorIndex


def aggregate_hits(hits: Sequence[RetrievalHit]) -> Tuple[AggregatedItem, ...]:
    """Group hits by ``item_id`` and rank items by their best chunk.

    Sorting is stable, so equal scores keep the order the index returned.
    Hits without an ``item_id`` are dropped.
    """
    groups: Dict[str, List[RetrievalHit]] = {}
    for hit in hits:
        item_id = hit.payload.get("item_id")
        if not item_id:
            continue
        groups.setdefault(item_id, []).append(hit)

    items = []
    for item_id, group in groups.items():
        chunks = tuple(
            AggregatedChunk(
                text=h.payload.get("text") or "",
                chunk_index=h.payload.get("chunk_index") or 0,
                score=h.score,
            )
            for h in sorted(group, key=lambda h: h.score, reverse=True)
        )
        items.append(
            AggregatedItem(
                item_id=item_id,
                title=group[0].payload.get("title"),
                chunks=chunks,
                top_score=chunks[0].score,
            )
        )
    return tuple(sorted(items, key=lambda it: it.top_score, reverse=True))


class Retriever:
    """Embed a query, search the index and aggregate hits per note."""

    def __init__(self, embeddings: EmbeddingsProvider, index: VectorIndex) -> None:
        self.embeddings = embeddings
        self.index = index

    async def retrieve(
        self, query: str, k: int = 12, score_threshold: float = 0.2
    ) -> Tuple[AggregatedItem, ...]:
        [query_vec] = await self.embeddings.embed_texts([query])
        hits = await asyncio.to_thread(self.index.search, query_vec, k, score_threshold)
        return aggregate_hits(hits)


__all__ = ["aggregate_hits", "Retriever"]
