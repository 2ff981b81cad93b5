from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from secondbrain.core.models import ItemPreview
from secondbrain.rag import VectorIndex

MAX_LIST_LIMIT = 100
PREVIEW_LEN = 180
# Milvus rejects query windows (limit + offset) above this.
MAX_QUERY_WINDOW = 16384


class ListNotes:
    """List stored notes using the chunk with the lowest index as preview.

    The index only stores chunks, so this scrolls ``limit + offset`` records
    and groups them; notes whose chunks fall outside that window are missed.
    """

    def __init__(self, index: VectorIndex) -> None:
        self.index = index

    # ------------------------------------------------------------------
    async def __call__(self, limit: int = 20, offset: int = 0) -> List[ItemPreview]:
        limit = max(0, min(limit, MAX_LIST_LIMIT))
        offset = max(0, offset)
        if limit == 0 or offset >= MAX_QUERY_WINDOW:
            return []
        window = min(limit + offset, MAX_QUERY_WINDOW)
        records = await asyncio.to_thread(self.index.scroll, window)

        first: Dict[str, Dict[str, Any]] = {}
        counts: Dict[str, int] = {}
        for rec in records:
            item_id = rec.get("item_id")
            if not item_id:
                continue
            counts[item_id] = counts.get(item_id, 0) + 1
            prev = first.get(item_id)
            if prev is None or (rec.get("chunk_index") or 0) < (prev.get("chunk_index") or 0):
                first[item_id] = rec

        return [
            ItemPreview(
                item_id=item_id,
                title=rec.get("title"),
                preview=str(rec.get("text") or "")[:PREVIEW_LEN],
                chunk_count=counts[item_id],
            )
            for item_id, rec in list(first.items())[offset : offset + limit]
        ]
