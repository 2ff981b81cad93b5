from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List

from secondbrain.core.exceptions import ValidationError
from secondbrain.core.models import MAX_TITLE_LENGTH, IngestResult, VectorPayload, VectorRecord
from secondbrain.core.settings import Settings, get_settings
from secondbrain.llm import EmbeddingsProvider
from secondbrain.rag import VectorIndex, chunk_text, content_hash

logger = logging.getLogger("ingest")


def _generate_id() -> str:
    return str(uuid.uuid4())


class IngestText:
    """Pipeline to chunk raw text, embed the chunks and index them for search."""

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
    async def __call__(
        self,
        text: str,
        title: str | None = None,
        metadata: Dict[str, Any] | None = None,
    ) -> IngestResult:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("text required")
        if title is not None and len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(f"title longer than {MAX_TITLE_LENGTH} characters")
        metadata = dict(metadata or {})

        item_id = _generate_id()
        base_hash = content_hash(text, metadata)
        chunks = chunk_text(
            text,
            max_length=self.settings.chunk_max_length,
            overlap=self.settings.chunk_overlap,
        )
        embeddings = await self.embeddings.embed_texts([c.text for c in chunks])

        # Record ids are random, so re-ingesting identical content adds new records.
        records: List[VectorRecord] = [
            VectorRecord(
                id=_generate_id(),
                vector=emb,
                payload=VectorPayload(
                    item_id=item_id,
                    title=title,
                    chunk_index=chunk.chunk_index,
                    text=chunk.text,
                    token_estimate=chunk.token_estimate,
                    metadata=metadata,
                    embedding_model=self.embeddings.model,
                    content_hash=base_hash,
                ),
            )
            for chunk, emb in zip(chunks, embeddings)
        ]
        await asyncio.to_thread(self.index.upsert, records)

        logger.info(
            "ingest_persisted",
            extra={"item_id": item_id, "chunk_count": len(records), "content_hash": base_hash},
        )
        return IngestResult(item_id=item_id, chunk_count=len(records))
