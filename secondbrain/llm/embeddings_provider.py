from __future__ import annotations

import logging
from typing import Any, List, Sequence

import replicate

from secondbrain.core.exceptions import ProviderError
from secondbrain.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class EmbeddingsProvider:
    """Fetch embeddings from a Replicate model, one request per batch."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        model: str | None = None,
        embedding_dim: int | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.model = model or settings.embeddings_model
        self.embedding_dim = (
            embedding_dim if embedding_dim is not None else settings.embedding_dim
        )

    async def _embed_batch(self, texts: List[str]) -> Any:
        try:
            return await replicate.async_run(self.model, input={"texts": texts})
        except Exception as exc:
            logger.exception("embedding_request_failed", extra={"model": self.model})
            raise ProviderError(f"Embedding request failed: {exc}") from exc

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """Return one vector per input text, in input order."""
        if not texts:
            return []

        output = await self._embed_batch(list(texts))
        if isinstance(output, dict) and "embeddings" in output:
            embeddings = output["embeddings"]
        else:
            embeddings = output
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            got = len(embeddings) if isinstance(embeddings, list) else type(embeddings).__name__
            raise ProviderError(f"Expected {len(texts)} embeddings, got {got}")
        for emb in embeddings:
            if not isinstance(emb, (list, tuple)) or len(emb) != self.embedding_dim:
                size = len(emb) if isinstance(emb, (list, tuple)) else None
                raise ProviderError(
                    f"Embedding size {size} does not match expected {self.embedding_dim}"
                )
        return [list(emb) for emb in embeddings]


__all__ = ["EmbeddingsProvider"]
