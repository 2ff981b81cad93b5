from __future__ import annotations

import hashlib
import json
import math
from typing import Any, Dict, List, Mapping

from secondbrain.core.exceptions import ValidationError
from secondbrain.core.models import Chunk

# Unit separator: not expected in note text nor in serialized JSON.
_HASH_SEPARATOR = "\x1f"


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def chunk_text(text: str, max_length: int = 1000, overlap: int = 200) -> List[Chunk]:
    """Split ``text`` into overlapping fixed-size chunks.

    Consecutive chunks share exactly ``overlap`` characters; only the last
    chunk may be shorter than ``max_length``.
    """
    if not text:
        raise ValidationError("text required")
    if not max_length > overlap >= 0:
        raise ValidationError(
            f"invalid chunking window: max_length={max_length} overlap={overlap}"
        )

    chunks: List[Chunk] = []
    start = 0
    while True:
        end = min(start + max_length, len(text))
        segment = text[start:end]
        chunks.append(
            Chunk(
                chunk_index=len(chunks),
                text=segment,
                token_estimate=estimate_tokens(segment),
            )
        )
        if end == len(text):
            return chunks
        start = end - overlap


def content_hash(text: str, metadata: Mapping[str, Any] | None = None) -> str:
    """Stable SHA-256 fingerprint of trimmed text plus canonical metadata."""
    meta: Dict[str, Any] = dict(metadata or {})
    serialized = json.dumps(
        meta, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )
    norm = text.strip() + _HASH_SEPARATOR + serialized
    return hashlib.sha256(norm.encode("utf-8")).hexdigest()


__all__ = ["chunk_text", "content_hash", "estimate_tokens"]
