from __future__ import annotations

from typing import Sequence

from secondbrain.core.models import AggregatedChunk, AggregatedItem

UNTITLED = "(untitled)"


def render_block(item: AggregatedItem, chunk: AggregatedChunk) -> str:
    return (
        f"Title: {item.title or UNTITLED} | Chunk {chunk.chunk_index} | "
        f"Score {chunk.score:.3f}\n{chunk.text}\n---\n"
    )


def build_context(items: Sequence[AggregatedItem], max_chars: int = 4000) -> str:
    """Flatten ranked chunks into one prompt context of at most ``max_chars``.

    Blocks are never cut: assembly stops at the first block that would not fit.
    """
    out = ""
    for item in items:
        for chunk in item.chunks:
            block = render_block(item, chunk)
            if len(out) + len(block) > max_chars:
                return out
            out += block
    return out


__all__ = ["build_context", "render_block"]
