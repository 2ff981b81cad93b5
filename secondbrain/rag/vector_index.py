from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Sequence

from pymilvus import (
    connections,
    FieldSchema,
    CollectionSchema,
    DataType,
    Collection,
    utility,
)

from secondbrain.core.exceptions import VectorIndexError
from secondbrain.core.models import MAX_TITLE_LENGTH, RetrievalHit, VectorRecord
from secondbrain.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SUPPORTED_METRICS = ("COSINE", "IP")

# Milvus measures VARCHAR length in bytes; allow 4 bytes per character.
TITLE_MAX_BYTES = MAX_TITLE_LENGTH * 4
TEXT_MAX_BYTES = 65535

PAYLOAD_FIELDS = [
    "item_id",
    "title",
    "chunk_index",
    "text",
    "token_estimate",
    "metadata",
    "embedding_model",
    "content_hash",
]


@contextmanager
def _index_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except VectorIndexError:
        raise
    except Exception as exc:
        logger.exception("vector_index_failed", extra={"operation": operation})
        raise VectorIndexError(f"Vector index {operation} failed: {exc}") from exc


def _payload_from_entity(entity: Any) -> Dict[str, Any]:
    payload = {name: entity.get(name) for name in PAYLOAD_FIELDS}
    # Milvus VARCHAR columns are not nullable; "" marks an absent title.
    if not payload.get("title"):
        payload["title"] = None
    return payload


class VectorIndex:
    """Wrapper around a Milvus collection holding note chunks."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        uri: str | None = None,
        collection: str | None = None,
        dim: int | None = None,
        metric: str | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.dim = dim if dim is not None else self.settings.embedding_dim
        self.metric = (metric or self.settings.distance_metric).upper()
        if self.metric not in SUPPORTED_METRICS:
            raise VectorIndexError(f"Unsupported distance metric: {self.metric}")
        self.collection_name = collection or self.settings.collection_name
        self.uri = uri or self.settings.milvus_uri
        if not self.uri:
            raise VectorIndexError("MILVUS_URI is not set")
        # pymilvus requires a URI with an explicit scheme; accept "host:port" too.
        if not self.uri.startswith("http://") and not self.uri.startswith("https://"):
            self.uri = f"http://{self.uri}"

        with _index_errors("connect"):
            connections.connect("default", uri=self.uri)

    # Public API -------------------------------------------------------
    def ensure_collection(
        self,
        name: str | None = None,
        dim: int | None = None,
        metric: str | None = None,
    ) -> bool:
        """Create the collection unless it already exists.

        Returns ``True`` when a new collection was created.
        """
        name = name or self.collection_name
        dim = dim if dim is not None else self.dim
        metric = (metric or self.metric).upper()
        if metric not in SUPPORTED_METRICS:
            raise VectorIndexError(f"Unsupported distance metric: {metric}")

        with _index_errors("ensure"):
            if utility.has_collection(name):
                logger.info("collection_exists", extra={"collection": name})
                return False

            fields = [
                FieldSchema(
                    name="record_id",
                    dtype=DataType.VARCHAR,
                    is_primary=True,
                    max_length=64,
                ),
                FieldSchema(name="item_id", dtype=DataType.VARCHAR, max_length=64),
                FieldSchema(name="title", dtype=DataType.VARCHAR, max_length=TITLE_MAX_BYTES),
                FieldSchema(name="chunk_index", dtype=DataType.INT64),
                FieldSchema(name="text", dtype=DataType.VARCHAR, max_length=TEXT_MAX_BYTES),
                FieldSchema(name="token_estimate", dtype=DataType.INT64),
                FieldSchema(name="metadata", dtype=DataType.JSON),
                FieldSchema(name="embedding_model", dtype=DataType.VARCHAR, max_length=128),
                FieldSchema(name="content_hash", dtype=DataType.VARCHAR, max_length=64),
                FieldSchema(name="embedding", dtype=DataType.FLOAT_VECTOR, dim=dim),
            ]
            schema = CollectionSchema(fields, description="note chunks")
            collection = Collection(name, schema=schema)

            index_params = {
                "index_type": "HNSW",
                "metric_type": metric,
                "params": {"M": 16, "efConstruction": 200},
            }
            collection.create_index(field_name="embedding", index_params=index_params)
            collection.load()
        logger.info(
            "collection_created",
            extra={"collection": name, "dim": dim, "metric": metric},
        )
        return True

    def upsert(self, records: Sequence[VectorRecord]) -> None:
        """Insert or overwrite records by their id in a single call."""
        if not records:
            return
        data = [
            [r.id for r in records],
            [r.payload.item_id for r in records],
            [r.payload.title or "" for r in records],
            [r.payload.chunk_index for r in records],
            [r.payload.text for r in records],
            [r.payload.token_estimate for r in records],
            [r.payload.metadata for r in records],
            [r.payload.embedding_model for r in records],
            [r.payload.content_hash for r in records],
            [r.vector for r in records],
        ]
        with _index_errors("upsert"):
            Collection(self.collection_name).upsert(data)

    def search(
        self,
        vector: List[float],
        limit: int = 12,
        score_threshold: float = 0.0,
    ) -> List[RetrievalHit]:
        """Return at most ``limit`` hits scoring at least ``score_threshold``."""
        with _index_errors("search"):
            collection = Collection(self.collection_name)
            collection.load()
            search_params = {"metric_type": self.metric, "params": {"ef": 64}}
            results = collection.search(
                data=[vector],
                anns_field="embedding",
                param=search_params,
                limit=limit,
                output_fields=PAYLOAD_FIELDS,
            )
            hits: List[RetrievalHit] = []
            for hit in results[0]:
                if hit.score < score_threshold:
                    continue
                hits.append(
                    RetrievalHit(score=hit.score, payload=_payload_from_entity(hit.entity))
                )
        return hits

    def scroll(self, limit: int = 20, offset: int = 0) -> List[Dict[str, Any]]:
        """Enumerate stored payloads without relevance ranking."""
        with _index_errors("scroll"):
            collection = Collection(self.collection_name)
            collection.load()
            rows = collection.query(
                expr='record_id != ""',
                output_fields=["record_id", *PAYLOAD_FIELDS],
                limit=limit,
                offset=offset,
            )
        return [
            {"id": row.get("record_id"), **_payload_from_entity(row)} for row in rows
        ]

    def list_collections(self) -> List[str]:
        with _index_errors("list_collections"):
            return list(utility.list_collections())


__all__ = ["VectorIndex", "PAYLOAD_FIELDS", "SUPPORTED_METRICS"]
