import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

# Ensure project root on sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from apps.api import main
from apps.api.main import (
    app,
    get_index,
    get_llm_client,
    get_embeddings_provider,
)
from secondbrain.core.settings import Settings


class StubEmbeddings:
    """Embeds each text as a vector tagged with its position and length."""

    model = "stub-embed"

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed_texts(self, texts):
        self.calls.append(list(texts))
        return [[float(i), float(len(t))] for i, t in enumerate(texts)]


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        milvus_uri="milvus:19530",
        embedding_dim=2,
    )


@pytest.fixture()
def embedder() -> StubEmbeddings:
    return StubEmbeddings()


@pytest.fixture()
def index() -> MagicMock:
    index = MagicMock()
    index.search.return_value = []
    index.scroll.return_value = []
    index.list_collections.return_value = ["secondbrain"]
    return index


@pytest.fixture()
def llm() -> MagicMock:
    llm = MagicMock()
    llm.answer_model = "stub-llm"
    llm.classify_intent = AsyncMock()
    llm.answer_from_context = AsyncMock(return_value="answer")
    return llm


@pytest.fixture()
def client(monkeypatch, index, llm, embedder):
    """FastAPI test client with external clients replaced by stubs."""

    # The lifespan hook calls get_index() directly, not through Depends.
    monkeypatch.setattr(main, "get_index", lambda: index)
    app.dependency_overrides[get_index] = lambda: index
    app.dependency_overrides[get_llm_client] = lambda: llm
    app.dependency_overrides[get_embeddings_provider] = lambda: embedder

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_hit(item_id, score, chunk_index=0, text="t", title=None):
    from secondbrain.core.models import RetrievalHit

    payload = {"chunk_index": chunk_index, "text": text, "title": title}
    if item_id is not None:
        payload["item_id"] = item_id
    return RetrievalHit(score=score, payload=payload)


@pytest.fixture()
def hit_factory():
    return make_hit

