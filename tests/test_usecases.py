import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from secondbrain.core.exceptions import ProviderError, ValidationError
from secondbrain.core.models import ChatResult, IngestResult
from secondbrain.llm.intent import IngestIntent, QueryIntent
from secondbrain.rag.chunking import content_hash
from secondbrain.rag.retrieval import Retriever
from secondbrain.usecases import Chat, IngestText, ListNotes, RouteInput, Search


def make_route(llm, embedder, index, settings):
    ingest = IngestText(embedder, index, settings)
    chat = Chat(llm, Retriever(embedder, index), settings)
    return RouteInput(llm, ingest, chat)


def test_ingest_text_pipeline(embedder, index, settings) -> None:
    text = "".join(chr(ord("a") + i % 26) for i in range(2500))

    result = asyncio.run(
        IngestText(embedder, index, settings)(text, title="Alphabet", metadata={"src": "x"})
    )

    assert isinstance(result, IngestResult)
    assert result.chunk_count == 3
    assert result.status == "persisted"
    # One batched embedding call in chunk order
    assert embedder.calls == [[text[0:1000], text[800:1800], text[1600:2500]]]
    index.upsert.assert_called_once()
    [records] = index.upsert.call_args.args
    assert [r.payload.chunk_index for r in records] == [0, 1, 2]
    assert {r.payload.item_id for r in records} == {result.item_id}
    assert len({r.id for r in records}) == 3
    assert records[0].payload.title == "Alphabet"
    assert records[0].payload.metadata == {"src": "x"}
    assert records[0].payload.embedding_model == "stub-embed"
    assert records[0].payload.content_hash == content_hash(text, {"src": "x"})
    assert records[2].payload.token_estimate == 225
    assert records[1].vector == [1.0, 1000.0]


def test_ingest_same_text_twice_creates_new_records(embedder, index, settings) -> None:
    uc = IngestText(embedder, index, settings)

    first = asyncio.run(uc("same note"))
    second = asyncio.run(uc("same note"))

    assert first.item_id != second.item_id
    ids = [call.args[0][0].id for call in index.upsert.call_args_list]
    assert ids[0] != ids[1]
    hashes = [call.args[0][0].payload.content_hash for call in index.upsert.call_args_list]
    assert hashes[0] == hashes[1]


@pytest.mark.parametrize("text", ["", "   \n"])
def test_ingest_rejects_empty_text(embedder, index, settings, text) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(IngestText(embedder, index, settings)(text))

    assert embedder.calls == []
    index.upsert.assert_not_called()


def test_ingest_rejects_overlong_title(embedder, index, settings) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(IngestText(embedder, index, settings)("note", title="x" * 600))

    assert embedder.calls == []
    index.upsert.assert_not_called()


def test_ingest_accepts_title_at_limit(embedder, index, settings) -> None:
    asyncio.run(IngestText(embedder, index, settings)("note", title="x" * 512))

    [records] = index.upsert.call_args.args
    assert records[0].payload.title == "x" * 512


def test_search_returns_flat_hits(embedder, index, settings, hit_factory) -> None:
    index.search.return_value = [
        hit_factory("n1", 0.8, chunk_index=1, text="a", title="One"),
        hit_factory("n1", 0.7, chunk_index=0, text="b", title="One"),
    ]

    hits = asyncio.run(Search(embedder, index, settings)("query", k=5))

    assert embedder.calls == [["query"]]
    index.search.assert_called_once_with([0.0, 5.0], 5, settings.score_threshold)
    assert [(h.item_id, h.chunk_index, h.score) for h in hits] == [("n1", 1, 0.8), ("n1", 0, 0.7)]
    assert hits[0].title == "One"


def test_chat_answers_from_context(embedder, index, llm, settings, hit_factory) -> None:
    index.search.return_value = [hit_factory("n1", 0.8, text="Jerry in Sunburn", title="Met")]

    result = asyncio.run(Chat(llm, Retriever(embedder, index), settings)("Where is Jerry?"))

    assert result.answer == "answer"
    assert result.model == "stub-llm"
    assert [n.item_id for n in result.notes] == ["n1"]
    query, context = llm.answer_from_context.call_args.args
    assert query == "Where is Jerry?"
    assert context.startswith("Title: Met | Chunk 0 | Score 0.800\nJerry in Sunburn")


def test_chat_notes_mode_skips_generation(embedder, index, llm, settings, hit_factory) -> None:
    index.search.return_value = [hit_factory("n1", 0.8)]

    result = asyncio.run(Chat(llm, Retriever(embedder, index), settings)("q", mode="notes"))

    assert result.answer is None
    assert len(result.notes) == 1
    llm.answer_from_context.assert_not_called()


def test_route_ingest(embedder, index, llm, settings) -> None:
    llm.classify_intent.return_value = IngestIntent(title="Jerry", text="  Met Jerry.  ")

    out = asyncio.run(make_route(llm, embedder, index, settings)("I met Jerry today."))

    assert out.action == "ingest"
    assert out.result.chunk_count == 1
    [records] = index.upsert.call_args.args
    assert records[0].payload.text == "Met Jerry."
    assert records[0].payload.title == "Jerry"
    assert records[0].payload.metadata == {}
    llm.answer_from_context.assert_not_called()


def test_route_ingest_falls_back_to_input_text(embedder, index, llm, settings) -> None:
    llm.classify_intent.return_value = IngestIntent(title=None, text=None)

    out = asyncio.run(make_route(llm, embedder, index, settings)("  remember the milk  "))

    assert out.action == "ingest"
    [records] = index.upsert.call_args.args
    assert records[0].payload.text == "remember the milk"
    assert records[0].payload.title is None


def test_route_ingest_truncates_long_classifier_title(embedder, index, llm, settings) -> None:
    llm.classify_intent.return_value = IngestIntent(title="t" * 600, text="Met Jerry.")

    out = asyncio.run(make_route(llm, embedder, index, settings)("I met Jerry today."))

    assert out.action == "ingest"
    [records] = index.upsert.call_args.args
    assert records[0].payload.title == "t" * 512


def test_route_query_without_hits_short_circuits(embedder, index, llm, settings) -> None:
    llm.classify_intent.return_value = QueryIntent()
    index.search.return_value = []

    out = asyncio.run(make_route(llm, embedder, index, settings)("What did I do?"))

    assert out.action == "query"
    assert isinstance(out.result, ChatResult)
    assert out.result.answer == "No relevant notes found."
    assert out.result.notes == []
    llm.answer_from_context.assert_not_called()
    index.upsert.assert_not_called()


def test_route_query_answers(embedder, index, llm, settings, hit_factory) -> None:
    llm.classify_intent.return_value = QueryIntent()
    index.search.return_value = [hit_factory("n1", 0.9, text="milk")]

    out = asyncio.run(make_route(llm, embedder, index, settings)("What to buy?", k=3))

    assert out.action == "query"
    assert out.result.answer == "answer"
    index.search.assert_called_once_with([0.0, 12.0], 3, 0.2)
    index.upsert.assert_not_called()


def test_route_classifier_failure_propagates(embedder, index, llm, settings) -> None:
    llm.classify_intent.side_effect = ProviderError("down")

    with pytest.raises(ProviderError):
        asyncio.run(make_route(llm, embedder, index, settings)("hello"))

    index.upsert.assert_not_called()
    index.search.assert_not_called()


def test_route_rejects_empty_input(embedder, index, llm, settings) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(make_route(llm, embedder, index, settings)(""))

    llm.classify_intent.assert_not_called()


def test_list_notes_groups_by_item() -> None:
    index = MagicMock()
    index.scroll.return_value = [
        {"item_id": "a", "title": "A", "chunk_index": 1, "text": "a1"},
        {"item_id": "a", "title": "A", "chunk_index": 0, "text": "a0" + "x" * 300},
        {"item_id": None, "chunk_index": 0, "text": "orphan"},
        {"item_id": "b", "title": None, "chunk_index": 0, "text": "b0"},
    ]

    items = asyncio.run(ListNotes(index)(limit=10, offset=0))

    index.scroll.assert_called_once_with(10)
    assert [i.item_id for i in items] == ["a", "b"]
    assert items[0].preview.startswith("a0")
    assert len(items[0].preview) == 180
    assert items[0].chunk_count == 2
    assert items[1].title is None


def test_list_notes_offset_and_cap() -> None:
    index = MagicMock()
    index.scroll.return_value = [
        {"item_id": str(i), "chunk_index": 0, "text": str(i)} for i in range(5)
    ]

    items = asyncio.run(ListNotes(index)(limit=500, offset=3))

    index.scroll.assert_called_once_with(103)
    assert [i.item_id for i in items] == ["3", "4"]


def test_list_notes_zero_limit_skips_scroll() -> None:
    index = MagicMock()

    items = asyncio.run(ListNotes(index)(limit=0, offset=5))

    assert items == []
    index.scroll.assert_not_called()


def test_list_notes_bounds_scroll_window() -> None:
    index = MagicMock()
    index.scroll.return_value = [
        {"item_id": str(i), "chunk_index": 0, "text": str(i)} for i in range(3)
    ]

    items = asyncio.run(ListNotes(index)(limit=20, offset=16380))

    index.scroll.assert_called_once_with(16384)
    assert items == []


def test_list_notes_offset_past_window_returns_nothing() -> None:
    index = MagicMock()

    items = asyncio.run(ListNotes(index)(limit=20, offset=20000))

    assert items == []
    index.scroll.assert_not_called()
