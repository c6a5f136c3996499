from types import SimpleNamespace

import pytest

from pdf_qa.config import RetrievalConfig, Settings
from pdf_qa.errors import ConfigurationError, ProviderError, ValidationError
from pdf_qa.retrieval.vector_store import (
    InMemoryVectorStore,
    PineconeVectorStore,
    VectorIndexGateway,
)
from pdf_qa.types import DocumentChunk, VectorRecord


def _chunks(doc_id: str, count: int, page_number: int | None = 1) -> list[DocumentChunk]:
    return [
        DocumentChunk(
            chunk_id=f"{doc_id}-chunk-{i}",
            doc_id=doc_id,
            text=f"chunk {i} of {doc_id}",
            chunk_index=i,
            start=i * 800,
            end=i * 800 + 1000,
            page_number=page_number,
        )
        for i in range(count)
    ]


def _vectors(count: int) -> list[list[float]]:
    return [[1.0, float(i % 7), 0.5] for i in range(count)]


class _RecordingStore(InMemoryVectorStore):
    def __init__(self, fail_on_batch: int | None = None) -> None:
        super().__init__()
        self.batches: list[list[VectorRecord]] = []
        self.fail_on_batch = fail_on_batch

    def upsert(self, records: list[VectorRecord]) -> None:
        if self.fail_on_batch is not None and len(self.batches) == self.fail_on_batch:
            self.batches.append(records)
            raise ConnectionError("index unavailable")
        self.batches.append(records)
        super().upsert(records)


@pytest.mark.asyncio
async def test_upsert_is_idempotent_by_chunk_id() -> None:
    store = InMemoryVectorStore()
    gateway = VectorIndexGateway(store)

    await gateway.upsert("doc-a", _chunks("doc-a", 3), _vectors(3), "a.pdf")
    await gateway.upsert("doc-a", _chunks("doc-a", 3), _vectors(3), "a.pdf")

    assert len(store) == 3


@pytest.mark.asyncio
async def test_upsert_writes_batches_of_at_most_100() -> None:
    store = _RecordingStore()
    gateway = VectorIndexGateway(store, RetrievalConfig(upsert_batch_size=100))

    written = await gateway.upsert("doc-a", _chunks("doc-a", 250), _vectors(250), "a.pdf")

    assert written == 250
    assert [len(batch) for batch in store.batches] == [100, 100, 50]


@pytest.mark.asyncio
async def test_failing_batch_aborts_remaining_and_keeps_earlier_writes() -> None:
    store = _RecordingStore(fail_on_batch=1)
    gateway = VectorIndexGateway(store)

    with pytest.raises(ProviderError, match="Failed to store vectors"):
        await gateway.upsert("doc-a", _chunks("doc-a", 250), _vectors(250), "a.pdf")

    assert len(store.batches) == 2
    assert len(store) == 100


@pytest.mark.asyncio
async def test_record_layout_and_optional_page_number() -> None:
    store = _RecordingStore()
    gateway = VectorIndexGateway(store)

    await gateway.upsert("doc-a", _chunks("doc-a", 1, page_number=None), _vectors(1), "a.pdf")

    record = store.batches[0][0]
    assert record.id == "doc-a-chunk-0"
    assert record.metadata == {
        "documentId": "doc-a",
        "fileName": "a.pdf",
        "text": "chunk 0 of doc-a",
        "chunkIndex": 0,
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("chunk_count", "vector_count"),
    [(0, 0), (2, 0), (2, 3)],
)
async def test_upsert_rejects_mismatched_input(chunk_count: int, vector_count: int) -> None:
    gateway = VectorIndexGateway(InMemoryVectorStore())
    with pytest.raises(ValidationError):
        await gateway.upsert("doc-a", _chunks("doc-a", chunk_count), _vectors(vector_count), "a.pdf")


@pytest.mark.asyncio
async def test_query_is_scoped_to_document() -> None:
    gateway = VectorIndexGateway(InMemoryVectorStore())
    await gateway.upsert("doc-a", _chunks("doc-a", 2), _vectors(2), "a.pdf")
    await gateway.upsert("doc-b", _chunks("doc-b", 2), _vectors(2), "b.pdf")

    matches = await gateway.query("doc-a", [1.0, 0.0, 0.5], top_k=10)

    assert len(matches) == 2
    assert {match.metadata["documentId"] for match in matches} == {"doc-a"}
    scores = [match.score for match in matches]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_query_without_matches_returns_empty_list() -> None:
    gateway = VectorIndexGateway(InMemoryVectorStore())
    assert await gateway.query("missing", [1.0, 0.0, 0.0]) == []


@pytest.mark.asyncio
async def test_query_rejects_empty_vector() -> None:
    gateway = VectorIndexGateway(InMemoryVectorStore())
    with pytest.raises(ValidationError):
        await gateway.query("doc-a", [])


@pytest.mark.asyncio
async def test_query_failure_is_tagged_as_search() -> None:
    class _Broken(InMemoryVectorStore):
        def query(self, vector, top_k, metadata_filter=None):
            raise TimeoutError("upstream timeout")

    gateway = VectorIndexGateway(_Broken())
    with pytest.raises(ProviderError, match="search"):
        await gateway.query("doc-a", [1.0])

    with pytest.raises(ProviderError) as excinfo:
        await gateway.query("doc-a", [1.0])
    assert excinfo.value.client_message == "Failed to search vectors"
    assert excinfo.value.detail == "upstream timeout"


class _FakePineconeIndex:
    def __init__(self, matches: list[SimpleNamespace] | None = None) -> None:
        self.matches = matches
        self.upserts: list[list[dict]] = []
        self.queries: list[dict] = []

    def upsert(self, vectors: list[dict]) -> None:
        self.upserts.append(vectors)

    def query(self, **kwargs) -> SimpleNamespace:
        self.queries.append(kwargs)
        return SimpleNamespace(matches=self.matches)


def _pinecone_store(index: _FakePineconeIndex) -> PineconeVectorStore:
    store = PineconeVectorStore(Settings(_env_file=None))
    store._index = index
    return store


@pytest.mark.asyncio
async def test_pinecone_upsert_sends_record_dicts_per_batch() -> None:
    index = _FakePineconeIndex()
    gateway = VectorIndexGateway(_pinecone_store(index), RetrievalConfig(upsert_batch_size=2))

    await gateway.upsert("doc-a", _chunks("doc-a", 3), _vectors(3), "a.pdf")

    assert [len(batch) for batch in index.upserts] == [2, 1]
    first = index.upserts[0][0]
    assert first["id"] == "doc-a-chunk-0"
    assert first["values"] == [1.0, 0.0, 0.5]
    assert first["metadata"] == {
        "documentId": "doc-a",
        "fileName": "a.pdf",
        "text": "chunk 0 of doc-a",
        "chunkIndex": 0,
        "pageNumber": 1,
    }


@pytest.mark.asyncio
async def test_pinecone_query_filters_by_document_and_maps_matches() -> None:
    index = _FakePineconeIndex(
        [
            SimpleNamespace(id="doc-a-chunk-1", score=0.91, metadata={"text": "heaps"}),
            SimpleNamespace(id="doc-a-chunk-0", score=None, metadata=None),
        ]
    )
    gateway = VectorIndexGateway(_pinecone_store(index))

    matches = await gateway.query("doc-a", [0.1, 0.2, 0.3])

    assert index.queries == [
        {
            "vector": [0.1, 0.2, 0.3],
            "top_k": 10,
            "include_metadata": True,
            "filter": {"documentId": {"$eq": "doc-a"}},
        }
    ]
    assert [(match.id, match.score, match.metadata) for match in matches] == [
        ("doc-a-chunk-1", 0.91, {"text": "heaps"}),
        ("doc-a-chunk-0", None, {}),
    ]


@pytest.mark.asyncio
async def test_pinecone_query_without_matches() -> None:
    gateway = VectorIndexGateway(_pinecone_store(_FakePineconeIndex(matches=None)))
    assert await gateway.query("doc-a", [0.1]) == []


@pytest.mark.parametrize(
    ("api_key", "index_name", "missing"),
    [(None, "docs", "PINECONE_API_KEY"), ("pc-key", None, "PINECONE_INDEX_NAME")],
)
def test_pinecone_requires_credentials(api_key, index_name, missing) -> None:
    store = PineconeVectorStore(
        Settings(_env_file=None, pinecone_api_key=api_key, pinecone_index_name=index_name)
    )

    with pytest.raises(ConfigurationError, match=missing):
        store.index
