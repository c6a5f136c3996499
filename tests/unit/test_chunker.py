import pytest

from pdf_qa.config import ChunkingConfig
from pdf_qa.errors import EmptyDocumentError
from pdf_qa.ingest.chunker import CharacterWindowChunker
from pdf_qa.types import ParsedDocument


def _make_long_text(length: int = 4321) -> str:
    sentence = "Binary search halves the interval on every comparison. "
    repeated = sentence * (length // len(sentence) + 1)
    return repeated[:length]


def test_chunker_size_bounds_and_overlap() -> None:
    chunker = CharacterWindowChunker(ChunkingConfig(chunk_size=1000, chunk_overlap=200))
    doc = ParsedDocument(doc_id="doc-1", text=_make_long_text())

    chunks = chunker.chunk_document(doc)

    assert len(chunks) >= 2
    assert all(len(chunk.text) <= 1000 for chunk in chunks)
    for previous, current in zip(chunks, chunks[1:]):
        assert previous.end - current.start == 200
        assert previous.text[-200:] == current.text[:200]


def test_chunker_is_deterministic() -> None:
    chunker = CharacterWindowChunker()
    doc = ParsedDocument(doc_id="doc-1", text=_make_long_text())

    assert chunker.chunk_document(doc) == chunker.chunk_document(doc)


def test_deoverlapped_chunks_reconstruct_text() -> None:
    chunker = CharacterWindowChunker()
    text = _make_long_text(3777)

    parts = chunker.split_text(text)
    rebuilt = parts[0] + "".join(part[200:] for part in parts[1:])

    assert rebuilt == text


def test_trailing_text_is_kept_in_short_last_chunk() -> None:
    chunker = CharacterWindowChunker()
    text = "x" * 1000 + "tail"

    parts = chunker.split_text(text)

    assert len(parts) == 2
    assert parts[-1].endswith("tail")
    assert len(parts[-1]) == 204


def test_short_text_yields_single_chunk() -> None:
    chunker = CharacterWindowChunker()
    assert chunker.split_text("Only one sentence.") == ["Only one sentence."]


@pytest.mark.parametrize("text", ["", "   \n\t  "])
def test_empty_text_rejected(text: str) -> None:
    chunker = CharacterWindowChunker()
    with pytest.raises(EmptyDocumentError):
        chunker.chunk_document(ParsedDocument(doc_id="doc-1", text=text))


def test_overlap_must_be_smaller_than_size() -> None:
    with pytest.raises(ValueError):
        CharacterWindowChunker(ChunkingConfig(chunk_size=200, chunk_overlap=200))


def test_three_page_document_gives_three_chunks_with_pages(three_page_text) -> None:
    chunker = CharacterWindowChunker()
    doc = ParsedDocument.from_pages("doc-1", three_page_text)
    assert len(doc.text) == 2400

    chunks = chunker.chunk_document(doc)

    assert [len(chunk.text) for chunk in chunks] == [1000, 1000, 800]
    assert [chunk.chunk_id for chunk in chunks] == [
        "doc-1-chunk-0",
        "doc-1-chunk-1",
        "doc-1-chunk-2",
    ]
    assert [chunk.page_number for chunk in chunks] == [1, 1, 2]


def test_page_number_absent_without_pages() -> None:
    chunker = CharacterWindowChunker()
    chunks = chunker.chunk_document(ParsedDocument(doc_id="doc-1", text="plain text"))
    assert chunks[0].page_number is None
