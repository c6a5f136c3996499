"""Fixed-size sliding-window chunking over extracted document text."""

from __future__ import annotations

from bisect import bisect_right

from pdf_qa.config import ChunkingConfig
from pdf_qa.errors import EmptyDocumentError
from pdf_qa.types import DocumentChunk, ParsedDocument


class CharacterWindowChunker:
    """Splits text into overlapping character windows.

    Windows have length `chunk_size` and advance by
    `stride = chunk_size - chunk_overlap`, so consecutive chunks share exactly
    `chunk_overlap` characters. The last window is clipped to the end of the
    text, which means trailing text is always kept and the final chunk may be
    shorter than `chunk_size`.

    The split depends only on the text and the two parameters. Re-chunking the
    same document therefore yields identical chunk ids and texts, which keeps
    index upserts idempotent.

    When the parsed document carries per-page text, each chunk is tagged with
    the 1-based page on which it starts.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()
        if self.config.chunk_overlap >= self.config.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")

    @property
    def stride(self) -> int:
        return self.config.chunk_size - self.config.chunk_overlap

    def split_text(self, text: str) -> list[str]:
        return [text[start:end] for start, end in self._windows(text)]

    def chunk_document(self, document: ParsedDocument) -> list[DocumentChunk]:
        """Chunk a parsed document into ordered, overlapping windows.

        Raises:
            EmptyDocumentError: if the text is empty or whitespace-only.
        """

        page_offsets = document.page_offsets()
        chunks: list[DocumentChunk] = []
        for index, (start, end) in enumerate(self._windows(document.text)):
            chunks.append(
                DocumentChunk(
                    chunk_id=f"{document.doc_id}-chunk-{index}",
                    doc_id=document.doc_id,
                    text=document.text[start:end],
                    chunk_index=index,
                    start=start,
                    end=end,
                    page_number=_page_for_offset(page_offsets, start),
                )
            )
        return chunks

    def _windows(self, text: str) -> list[tuple[int, int]]:
        if not text or not text.strip():
            raise EmptyDocumentError("Document text is empty")

        windows: list[tuple[int, int]] = []
        start = 0
        while True:
            end = min(start + self.config.chunk_size, len(text))
            windows.append((start, end))
            if end >= len(text):
                break
            start += self.stride
        return windows


def _page_for_offset(page_offsets: list[int], offset: int) -> int | None:
    if not page_offsets:
        return None
    return bisect_right(page_offsets, offset)
