"""PDF text extraction and extension-based parser lookup."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

import pymupdf

from pdf_qa.errors import ExtractionError
from pdf_qa.types import ParsedDocument


class Parser(ABC):
    """Base parser interface used by the ingest pipeline."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, path: Path, *, doc_id: str) -> ParsedDocument:
        """Extract per-page text from a file."""


class PdfParser(Parser):
    """Extracts plain text page by page with PyMuPDF."""

    extensions = (".pdf",)

    def parse(self, path: Path, *, doc_id: str) -> ParsedDocument:
        try:
            with pymupdf.open(path) as pdf:
                pages = [page.get_text("text") for page in pdf]
        except (RuntimeError, ValueError, OSError) as exc:
            raise ExtractionError("Failed to read PDF", detail=str(exc)) from exc

        return ParsedDocument.from_pages(
            doc_id,
            pages,
            metadata={"source": str(path), "format": "pdf", "total_pages": len(pages)},
        )


class ParserRegistry:
    """Maps file extension to parser implementation."""

    def __init__(self, parsers: list[Parser] | None = None) -> None:
        self._parsers: dict[str, Parser] = {}
        for parser in parsers or [PdfParser()]:
            self.register(parser)

    def register(self, parser: Parser) -> None:
        for extension in parser.extensions:
            self._parsers[extension.lower()] = parser

    def parse_path(self, path: str | Path, *, doc_id: str) -> ParsedDocument:
        file_path = Path(path)
        parser = self._parsers.get(file_path.suffix.lower())
        if parser is None:
            raise ExtractionError(f"No parser registered for extension: {file_path.suffix}")
        return parser.parse(file_path, doc_id=doc_id)
