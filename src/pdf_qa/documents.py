"""Document status registry."""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any, Protocol

from pdf_qa.errors import InvalidStatusTransition, NotFoundError
from pdf_qa.types import DocumentRecord, DocumentStatus

_ALLOWED_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.READY, DocumentStatus.FAILED}),
    DocumentStatus.READY: frozenset(),
    DocumentStatus.FAILED: frozenset(),
}


class DocumentRegistry(Protocol):
    """Key-value contract the pipelines depend on; storage medium is free."""

    def get(self, document_id: str) -> DocumentRecord | None:
        """Return the record or None when unknown."""

    def set(self, record: DocumentRecord) -> None:
        """Insert or replace a record (last write wins)."""

    def exists(self, document_id: str) -> bool:
        """Whether a record is stored under the id."""


class InMemoryDocumentRegistry:
    """Process-lifetime registry; records vanish on restart."""

    def __init__(self) -> None:
        self._records: dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()

    def get(self, document_id: str) -> DocumentRecord | None:
        with self._lock:
            return self._records.get(document_id)

    def set(self, record: DocumentRecord) -> None:
        with self._lock:
            self._records[record.document_id] = record

    def exists(self, document_id: str) -> bool:
        with self._lock:
            return document_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def transition(
    registry: DocumentRegistry,
    document_id: str,
    status: DocumentStatus,
    **fields: Any,
) -> DocumentRecord:
    """Move a record to a terminal status and store the updated copy."""
    current = registry.get(document_id)
    if current is None:
        raise NotFoundError(f"Document not found: {document_id}")
    if status not in _ALLOWED_TRANSITIONS[current.status]:
        raise InvalidStatusTransition(
            f"Cannot move document {document_id} from "
            f"{current.status.value} to {status.value}"
        )
    updated = replace(current, status=status, **fields)
    registry.set(updated)
    return updated
