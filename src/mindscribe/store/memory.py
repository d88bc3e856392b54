"""In-process document store.

Commits build a new document map and swap it in only once every write has
been applied, so a failing write leaves the previous state visible.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Sequence
from typing import Any

from mindscribe.shared.errors import NotFound
from mindscribe.store.base import (
    Document,
    DocumentStore,
    Where,
    WriteOp,
    parent_collection,
    require_collection_path,
    require_document_path,
)

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store keyed by document path."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self._docs: dict[str, dict[str, Any]] = copy.deepcopy(documents or {})

    # ── Hooks ────────────────────────────────────────────────────

    def _write(self, documents: dict[str, dict[str, Any]]) -> None:
        """Persist a fully-applied document map before it becomes visible."""

    # ── Read operations ──────────────────────────────────────────

    async def get(self, path: str) -> Document | None:
        path = require_document_path(path)
        data = self._docs.get(path)
        if data is None:
            return None
        return Document(path=path, data=copy.deepcopy(data))

    async def query(
        self,
        collection: str,
        where: Sequence[Where] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        collection = require_collection_path(collection)
        matches = [
            (path, data)
            for path, data in self._docs.items()
            if parent_collection(path) == collection
            and all(clause.matches(data) for clause in where)
        ]
        matches.sort(key=lambda item: item[0])
        if order_by is not None:
            present = [m for m in matches if m[1].get(order_by) is not None]
            missing = [m for m in matches if m[1].get(order_by) is None]
            present.sort(key=lambda item: item[1][order_by], reverse=descending)
            matches = present + missing
        if limit is not None:
            matches = matches[:limit]
        return [Document(path=path, data=copy.deepcopy(data)) for path, data in matches]

    # ── Write operations ─────────────────────────────────────────

    async def commit_ops(self, ops: list[WriteOp]) -> None:
        documents = self._apply(ops)
        self._write(documents)
        self._docs = documents
        logger.debug("Committed %d write(s)", len(ops))

    def _apply(self, ops: list[WriteOp]) -> dict[str, dict[str, Any]]:
        documents = dict(self._docs)
        for op in ops:
            path = require_document_path(op.path)
            if op.kind == "delete":
                documents.pop(path, None)
            elif op.kind == "update":
                if path not in documents:
                    raise NotFound(path)
                documents[path] = {**documents[path], **copy.deepcopy(op.data)}
            elif op.merge and path in documents:
                documents[path] = {**documents[path], **copy.deepcopy(op.data)}
            else:
                documents[path] = copy.deepcopy(op.data)
        return documents

    def __len__(self) -> int:
        return len(self._docs)
