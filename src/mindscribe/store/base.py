"""Document store contract.

Paths alternate collection and document segments, so
``users/u1/drafts`` is a collection and ``users/u1/drafts/p1`` a document.
All operations are coroutines; every write goes through ``commit_ops`` so a
single write and a batch share the same all-or-nothing path.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Literal

from pydantic import BaseModel, Field

Operator = Literal["==", "!=", "<", "<=", ">", ">=", "in"]
WriteKind = Literal["set", "update", "delete"]


def split_path(path: str) -> list[str]:
    segments = path.strip("/").split("/")
    if not segments or any(not s for s in segments):
        raise ValueError(f"Invalid store path: {path!r}")
    return segments


def is_document_path(path: str) -> bool:
    return len(split_path(path)) % 2 == 0


def require_document_path(path: str) -> str:
    if not is_document_path(path):
        raise ValueError(f"Not a document path: {path!r}")
    return path.strip("/")


def require_collection_path(path: str) -> str:
    if is_document_path(path):
        raise ValueError(f"Not a collection path: {path!r}")
    return path.strip("/")


def parent_collection(path: str) -> str:
    """Return the collection path that holds a document."""
    return "/".join(split_path(require_document_path(path))[:-1])


def join_path(*segments: str) -> str:
    return "/".join(split_path("/".join(segments)))


class Where(BaseModel):
    """A single query filter on a top-level field."""

    field: str
    op: Operator = "=="
    value: Any = None

    def matches(self, data: dict[str, Any]) -> bool:
        if self.field not in data:
            return False
        actual = data[self.field]
        if self.op == "==":
            return actual == self.value
        if self.op == "!=":
            return actual != self.value
        if self.op == "in":
            return actual in self.value
        if actual is None or self.value is None:
            return False
        if self.op == "<":
            return actual < self.value
        if self.op == "<=":
            return actual <= self.value
        if self.op == ">":
            return actual > self.value
        return actual >= self.value


class Document(BaseModel):
    """A snapshot of one stored document."""

    path: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def id(self) -> str:
        return split_path(self.path)[-1]


class WriteOp(BaseModel):
    """One pending write inside a commit."""

    kind: WriteKind
    path: str
    data: dict[str, Any] = Field(default_factory=dict)
    merge: bool = False


class WriteBatch:
    """Collects writes and applies them together on commit().

    Either every write is applied or none is.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._ops: list[WriteOp] = []
        self._committed = False

    def set(self, path: str, data: dict[str, Any], merge: bool = False) -> WriteBatch:
        self._ops.append(
            WriteOp(kind="set", path=require_document_path(path), data=dict(data), merge=merge)
        )
        return self

    def update(self, path: str, data: dict[str, Any]) -> WriteBatch:
        self._ops.append(WriteOp(kind="update", path=require_document_path(path), data=dict(data)))
        return self

    def delete(self, path: str) -> WriteBatch:
        self._ops.append(WriteOp(kind="delete", path=require_document_path(path)))
        return self

    def __len__(self) -> int:
        return len(self._ops)

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch already committed")
        self._committed = True
        if self._ops:
            await self._store.commit_ops(list(self._ops))


class DocumentStore(ABC):
    """Base class for hierarchical document stores."""

    @abstractmethod
    async def get(self, path: str) -> Document | None:
        """Return the document at ``path``, or None if it does not exist."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        where: Sequence[Where] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        """Return documents of one collection, filtered, ordered and limited.

        Documents missing the ``order_by`` field sort last.
        """

    @abstractmethod
    async def commit_ops(self, ops: list[WriteOp]) -> None:
        """Apply all writes atomically.

        Raises NotFound (and applies nothing) when an update targets a
        missing document.
        """

    async def set(self, path: str, data: dict[str, Any], merge: bool = False) -> None:
        await self.batch().set(path, data, merge=merge).commit()

    async def update(self, path: str, data: dict[str, Any]) -> None:
        await self.batch().update(path, data).commit()

    async def delete(self, path: str) -> None:
        """Delete a document; deleting a missing document is a no-op."""
        await self.batch().delete(path).commit()

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex
