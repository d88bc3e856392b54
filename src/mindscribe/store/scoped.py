"""Owner-scoped view over a document store.

Every path must lie under ``users/{owner_id}``; anything else raises
PermissionDenied before the underlying store is touched.
"""

from __future__ import annotations

from collections.abc import Sequence

from mindscribe.shared.errors import PermissionDenied
from mindscribe.store.base import Document, DocumentStore, Where, WriteOp, join_path

USERS_COLLECTION = "users"


def user_root(owner_id: str) -> str:
    return join_path(USERS_COLLECTION, owner_id)


class OwnerScopedStore(DocumentStore):
    """Restricts reads and writes to one owner's subtree."""

    def __init__(self, inner: DocumentStore, owner_id: str) -> None:
        self._inner = inner
        self.owner_id = owner_id
        self._root = user_root(owner_id)

    def _check(self, path: str) -> None:
        path = path.strip("/")
        if path != self._root and not path.startswith(self._root + "/"):
            raise PermissionDenied(path, self.owner_id)

    async def get(self, path: str) -> Document | None:
        self._check(path)
        return await self._inner.get(path)

    async def query(
        self,
        collection: str,
        where: Sequence[Where] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        self._check(collection)
        return await self._inner.query(
            collection, where=where, order_by=order_by, descending=descending, limit=limit
        )

    async def commit_ops(self, ops: list[WriteOp]) -> None:
        for op in ops:
            self._check(op.path)
        await self._inner.commit_ops(ops)
