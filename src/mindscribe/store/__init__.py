"""Document store: contract, in-memory and JSON-file implementations."""

from mindscribe.store.base import Document, DocumentStore, Where, WriteBatch, WriteOp
from mindscribe.store.json_store import JsonDocumentStore
from mindscribe.store.memory import InMemoryDocumentStore
from mindscribe.store.scoped import OwnerScopedStore, user_root

__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    "JsonDocumentStore",
    "OwnerScopedStore",
    "Where",
    "WriteBatch",
    "WriteOp",
    "user_root",
]
