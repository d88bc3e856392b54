"""JSON-backed document store.

Persists every document in a single JSON file, loaded on init and rewritten
atomically after every commit.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from mindscribe.shared.errors import StoreUnavailable
from mindscribe.shared.io import atomic_write
from mindscribe.store.memory import InMemoryDocumentStore

logger = logging.getLogger(__name__)

STORE_FILENAME = "store.json"


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    documents: dict[str, dict[str, Any]] = Field(default_factory=dict)


class JsonDocumentStore(InMemoryDocumentStore):
    """Document store persisted to ``<data_dir>/store.json``."""

    def __init__(self, data_dir: Path) -> None:
        self._path = data_dir / STORE_FILENAME
        super().__init__(self._load().documents)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> _StoreData:
        if not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt document store at %s, starting fresh", self._path)
            return _StoreData()
        except OSError as exc:
            raise StoreUnavailable(f"Could not read {self._path}: {exc}") from exc

    def _write(self, documents: dict[str, dict[str, Any]]) -> None:
        try:
            atomic_write(self._path, _StoreData(documents=documents).model_dump_json(indent=2))
        except OSError as exc:
            raise StoreUnavailable(f"Could not write {self._path}: {exc}") from exc
