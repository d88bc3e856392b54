"""Filesystem-backed object store."""

from __future__ import annotations

import logging
from pathlib import Path

from mindscribe.objects.base import ObjectStore
from mindscribe.shared.errors import StoreUnavailable
from mindscribe.store.base import split_path

logger = logging.getLogger(__name__)


class LocalObjectStore(ObjectStore):
    """Writes objects under a root directory and returns ``file://`` URLs."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def resolve(self, path: str) -> Path:
        segments = split_path(path)
        if any(s in (".", "..") for s in segments):
            raise ValueError(f"Invalid object path: {path!r}")
        return self.root.joinpath(*segments)

    async def upload(self, path: str, data: bytes, content_type: str = "") -> str:
        target = self.resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StoreUnavailable(f"Could not store object {path}: {exc}") from exc
        logger.info("Stored object %s (%d bytes, %s)", path, len(data), content_type or "unknown")
        return target.resolve().as_uri()
