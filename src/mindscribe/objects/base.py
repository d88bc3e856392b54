"""Base class for binary object stores."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ObjectStore(ABC):
    """Stores blobs by path and hands back a URL to download them."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str = "") -> str:
        """Store ``data`` at ``path`` and return its download URL."""
