"""Binary object storage for avatar images."""

from mindscribe.objects.base import ObjectStore
from mindscribe.objects.local import LocalObjectStore

__all__ = ["LocalObjectStore", "ObjectStore"]
