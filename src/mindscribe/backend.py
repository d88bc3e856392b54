"""Wiring of the three backend collaborators."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mindscribe.config import MindScribeConfig
from mindscribe.identity.base import IdentityProvider
from mindscribe.identity.local import LocalIdentityProvider
from mindscribe.objects.base import ObjectStore
from mindscribe.objects.local import LocalObjectStore
from mindscribe.store.base import DocumentStore
from mindscribe.store.json_store import JsonDocumentStore

logger = logging.getLogger(__name__)

OBJECTS_DIRNAME = "objects"


@dataclass
class Backend:
    """Identity provider, document store and object store plus config."""

    config: MindScribeConfig
    identity: IdentityProvider
    store: DocumentStore
    objects: ObjectStore


def open_backend(config: MindScribeConfig) -> Backend:
    """Open the file-backed collaborators under ``config.storage.data_dir``."""
    data_dir = config.storage.path
    logger.debug("Opening backend at %s", data_dir)
    return Backend(
        config=config,
        identity=LocalIdentityProvider(data_dir, config.auth),
        store=JsonDocumentStore(data_dir),
        objects=LocalObjectStore(data_dir / OBJECTS_DIRNAME),
    )
