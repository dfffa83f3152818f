from __future__ import annotations

from pathlib import Path

import structlog

from event_service.core.config import settings
from event_service.core.retry import RetryPolicy
from event_service.storage.base import StorageAdapter
from event_service.storage.images import EventImageStore, default_file_policy
from event_service.storage.local import LocalStorageAdapter

logger = structlog.get_logger(__name__)

BACKENDS = {"local": LocalStorageAdapter}


def create_storage(backend: str | None = None, root: str | Path | None = None) -> StorageAdapter:
    name = (backend or settings.storage_backend).strip().lower()
    adapter_cls = BACKENDS.get(name)
    if adapter_cls is None:
        raise ValueError(f"unsupported storage backend: {name}")
    return adapter_cls(Path(root or settings.storage_root))


def create_image_store(
    backend: str | None = None,
    root: str | Path | None = None,
    policy: RetryPolicy | None = None,
) -> EventImageStore:
    adapter = create_storage(backend, root)
    logger.info("image_store_ready", backend=type(adapter).__name__)
    return EventImageStore(adapter, policy or default_file_policy())
