from event_service.storage.base import StorageAdapter, image_key
from event_service.storage.factory import create_image_store, create_storage
from event_service.storage.images import EventImageStore
from event_service.storage.local import LocalStorageAdapter

__all__ = [
    "StorageAdapter",
    "LocalStorageAdapter",
    "EventImageStore",
    "create_image_store",
    "create_storage",
    "image_key",
]
