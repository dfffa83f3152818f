from __future__ import annotations

from abc import ABC, abstractmethod


def image_key(event_id: str) -> str:
    return f"event_{event_id}.jpeg"


class StorageAdapter(ABC):
    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key, returning whether an object was removed."""
