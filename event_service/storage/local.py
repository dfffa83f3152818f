from __future__ import annotations

from pathlib import Path, PurePosixPath

from event_service.storage.base import StorageAdapter


class LocalStorageAdapter(StorageAdapter):
    def __init__(self, root: Path) -> None:
        self._root = root.resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    def _path_for_key(self, key: str) -> Path:
        normalized = key.strip().lstrip("/")
        path_key = PurePosixPath(normalized)
        if not normalized or ".." in path_key.parts:
            raise ValueError(f"invalid storage key: {key!r}")
        return self._root.joinpath(*path_key.parts)

    def delete(self, key: str) -> bool:
        path = self._path_for_key(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True
