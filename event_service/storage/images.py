from __future__ import annotations

import asyncio

from event_service.core.config import settings
from event_service.core.retry import RetryPolicy
from event_service.services.error_codes import ErrorCode
from event_service.services.exceptions import TransportError, ValidationError
from event_service.storage.base import StorageAdapter, image_key


def default_file_policy() -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.file_max_retries,
        initial_delay=settings.file_retry_delay,
        timeout=settings.file_timeout,
    )


class EventImageStore:
    """Retried access to event images on a blocking storage adapter."""

    def __init__(self, adapter: StorageAdapter, policy: RetryPolicy | None = None) -> None:
        self._adapter = adapter
        self._policy = policy or default_file_policy()

    async def _in_thread(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except ValueError as exc:
            raise ValidationError(ErrorCode.INVALID_STORAGE_KEY.value, str(exc)) from exc
        except OSError as exc:
            raise TransportError(ErrorCode.COLLABORATOR_UNREACHABLE.value, f"file storage: {exc}") from exc

    async def delete(self, event_id: str) -> bool:
        key = image_key(event_id)
        return await self._policy.run(
            lambda: self._in_thread(self._adapter.delete, key), name="files.delete"
        )
