from __future__ import annotations

import hashlib

import structlog

from event_service.core.config import settings
from event_service.models import ApiKey
from event_service.store.gateway import RecordStoreGateway

logger = structlog.get_logger(__name__)


def hash_api_key(raw_key: str, secret: str | None = None) -> str:
    salt = settings.api_secret if secret is None else secret
    return hashlib.sha256((raw_key + salt).encode("utf-8")).hexdigest()


class ApiKeyVerifier:
    """Read-only lookup of client keys; issuing keys happens elsewhere."""

    def __init__(self, gateway: RecordStoreGateway, secret: str | None = None) -> None:
        self._gateway = gateway
        self._secret = secret

    async def verify(self, raw_key: str | None) -> bool:
        if not raw_key:
            return False
        record = await self._gateway.read(ApiKey, hash_api_key(raw_key, self._secret))
        if record is None or not record.active:
            logger.info("api_key_rejected", known=record is not None)
            return False
        return True
