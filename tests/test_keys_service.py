from __future__ import annotations

import hashlib

import pytest

from event_service.models import ApiKey
from event_service.services.keys_service import ApiKeyVerifier, hash_api_key


def test_hash_is_salted_sha256():
    expected = hashlib.sha256(b"client-key" + b"pepper").hexdigest()

    assert hash_api_key("client-key", "pepper") == expected
    assert hash_api_key("client-key", "other") != expected


@pytest.fixture
async def verifier(gateway) -> ApiKeyVerifier:
    await gateway.create(ApiKey, {"id": hash_api_key("good", "pepper"), "appid": "app-1"})
    await gateway.create(
        ApiKey, {"id": hash_api_key("revoked", "pepper"), "appid": "app-2", "active": False}
    )
    return ApiKeyVerifier(gateway, secret="pepper")


@pytest.mark.parametrize(
    ("raw_key", "accepted"),
    [("good", True), ("revoked", False), ("unknown", False), ("", False), (None, False)],
)
async def test_verify(verifier, raw_key, accepted):
    assert await verifier.verify(raw_key) is accepted
