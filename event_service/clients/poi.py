from __future__ import annotations

import re
from typing import Any

import httpx

from event_service.clients.base import CollaboratorClient
from event_service.core.config import settings
from event_service.core.retry import RetryPolicy
from event_service.services.error_codes import ErrorCode
from event_service.services.exceptions import ConflictError, GatewayError, NotFoundError

POI_ERROR_CONTRACT = "v1"

CONFLICT_NAME = "name"
CONFLICT_LOCATION = "location"

POI_FIELDS = "id name latitude longitude category description thumbnail"

SEARCH_QUERY = f"""
query PointOfInterest($id: ID!) {{
  pointOfInterest(id: $id) {{ {POI_FIELDS} }}
}}
"""

CREATE_MUTATION = f"""
mutation CreatePointOfInterest($input: PointOfInterestInput!) {{
  createPointOfInterest(input: $input) {{ {POI_FIELDS} }}
}}
"""

_ERROR_CODES = {
    "NOT_FOUND": (NotFoundError, None),
    "DUPLICATE_NAME": (ConflictError, CONFLICT_NAME),
    "DUPLICATE_LOCATION": (ConflictError, CONFLICT_LOCATION),
}

_LEGACY_PATTERNS = (
    (re.compile(r"not\s+found|does\s+not\s+exist", re.I), "NOT_FOUND"),
    (re.compile(r"already\s+exists|duplicate\s+name", re.I), "DUPLICATE_NAME"),
    (re.compile(r"distance|too\s+close|nearby", re.I), "DUPLICATE_LOCATION"),
)


def classify_legacy_message(message: str) -> str | None:
    for pattern, code in _LEGACY_PATTERNS:
        if pattern.search(message):
            return code
    return None


def raise_for_errors(errors: list[Any]) -> None:
    messages = []
    for error in errors:
        if not isinstance(error, dict):
            continue
        message = str(error.get("message", ""))
        messages.append(message)
        extensions = error.get("extensions") or {}
        code = extensions.get("code") if isinstance(extensions, dict) else None
        if code not in _ERROR_CODES:
            code = classify_legacy_message(message)
        if code is None:
            continue

        exc_type, kind = _ERROR_CODES[code]
        if exc_type is NotFoundError:
            raise NotFoundError(ErrorCode.POI_NOT_FOUND.value, message or "point of interest not found")
        error_code = (
            ErrorCode.POI_NAME_CONFLICT if kind == CONFLICT_NAME else ErrorCode.POI_LOCATION_CONFLICT
        )
        raise ConflictError(error_code.value, message or error_code.value, kind=kind)

    raise GatewayError(
        ErrorCode.COLLABORATOR_BAD_RESPONSE.value,
        "point of interest service error: " + "; ".join(m for m in messages if m),
    )


class PointOfInterestClient(CollaboratorClient):
    service_name = "poi"

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            base_url or settings.poi_service_url,
            api_key if api_key is not None else settings.poi_service_key,
            policy=policy,
            http_client=http_client,
        )

    async def _perform(self, query: str, variables: dict[str, Any], field: str) -> Any:
        response = await self._send(
            "POST",
            "/graphql",
            json={"query": query, "variables": variables},
            headers={"x-error-contract": POI_ERROR_CONTRACT},
        )
        body = self._decode(response)
        if not isinstance(body, dict):
            raise GatewayError(
                ErrorCode.COLLABORATOR_BAD_RESPONSE.value,
                f"point of interest service answered {response.status_code} without a GraphQL body",
            )
        if body.get("errors"):
            raise_for_errors(body["errors"])
        if not response.is_success:
            raise GatewayError(
                ErrorCode.COLLABORATOR_BAD_RESPONSE.value,
                f"point of interest service answered {response.status_code}",
            )

        data = body.get("data")
        if not isinstance(data, dict) or field not in data:
            raise GatewayError(
                ErrorCode.COLLABORATOR_BAD_RESPONSE.value, f"GraphQL response is missing {field!r}"
            )
        return data[field]

    async def search(self, poi_id: str) -> dict[str, Any] | None:

        async def operation() -> dict[str, Any] | None:
            try:
                result = await self._perform(SEARCH_QUERY, {"id": poi_id}, "pointOfInterest")
            except NotFoundError:
                return None
            if result is None:
                return None
            if not isinstance(result, dict):
                raise GatewayError(
                    ErrorCode.COLLABORATOR_BAD_RESPONSE.value, "pointOfInterest is not an object"
                )
            return result

        return await self._call("search", operation)

    async def create(self, fields: dict[str, Any]) -> dict[str, Any]:
        async def operation() -> dict[str, Any]:
            result = await self._perform(
                CREATE_MUTATION, {"input": fields}, "createPointOfInterest"
            )
            if not isinstance(result, dict) or not result.get("id"):
                raise GatewayError(
                    ErrorCode.COLLABORATOR_BAD_RESPONSE.value,
                    "createPointOfInterest returned no id",
                )
            return result

        return await self._call("create", operation)
