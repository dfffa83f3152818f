from __future__ import annotations

from typing import Any

import httpx

from event_service.clients.base import CollaboratorClient
from event_service.core.config import settings
from event_service.core.retry import RetryPolicy
from event_service.services.error_codes import ErrorCode
from event_service.services.exceptions import GatewayError

_CALENDAR_ID_KEYS = ("calendarid", "calendarId", "id", "_id")


class CalendarClient(CollaboratorClient):

    service_name = "calendar"

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            base_url or settings.calendar_service_url,
            api_key if api_key is not None else settings.calendar_service_key,
            policy=policy,
            http_client=http_client,
        )

    def _object(self, data: Any, operation: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise GatewayError(
                ErrorCode.COLLABORATOR_BAD_RESPONSE.value,
                f"calendar {operation} returned an unexpected payload",
            )
        return data

    async def create_calendar(self, user_id: str) -> str:
        """Create the user's calendar, or fetch it if it already exists."""

        async def operation() -> str:
            data = self._object(self._classify(await self._send("POST", f"/v1/{user_id}")), "create")
            for key in _CALENDAR_ID_KEYS:
                if data.get(key):
                    return str(data[key])
            raise GatewayError(
                ErrorCode.COLLABORATOR_BAD_RESPONSE.value, "calendar create returned no calendar id"
            )

        return await self._call("create_calendar", operation)

    async def add_event(self, calendar_id: str, entry: dict[str, Any]) -> dict[str, Any]:
        async def operation() -> dict[str, Any]:
            response = await self._send("POST", f"/v1/calendars/{calendar_id}", json=entry)
            return self._object(self._classify(response) or {}, "add")

        return await self._call("add_event", operation)

    async def get_events(
        self, calendar_id: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        async def operation() -> list[dict[str, Any]]:
            response = await self._send("GET", f"/v1/calendars/{calendar_id}", params=params)
            data = self._classify(response)
            if data is None:
                return []
            if isinstance(data, dict):
                data = data.get("events", [data] if data else [])
            if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
                raise GatewayError(
                    ErrorCode.COLLABORATOR_BAD_RESPONSE.value, "calendar list returned an unexpected payload"
                )
            return data

        return await self._call("get_events", operation)

    async def update_event(
        self, calendar_id: str, event_id: str, entry: dict[str, Any]
    ) -> dict[str, Any]:
        async def operation() -> dict[str, Any]:
            response = await self._send(
                "PATCH", f"/v1/calendars/{calendar_id}/{event_id}", json=entry
            )
            return self._object(self._classify(response) or {}, "update")

        return await self._call("update_event", operation)

    async def remove_event(self, calendar_id: str, event_id: str) -> None:
        async def operation() -> None:
            self._classify(await self._send("DELETE", f"/v1/calendars/{calendar_id}/{event_id}"))

        await self._call("remove_event", operation)
