from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import httpx
import structlog

from event_service.core.config import settings
from event_service.core.retry import RetryPolicy
from event_service.services.error_codes import ErrorCode
from event_service.services.exceptions import (
    ConflictError,
    GatewayError,
    NotFoundError,
    ServiceTimeoutError,
    TransportError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Upstream proxies answering for a collaborator that is down or restarting.
RETRYABLE_STATUSES = frozenset({502, 503, 504})


def default_collaborator_policy() -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.collaborator_max_retries,
        initial_delay=settings.collaborator_retry_delay,
        timeout=settings.collaborator_timeout,
    )


class CollaboratorClient:
    service_name = "collaborator"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._policy = policy or default_collaborator_policy()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url, timeout=self._policy.timeout
        )
        self._headers = {"Content-Type": "application/json", "apikey": api_key}
        self.logger = logger.bind(collaborator=self.service_name)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method,
                path,
                headers={**self._headers, **(headers or {})},
                json=json,
                params=params,
            )
        except httpx.TimeoutException as exc:
            raise ServiceTimeoutError(
                ErrorCode.OPERATION_TIMED_OUT.value, f"{self.service_name} request timed out"
            ) from exc
        except httpx.TransportError as exc:
            raise TransportError(
                ErrorCode.COLLABORATOR_UNREACHABLE.value, f"{self.service_name} unreachable: {exc}"
            ) from exc

        if response.status_code in RETRYABLE_STATUSES:
            raise TransportError(
                ErrorCode.COLLABORATOR_UNREACHABLE.value,
                f"{self.service_name} answered {response.status_code}",
            )
        return response

    def _decode(self, response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(
                ErrorCode.COLLABORATOR_BAD_RESPONSE.value,
                f"{self.service_name} returned a non-JSON body",
            ) from exc

    def _classify(self, response: httpx.Response) -> Any:
        """Map a REST-style response to data or a classified error."""
        if response.is_success:
            return self._decode(response)
        if response.status_code == 404:
            raise NotFoundError(
                ErrorCode.COLLABORATOR_NOT_FOUND.value, f"{self.service_name} resource not found"
            )
        if response.status_code == 409:
            raise ConflictError(
                ErrorCode.COLLABORATOR_CONFLICT.value, f"{self.service_name} reported a conflict"
            )
        raise GatewayError(
            ErrorCode.COLLABORATOR_BAD_RESPONSE.value,
            f"{self.service_name} answered {response.status_code}",
        )

    async def _call(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        op_name = f"{self.service_name}.{name}"
        try:
            return await self._policy.run(operation, name=op_name)
        except (ServiceTimeoutError, TransportError) as exc:
            self.logger.error("collaborator_unavailable", operation=op_name, error_code=exc.code)
            raise GatewayError(exc.code, exc.message) from exc
