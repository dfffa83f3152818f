from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import structlog

from event_service.services.error_codes import ErrorCode
from event_service.services.exceptions import ServiceError, ServiceTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DELAY_STEP = 0.25


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ServiceError) and exc.retryable


async def execute(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int,
    initial_delay: float,
    timeout: float,
    delay_step: float = DELAY_STEP,
    name: str | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    # Delay before retry n is initial_delay + (n - 1) * delay_step.
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    op_name = name or getattr(operation, "__qualname__", repr(operation))
    delay = initial_delay
    attempt = 0

    while True:
        attempt += 1
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            error: ServiceError = ServiceTimeoutError(
                ErrorCode.OPERATION_TIMED_OUT.value,
                f"{op_name} timed out after {timeout}s",
            )
            error.__cause__ = exc
        except ServiceError as exc:
            if not _is_retryable(exc):
                raise
            error = exc

        if attempt > max_retries:
            logger.warning(
                "retry_exhausted",
                operation=op_name,
                attempts=attempt,
                error_code=error.code,
            )
            raise error

        logger.info(
            "retry_scheduled",
            operation=op_name,
            attempt=attempt,
            delay=delay,
            error_code=error.code,
        )
        await sleep(delay)
        delay += delay_step


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    initial_delay: float = 0.25
    timeout: float = 7.5
    delay_step: float = DELAY_STEP
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def run(self, operation: Callable[[], Awaitable[T]], *, name: str | None = None) -> T:
        return await execute(
            operation,
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            timeout=self.timeout,
            delay_step=self.delay_step,
            name=name,
            sleep=self.sleep,
        )
