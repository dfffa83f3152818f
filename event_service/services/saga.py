from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

C = TypeVar("C")

Action = Callable[[C], Awaitable[None]]


@dataclass
class SagaStep(Generic[C]):
    name: str
    act: Action
    compensate: Action | None = None


@dataclass
class Saga(Generic[C]):
    name: str
    steps: list[SagaStep[C]] = field(default_factory=list)

    def step(self, name: str, act: Action, compensate: Action | None = None) -> "Saga[C]":
        self.steps.append(SagaStep(name, act, compensate))
        return self

    async def run(self, context: C) -> C:
        completed: list[SagaStep[C]] = []
        for step in self.steps:
            try:
                await step.act(context)
            except Exception as exc:
                logger.warning(
                    "saga_step_failed",
                    saga=self.name,
                    step=step.name,
                    error=getattr(exc, "code", type(exc).__name__),
                )
                await self._compensate(completed, context)
                raise
            completed.append(step)
        return context

    async def _compensate(self, completed: list[SagaStep[C]], context: Any) -> None:
        for step in reversed(completed):
            if step.compensate is None:
                continue
            try:
                await step.compensate(context)
            except Exception:
                logger.exception("compensation_failed", saga=self.name, step=step.name)
            else:
                logger.info("compensation_applied", saga=self.name, step=step.name)
