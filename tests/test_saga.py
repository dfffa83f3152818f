from __future__ import annotations

import pytest

from event_service.services.saga import Saga


def _recorder(log: list[str], label: str, fail: bool = False):
    async def action(ctx) -> None:
        log.append(label)
        if fail:
            raise RuntimeError(label)

    return action


async def test_steps_run_in_order():
    log: list[str] = []
    saga = (
        Saga("demo")
        .step("a", _recorder(log, "a"), _recorder(log, "undo a"))
        .step("b", _recorder(log, "b"))
        .step("c", _recorder(log, "c"))
    )

    ctx = object()
    assert await saga.run(ctx) is ctx
    assert log == ["a", "b", "c"]


async def test_failure_compensates_completed_steps_in_reverse():
    log: list[str] = []
    saga = (
        Saga("demo")
        .step("a", _recorder(log, "a"), _recorder(log, "undo a"))
        .step("b", _recorder(log, "b"))
        .step("c", _recorder(log, "c"), _recorder(log, "undo c"))
        .step("d", _recorder(log, "d", fail=True), _recorder(log, "undo d"))
    )

    with pytest.raises(RuntimeError, match="d"):
        await saga.run(None)

    assert log == ["a", "b", "c", "d", "undo c", "undo a"]


async def test_failed_compensation_keeps_original_error():
    log: list[str] = []
    saga = (
        Saga("demo")
        .step("a", _recorder(log, "a"), _recorder(log, "undo a"))
        .step("b", _recorder(log, "b"), _recorder(log, "undo b", fail=True))
        .step("c", _recorder(log, "c", fail=True))
    )

    with pytest.raises(RuntimeError) as exc_info:
        await saga.run(None)

    assert str(exc_info.value) == "c"
    assert log == ["a", "b", "c", "undo b", "undo a"]
