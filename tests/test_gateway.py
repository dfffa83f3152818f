from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from event_service.models import Event, Favorite
from event_service.services.exceptions import ConflictError, InternalError
from event_service.store.gateway import RecordStoreGateway
from tests.conftest import event_payload, fast_policy


def _record(event_id: str, **overrides):
    payload = event_payload(**overrides)
    payload.pop("pointofinterestid")
    payload.update(
        id=event_id,
        price=Decimal("10.00"),
        currency="EUR",
        calendarid="cal-1",
        pointofinterestid="poi-1",
    )
    return payload


async def test_create_read_update_delete(gateway: RecordStoreGateway):
    created = await gateway.create(Event, _record("evt-1"))
    assert created.id == "evt-1"
    assert created.favorites == 0

    fetched = await gateway.read(Event, "evt-1")
    assert fetched is not None
    assert fetched.name == "Lisbon Tech Meetup"
    assert fetched.price == Decimal("10.00")

    updated = await gateway.update(Event, "evt-1", {"name": "Renamed", "maxparticipants": 5})
    assert updated.name == "Renamed"
    assert (await gateway.read(Event, "evt-1")).maxparticipants == 5

    assert await gateway.delete(Event, "evt-1") is True
    assert await gateway.read(Event, "evt-1") is None


async def test_missing_records_are_not_errors(gateway: RecordStoreGateway):
    assert await gateway.read(Event, "nope") is None
    assert await gateway.update(Event, "nope", {"name": "x"}) is None
    assert await gateway.delete(Event, "nope") is False
    assert await gateway.read_many(Event, filters={"city": "Nowhere"}) == []


async def test_duplicate_identity_is_a_conflict(gateway: RecordStoreGateway):
    await gateway.create(Event, _record("evt-1"))

    with pytest.raises(ConflictError):
        await gateway.create(Event, _record("evt-1"))


async def test_search_is_case_insensitive_substring(gateway: RecordStoreGateway):
    await gateway.create(Event, _record("evt-1", name="Python Summit", city="Lisbon"))
    await gateway.create(Event, _record("evt-2", name="Jazz Night", organizer="PYTHON club", city="Lisbon"))
    await gateway.create(Event, _record("evt-3", name="Jazz Night", city="Lisbon"))

    found = await gateway.read_many(
        Event, search="python", search_fields=("name", "organizer", "category")
    )
    assert {e.id for e in found} == {"evt-1", "evt-2"}


async def test_search_narrows_other_filters(gateway: RecordStoreGateway):
    await gateway.create(Event, _record("evt-1", name="Python Summit", city="Lisbon"))
    await gateway.create(Event, _record("evt-2", name="Python Summit", city="Porto"))

    found = await gateway.read_many(
        Event, filters={"city": "Porto"}, search="summit", search_fields=("name",)
    )
    assert [e.id for e in found] == ["evt-2"]


async def test_search_treats_wildcards_literally(gateway: RecordStoreGateway):
    await gateway.create(Event, _record("evt-1", name="100% Jazz"))
    await gateway.create(Event, _record("evt-2", name="1000 Jazz"))

    found = await gateway.read_many(Event, search="100%", search_fields=("name",))
    assert [e.id for e in found] == ["evt-1"]


async def test_paging_caps_limit(session_factory):
    gateway = RecordStoreGateway(session_factory, fast_policy(), default_limit=2, max_limit=3)
    start = datetime(2030, 1, 1, tzinfo=timezone.utc)
    for i in range(5):
        await gateway.create(
            Event,
            _record(f"evt-{i}", startdate=start + timedelta(days=i), enddate=start + timedelta(days=i, hours=1)),
        )

    assert len(await gateway.read_many(Event)) == 2
    assert len(await gateway.read_many(Event, limit=50)) == 3

    page = await gateway.read_many(Event, limit=2, offset=3, order_by=Event.startdate)
    assert [e.id for e in page] == ["evt-3", "evt-4"]


async def test_extra_conditions_are_applied(gateway: RecordStoreGateway):
    await gateway.create(Event, _record("cheap"))
    await gateway.create(Event, {**_record("pricey"), "price": Decimal("99.00")})

    found = await gateway.read_many(Event, conditions=[Event.price <= Decimal("20.00")])
    assert [e.id for e in found] == ["cheap"]


async def test_transaction_commits_all_or_nothing(gateway: RecordStoreGateway, session_factory):
    await gateway.create(Event, _record("evt-1"))

    async def work(session):
        session.add(Favorite(eventid="evt-1", userid="u1", favoritestatus=True))
        await session.flush()
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await gateway.transaction(work)

    async with session_factory() as session:
        assert (await session.scalars(select(Favorite))).all() == []


async def test_timed_out_attempt_rolls_back_before_retry(gateway, session_factory):
    await gateway.create(Event, _record("evt-1"))
    impatient = RecordStoreGateway(session_factory, fast_policy(max_retries=1, timeout=0.2))
    attempts = 0

    async def slow_work(session):
        nonlocal attempts
        attempts += 1
        session.add(Favorite(eventid="evt-1", userid=f"u{attempts}", favoritestatus=True))
        await session.flush()
        await asyncio.sleep(1)

    with pytest.raises(InternalError) as exc_info:
        await impatient.transaction(slow_work)

    assert attempts == 2
    assert exc_info.value.code == "STORE_UNREACHABLE"
    async with session_factory() as session:
        assert (await session.scalars(select(Favorite))).all() == []


async def test_connection_failures_are_retried_then_escalated():
    opened = 0

    class BrokenSession:
        async def __aenter__(self):
            nonlocal opened
            opened += 1
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        async def __aexit__(self, *exc_info):
            return False

    gateway = RecordStoreGateway(lambda: BrokenSession(), fast_policy(max_retries=2))

    with pytest.raises(InternalError) as exc_info:
        await gateway.read(Event, "evt-1")

    assert opened == 3
    assert exc_info.value.code == "STORE_UNREACHABLE"
