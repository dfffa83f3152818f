from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy.pool import StaticPool

# Keep configuration deterministic before anything reads settings
os.environ.setdefault("ENV", "test")
os.environ.setdefault("API_SECRET", "test_secret")
os.environ.setdefault("LIST_DEFAULT_LIMIT", "25")
os.environ.setdefault("LIST_MAX_LIMIT", "50")

from event_service.core.retry import RetryPolicy  # noqa: E402
from event_service.db import create_engine, create_schema, create_session_factory  # noqa: E402
from event_service.schemas.events import EventCreate  # noqa: E402
from event_service.services.error_codes import ErrorCode  # noqa: E402
from event_service.services.exceptions import (  # noqa: E402
    ConflictError,
    GatewayError,
    NotFoundError,
)
from event_service.store.gateway import RecordStoreGateway  # noqa: E402


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def fast_policy(max_retries: int = 2, timeout: float = 5.0) -> RetryPolicy:
    return RetryPolicy(
        max_retries=max_retries,
        initial_delay=0.0,
        timeout=timeout,
        sleep=RecordingSleep(),
    )


@pytest.fixture
async def engine():
    engine = create_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def gateway(session_factory) -> RecordStoreGateway:
    return RecordStoreGateway(session_factory, fast_policy())


def event_payload(**overrides: Any) -> dict[str, Any]:
    start = datetime(2030, 4, 7, 20, 0, tzinfo=timezone.utc)
    payload: dict[str, Any] = {
        "userid": "user-1",
        "name": "Lisbon Tech Meetup",
        "organizer": "Tech Guild",
        "street": "Rua Augusta",
        "doornumber": "N12",
        "postcode": "1100-053",
        "city": "Lisbon",
        "country": "Portugal",
        "category": "technology",
        "contact": "guild@example.com",
        "startdate": start,
        "enddate": start + timedelta(hours=2),
        "about": "Talks and networking",
        "price": "EUR25.55",
        "maxparticipants": 100,
        "currentparticipants": 0,
        "pointofinterestid": "poi-1",
    }
    payload.update(overrides)
    return payload


def event_create(**overrides: Any) -> EventCreate:
    return EventCreate.model_validate(event_payload(**overrides))


def _fail(op: str) -> GatewayError:
    return GatewayError(ErrorCode.COLLABORATOR_BAD_RESPONSE.value, f"{op} failed")


class FakeCalendar:
    """In-memory calendar collaborator with per-operation failure switches."""

    def __init__(self) -> None:
        self.calendars: dict[str, str] = {}
        self.entries: dict[tuple[str, str], dict[str, Any]] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def _enter(self, op: str) -> None:
        self.calls.append(op)
        if op in self.failing:
            raise _fail(op)

    async def create_calendar(self, user_id: str) -> str:
        self._enter("create_calendar")
        return self.calendars.setdefault(user_id, f"cal-{user_id}")

    async def add_event(self, calendar_id: str, entry: dict[str, Any]) -> dict[str, Any]:
        self._enter("add_event")
        self.entries[(calendar_id, entry["eventid"])] = dict(entry)
        return dict(entry)

    async def get_events(self, calendar_id: str, params: dict[str, Any] | None = None):
        self._enter("get_events")
        wanted = (params or {}).get("eventid")
        return [
            dict(entry)
            for (cal, event_id), entry in self.entries.items()
            if cal == calendar_id and (wanted is None or event_id == wanted)
        ]

    async def update_event(self, calendar_id: str, event_id: str, entry: dict[str, Any]):
        self._enter("update_event")
        key = (calendar_id, event_id)
        if key not in self.entries:
            raise NotFoundError(ErrorCode.COLLABORATOR_NOT_FOUND.value)
        self.entries[key].update(entry)
        return dict(self.entries[key])

    async def remove_event(self, calendar_id: str, event_id: str) -> None:
        self._enter("remove_event")
        if self.entries.pop((calendar_id, event_id), None) is None:
            raise NotFoundError(ErrorCode.COLLABORATOR_NOT_FOUND.value)


class FakePointOfInterest:
    def __init__(self) -> None:
        self.pois: dict[str, dict[str, Any]] = {
            "poi-1": {
                "id": "poi-1",
                "name": "Praca do Comercio",
                "latitude": 38.7075,
                "longitude": -9.1364,
                "category": "square",
                "thumbnail": "https://example.com/praca.jpg",
            }
        }
        self.conflicts: dict[str, str] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    async def search(self, poi_id: str) -> dict[str, Any] | None:
        self.calls.append("search")
        if "search" in self.failing:
            raise _fail("search")
        poi = self.pois.get(poi_id)
        return dict(poi) if poi else None

    async def create(self, fields: dict[str, Any]) -> dict[str, Any]:
        self.calls.append("create")
        if "create" in self.failing:
            raise _fail("create")
        kind = self.conflicts.get(fields["name"])
        if kind is not None:
            code = ErrorCode.POI_NAME_CONFLICT if kind == "name" else ErrorCode.POI_LOCATION_CONFLICT
            raise ConflictError(code.value, f"{kind} conflict", kind=kind)
        poi = {"id": f"poi-{len(self.pois) + 1}", **fields}
        self.pois[poi["id"]] = poi
        return dict(poi)


class FakeImages:
    def __init__(self) -> None:
        self.deleted: list[str] = []
        self.fail = False

    async def delete(self, event_id: str) -> bool:
        if self.fail:
            raise _fail("files.delete")
        self.deleted.append(event_id)
        return True


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def poi() -> FakePointOfInterest:
    return FakePointOfInterest()


@pytest.fixture
def images() -> FakeImages:
    return FakeImages()
