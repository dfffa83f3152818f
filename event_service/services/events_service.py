from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from event_service.clients.calendar import CalendarClient
from event_service.clients.poi import PointOfInterestClient
from event_service.core.config import settings
from event_service.models import Event, Favorite
from event_service.schemas.events import (
    EventCreate,
    EventCreated,
    EventQuery,
    EventUpdate,
    EventUpdated,
    EventView,
    PointOfInterestView,
)
from event_service.services.error_codes import ErrorCode
from event_service.services.exceptions import (
    ConflictError,
    GatewayError,
    InternalError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from event_service.services.saga import Saga
from event_service.storage.images import EventImageStore
from event_service.store.gateway import RecordStoreGateway

logger = structlog.get_logger(__name__)

_PRICE_RE = re.compile(r"^(?P<currency>[A-Z]{3})(?P<amount>\d+(?:\.\d+)?)$")

# Fields the calendar collaborator owns, keyed by our local column name.
CALENDAR_FIELDS = {"name": "name", "about": "description", "startdate": "startdate", "enddate": "enddate"}
ADDRESS_FIELDS = ("street", "doornumber", "postcode", "city", "country")
# Participant counts are caller-owned, last write wins; clearing them is allowed.
NULLABLE_FIELDS = ("maxparticipants", "currentparticipants")


def split_price(value: str) -> tuple[str, Decimal]:
    """Split ``"EUR25.55"`` into ``("EUR", Decimal("25.55"))``."""
    match = _PRICE_RE.match(value.strip())
    if not match:
        raise ValidationError(ErrorCode.INVALID_PRICE.value, f"invalid price {value!r}")
    return match["currency"], Decimal(match["amount"])


def event_location(event_id: str) -> str:
    return f"v1/events/{event_id}"


def _address(source: Any) -> str:
    get = source.get if isinstance(source, dict) else lambda f: getattr(source, f, None)
    street = " ".join(str(get(f)) for f in ("street", "doornumber") if get(f))
    town = " ".join(str(get(f)) for f in ("postcode", "city") if get(f))
    return ", ".join(part for part in (street, town, get("country")) if part)


@dataclass
class CreateContext:
    event_id: str
    command: EventCreate
    poi: dict[str, Any] | None = None
    calendar_id: str | None = None
    record: Event | None = None


@dataclass
class UpdateContext:
    event_id: str
    record: Event
    changes: dict[str, Any]
    calendar_changes: dict[str, Any]
    poi: dict[str, Any] | None = None


class EventOrchestrator:
    """Keeps an Event consistent across the record store and its collaborators."""

    def __init__(
        self,
        gateway: RecordStoreGateway,
        calendar: CalendarClient,
        poi: PointOfInterestClient,
        images: EventImageStore | None = None,
    ) -> None:
        self._gateway = gateway
        self._calendar = calendar
        self._poi = poi
        self._images = images

    # -- shared steps --------------------------------------------------------

    async def _find_poi(self, poi_id: str) -> dict[str, Any] | None:
        try:
            return await self._poi.search(poi_id)
        except GatewayError:
            raise
        except ServiceError as exc:
            raise GatewayError(ErrorCode.POI_UNAVAILABLE.value, exc.message) from exc

    async def _resolve_calendar(self, user_id: str) -> str:
        try:
            return await self._calendar.create_calendar(user_id)
        except ServiceError as exc:
            raise GatewayError(ErrorCode.CALENDAR_UNAVAILABLE.value, exc.message) from exc

    # -- create --------------------------------------------------------------

    async def _create_resolve_poi(self, ctx: CreateContext) -> None:
        cmd = ctx.command
        if cmd.pointofinterestid:
            ctx.poi = await self._find_poi(cmd.pointofinterestid)
            if ctx.poi is None:
                raise NotFoundError(ErrorCode.POI_NOT_FOUND.value, "point of interest not found")
            return

        if cmd.pointofinterest is None:
            raise NotFoundError(ErrorCode.POI_NOT_FOUND.value, "no point of interest supplied")

        try:
            ctx.poi = await self._poi.create(cmd.pointofinterest.model_dump(exclude_none=True))
        except (ConflictError, GatewayError):
            raise
        except ServiceError as exc:
            raise GatewayError(ErrorCode.POI_UNAVAILABLE.value, exc.message) from exc
        logger.info("poi_created", pointofinterestid=ctx.poi["id"])

    async def _create_resolve_calendar(self, ctx: CreateContext) -> None:
        ctx.calendar_id = await self._resolve_calendar(ctx.command.userid)

    def _calendar_entry(self, ctx: CreateContext) -> dict[str, Any]:
        cmd = ctx.command
        return {
            "eventid": ctx.event_id,
            "name": cmd.name,
            "description": cmd.about,
            "startdate": cmd.startdate.isoformat(),
            "enddate": cmd.enddate.isoformat(),
            "location": _address(cmd.model_dump()),
            "pointofinterestid": str(ctx.poi["id"]),
        }

    async def _create_add_calendar_event(self, ctx: CreateContext) -> None:
        try:
            await self._calendar.add_event(ctx.calendar_id, self._calendar_entry(ctx))
        except ServiceError as exc:
            raise GatewayError(ErrorCode.CALENDAR_UNAVAILABLE.value, exc.message) from exc

    async def _create_remove_calendar_event(self, ctx: CreateContext) -> None:
        await self._calendar.remove_event(ctx.calendar_id, ctx.event_id)

    async def _create_persist(self, ctx: CreateContext) -> None:
        cmd = ctx.command
        payload = cmd.model_dump(exclude={"price", "pointofinterest", "pointofinterestid"})
        if cmd.price is not None:
            payload["currency"], payload["price"] = split_price(cmd.price)
        payload.update(
            id=ctx.event_id,
            calendarid=ctx.calendar_id,
            pointofinterestid=str(ctx.poi["id"]),
        )

        try:
            ctx.record = await self._gateway.create(Event, payload)
        except ConflictError as exc:
            # A retried create whose first attempt committed; the id is ours.
            existing = await self._gateway.read(Event, ctx.event_id)
            if existing is None or existing.userid != cmd.userid:
                raise InternalError(ErrorCode.EVENT_STORE_FAILED.value, exc.message) from exc
            ctx.record = existing
        except ServiceError as exc:
            raise InternalError(ErrorCode.EVENT_STORE_FAILED.value, exc.message) from exc

    async def create(self, command: EventCreate, *, event_id: str | None = None) -> EventCreated:
        ctx = CreateContext(event_id=event_id or str(uuid.uuid4()), command=command)
        saga: Saga[CreateContext] = (
            Saga("create_event")
            .step("resolve_poi", self._create_resolve_poi)
            .step("resolve_calendar", self._create_resolve_calendar)
            .step(
                "add_calendar_event",
                self._create_add_calendar_event,
                self._create_remove_calendar_event,
            )
            .step("persist_event", self._create_persist)
        )

        with structlog.contextvars.bound_contextvars(event_id=ctx.event_id, operation="create"):
            if event_id is not None:
                existing = await self._gateway.read(Event, event_id)
                if existing is not None:
                    if existing.userid != command.userid:
                        raise ConflictError(
                            ErrorCode.EVENT_ALREADY_EXISTS.value, "event id is already taken"
                        )
                    logger.info("event_create_replayed")
                    return EventCreated(event_id=event_id, location=event_location(event_id))

            await saga.run(ctx)
            logger.info("event_created", userid=command.userid)

        return EventCreated(event_id=ctx.event_id, location=event_location(ctx.event_id))

    # -- read / list ---------------------------------------------------------

    async def _get_record(self, event_id: str) -> Event:
        record = await self._gateway.read(Event, event_id)
        if record is None:
            raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
        return record

    async def _calendar_entry_for(self, record: Event) -> dict[str, Any]:
        try:
            entries = await self._calendar.get_events(record.calendarid, {"eventid": record.id})
        except ServiceError as exc:
            raise GatewayError(ErrorCode.CALENDAR_UNAVAILABLE.value, exc.message) from exc

        matching = [e for e in entries if str(e.get("eventid")) == record.id]
        if not matching:
            raise GatewayError(
                ErrorCode.CALENDAR_EVENT_NOT_FOUND.value, "calendar has no entry for this event"
            )
        return matching[0]

    async def read(self, event_id: str) -> EventView:
        with structlog.contextvars.bound_contextvars(event_id=event_id, operation="read"):
            record = await self._get_record(event_id)
            entry = await self._calendar_entry_for(record)

            poi = await self._find_poi(record.pointofinterestid)
            if not poi:
                raise GatewayError(
                    ErrorCode.POI_UNAVAILABLE.value, "point of interest for this event is missing"
                )

        data = EventView.model_validate(record).model_dump()
        for column, remote in CALENDAR_FIELDS.items():
            if entry.get(remote) is not None:
                data[column] = entry[remote]
        data["pointofinterest"] = PointOfInterestView.model_validate({**poi, "id": str(poi["id"])})
        return EventView.model_validate(data)

    async def list(self, query: EventQuery) -> list[EventView]:
        filters = {
            field: value
            for field in ("name", "organizer", "city", "category")
            if (value := getattr(query, field)) is not None
        }
        conditions = []
        if query.startdate is not None:
            filters["startdate"] = query.startdate
        else:
            if query.beforedate is not None:
                conditions.append(Event.enddate <= query.beforedate)
            if query.afterdate is not None:
                conditions.append(Event.startdate >= query.afterdate)
        if query.maxprice is not None:
            conditions.append(Event.price <= query.maxprice)

        records = await self._gateway.read_many(
            Event,
            filters=filters,
            conditions=conditions,
            search=query.search,
            search_fields=settings.search_fields,
            limit=query.limit,
            offset=query.offset,
            order_by=Event.startdate,
        )
        if not records:
            raise NotFoundError(ErrorCode.EVENTS_NOT_FOUND.value, "no events match the query")
        return [EventView.model_validate(record) for record in records]

    # -- update --------------------------------------------------------------

    async def _update_resolve_poi(self, ctx: UpdateContext) -> None:
        ctx.poi = await self._find_poi(ctx.record.pointofinterestid)
        if ctx.poi is None:
            raise GatewayError(
                ErrorCode.POI_UNAVAILABLE.value, "point of interest for this event is missing"
            )

    async def _update_resolve_calendar(self, ctx: UpdateContext) -> None:
        calendar_id = await self._resolve_calendar(ctx.record.userid)
        if calendar_id != ctx.record.calendarid:
            logger.warning(
                "calendar_mismatch", resolved=calendar_id, stored=ctx.record.calendarid
            )

    def _entry_from(self, values: dict[str, Any]) -> dict[str, Any]:
        entry = {}
        for column, remote in CALENDAR_FIELDS.items():
            if column in values:
                value = values[column]
                entry[remote] = value.isoformat() if hasattr(value, "isoformat") else value
        if any(field in values for field in ADDRESS_FIELDS):
            entry["location"] = _address(values)
        return entry

    async def _update_calendar_event(self, ctx: UpdateContext) -> None:
        if not ctx.calendar_changes:
            return
        try:
            await self._calendar.update_event(
                ctx.record.calendarid, ctx.event_id, ctx.calendar_changes
            )
        except ServiceError as exc:
            raise GatewayError(ErrorCode.CALENDAR_UNAVAILABLE.value, exc.message) from exc

    async def _restore_calendar_event(self, ctx: UpdateContext) -> None:
        if not ctx.calendar_changes:
            return
        previous = {column: getattr(ctx.record, column) for column in (*CALENDAR_FIELDS, *ADDRESS_FIELDS)}
        await self._calendar.update_event(
            ctx.record.calendarid, ctx.event_id, self._entry_from(previous)
        )

    async def _update_persist(self, ctx: UpdateContext) -> None:
        try:
            updated = await self._gateway.update(Event, ctx.event_id, ctx.changes)
        except ServiceError as exc:
            raise InternalError(ErrorCode.EVENT_STORE_FAILED.value, exc.message) from exc
        if updated is None:
            raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
        ctx.record = updated

    async def update(self, event_id: str, command: EventUpdate) -> EventUpdated:
        with structlog.contextvars.bound_contextvars(event_id=event_id, operation="update"):
            record = await self._get_record(event_id)

            if command.pointofinterestid and command.pointofinterestid != record.pointofinterestid:
                raise ConflictError(
                    ErrorCode.POI_IMMUTABLE.value, "an event's point of interest cannot be changed"
                )

            # Identity and references are immutable; favorites is owned by the counter.
            changes = {
                field: value
                for field, value in command.model_dump(
                    exclude_unset=True, exclude={"userid", "pointofinterestid"}
                ).items()
                if value is not None or field in NULLABLE_FIELDS
            }
            if changes.get("price") is not None:
                changes["currency"], changes["price"] = split_price(changes["price"])
            else:
                changes.pop("price", None)

            new_start = changes.get("startdate", record.startdate)
            new_end = changes.get("enddate", record.enddate)
            if _as_utc_naive(new_end) < _as_utc_naive(new_start):
                raise ValidationError(
                    ErrorCode.INVALID_DATES.value, "enddate must not be before startdate"
                )

            calendar_values = {k: v for k, v in changes.items() if k in CALENDAR_FIELDS}
            if any(field in changes for field in ADDRESS_FIELDS):
                calendar_values.update(
                    {field: changes.get(field, getattr(record, field)) for field in ADDRESS_FIELDS}
                )

            ctx = UpdateContext(
                event_id=event_id,
                record=record,
                changes=changes,
                calendar_changes=self._entry_from(calendar_values),
            )
            saga: Saga[UpdateContext] = (
                Saga("update_event")
                .step("resolve_poi", self._update_resolve_poi)
                .step("resolve_calendar", self._update_resolve_calendar)
                .step("update_calendar_event", self._update_calendar_event, self._restore_calendar_event)
                .step("persist_event", self._update_persist)
            )
            await saga.run(ctx)
            logger.info("event_updated", fields=sorted(changes))

        return EventUpdated(event_id=event_id, location=event_location(event_id))

    # -- delete --------------------------------------------------------------

    async def delete(self, event_id: str) -> None:
        """Remove the event everywhere. Deleting a missing event succeeds."""
        with structlog.contextvars.bound_contextvars(event_id=event_id, operation="delete"):
            record = await self._gateway.read(Event, event_id)
            if record is None:
                logger.info("event_delete_noop")
                return

            if self._images is not None:
                try:
                    await self._images.delete(event_id)
                except ServiceError as exc:
                    logger.warning("image_cleanup_failed", error_code=exc.code)

            try:
                await self._calendar.remove_event(record.calendarid, event_id)
            except NotFoundError:
                logger.info("calendar_event_already_removed")
            except ServiceError as exc:
                raise GatewayError(ErrorCode.CALENDAR_UNAVAILABLE.value, exc.message) from exc

            async def remove_records(session: AsyncSession) -> None:
                await session.execute(delete(Favorite).where(Favorite.eventid == event_id))
                await session.execute(delete(Event).where(Event.id == event_id))

            try:
                await self._gateway.transaction(remove_records, name="store.delete_event")
            except ServiceError as exc:
                raise InternalError(ErrorCode.EVENT_STORE_FAILED.value, exc.message) from exc
            logger.info("event_deleted")


def _as_utc_naive(value: datetime) -> datetime:
    # Stores without time zone support hand back naive UTC datetimes.
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
