from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from event_service.clients.calendar import CalendarClient
from event_service.clients.poi import PointOfInterestClient
from event_service.db import create_engine, create_session_factory
from event_service.services.events_service import EventOrchestrator
from event_service.services.favorites_service import FavoriteCounter
from event_service.services.keys_service import ApiKeyVerifier
from event_service.storage.factory import create_image_store
from event_service.storage.images import EventImageStore
from event_service.store.gateway import RecordStoreGateway


@dataclass
class Services:
    engine: AsyncEngine
    gateway: RecordStoreGateway
    calendar: CalendarClient
    poi: PointOfInterestClient
    events: EventOrchestrator
    favorites: FavoriteCounter
    keys: ApiKeyVerifier
    images: EventImageStore

    async def aclose(self) -> None:
        await self.calendar.aclose()
        await self.poi.aclose()
        await self.engine.dispose()


def build_services(database_url: str | None = None) -> Services:
    """Wire the services from ``settings`` for an inbound caller."""
    engine = create_engine(database_url)
    gateway = RecordStoreGateway(create_session_factory(engine))
    calendar = CalendarClient()
    poi = PointOfInterestClient()
    images = create_image_store()
    return Services(
        engine=engine,
        gateway=gateway,
        calendar=calendar,
        poi=poi,
        events=EventOrchestrator(gateway, calendar, poi, images),
        favorites=FavoriteCounter(gateway),
        keys=ApiKeyVerifier(gateway),
        images=images,
    )
