from __future__ import annotations

import structlog
from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from event_service.models import Event, Favorite
from event_service.services.error_codes import ErrorCode
from event_service.services.exceptions import NotFoundError
from event_service.store.gateway import RecordStoreGateway

logger = structlog.get_logger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def _ensure_favorite_row(session: AsyncSession, event_id: str, user_id: str) -> None:
    """Insert an inactive favorite row unless one already exists."""
    values = {"eventid": event_id, "userid": user_id, "favoritestatus": False}
    dialect_insert = _UPSERT_INSERTS.get(session.bind.dialect.name)
    if dialect_insert is not None:
        stmt = dialect_insert(Favorite).values(**values).on_conflict_do_nothing(
            index_elements=["eventid", "userid"]
        )
        await session.execute(stmt)
        return

    try:
        async with session.begin_nested():
            await session.execute(insert(Favorite).values(**values))
    except IntegrityError:
        # Another writer created the row first.
        pass


class FavoriteCounter:
    """Keeps ``Event.favorites`` equal to the number of active favorite rows."""

    def __init__(self, gateway: RecordStoreGateway) -> None:
        self._gateway = gateway

    async def toggle(self, event_id: str, user_id: str, desired_status: bool) -> bool:
        """Set the user's favorite status; returns whether anything changed."""

        async def work(session: AsyncSession) -> bool:
            found = await session.scalar(
                select(Event.id).where(Event.id == event_id).with_for_update()
            )
            if found is None:
                raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")

            if desired_status:
                await _ensure_favorite_row(session, event_id, user_id)

            flipped = await session.execute(
                update(Favorite)
                .where(
                    Favorite.eventid == event_id,
                    Favorite.userid == user_id,
                    Favorite.favoritestatus == (not desired_status),
                )
                .values(favoritestatus=desired_status)
                .execution_options(synchronize_session=False)
            )
            if flipped.rowcount != 1:
                return False

            counter = update(Event).where(Event.id == event_id)
            if desired_status:
                counter = counter.values(favorites=Event.favorites + 1)
            else:
                counter = counter.where(Event.favorites > 0).values(favorites=Event.favorites - 1)
            await session.execute(counter.execution_options(synchronize_session=False))
            return True

        changed = await self._gateway.transaction(work, name="store.toggle_favorite")
        logger.info(
            "favorite_toggled",
            event_id=event_id,
            userid=user_id,
            favoritestatus=desired_status,
            changed=changed,
        )
        return changed

    async def is_favorite(self, event_id: str, user_id: str) -> bool:
        rows = await self._gateway.read_many(
            Favorite, filters={"eventid": event_id, "userid": user_id}, limit=1
        )
        return bool(rows and rows[0].favoritestatus)

    async def count(self, event_id: str) -> int:

        async def work(session: AsyncSession) -> int:
            total = await session.scalar(
                select(func.count())
                .select_from(Favorite)
                .where(Favorite.eventid == event_id, Favorite.favoritestatus.is_(True))
            )
            return int(total or 0)

        return await self._gateway.transaction(work, name="store.count_favorites")
