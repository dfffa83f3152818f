from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence, TypeVar

import structlog
from sqlalchemy import and_, delete, inspect, or_, select
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from event_service.core.config import settings
from event_service.core.retry import RetryPolicy
from event_service.services.error_codes import ErrorCode
from event_service.services.exceptions import (
    ConflictError,
    InternalError,
    ServiceTimeoutError,
    TransportError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")
M = TypeVar("M")

Work = Callable[[AsyncSession], Awaitable[T]]


def default_store_policy() -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.store_max_retries,
        initial_delay=settings.store_retry_delay,
        timeout=settings.store_timeout,
    )


def _primary_key(model: type) -> Any:
    return inspect(model).primary_key[0]


class RecordStoreGateway:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy: RetryPolicy | None = None,
        *,
        default_limit: int | None = None,
        max_limit: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._policy = policy or default_store_policy()
        self._default_limit = default_limit or settings.list_default_limit
        self._max_limit = max_limit or settings.list_max_limit

    async def _attempt(self, work: Work[T]) -> T:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    return await work(session)
        except IntegrityError as exc:
            raise ConflictError(ErrorCode.STORE_CONFLICT.value, "record conflicts with existing data") from exc
        except (OperationalError, InterfaceError, DisconnectionError) as exc:
            raise TransportError(ErrorCode.STORE_UNREACHABLE.value, "record store unreachable") from exc
        except SQLAlchemyError as exc:
            raise InternalError(ErrorCode.STORE_FAILED.value, "record store operation failed") from exc

    async def transaction(self, work: Work[T], *, name: str | None = None) -> T:
        """Run ``work(session)`` as one retried, all-or-nothing transaction."""
        op_name = name or "store.transaction"
        try:
            return await self._policy.run(lambda: self._attempt(work), name=op_name)
        except (ServiceTimeoutError, TransportError) as exc:
            logger.error("store_unavailable", operation=op_name, error_code=exc.code)
            raise InternalError(ErrorCode.STORE_UNREACHABLE.value, exc.message) from exc

    async def create(self, model: type[M], payload: Mapping[str, Any]) -> M:
        async def work(session: AsyncSession) -> M:
            record = model(**payload)
            session.add(record)
            await session.flush()
            return record

        return await self.transaction(work, name=f"store.create.{model.__name__}")

    async def read(self, model: type[M], key: Any) -> M | None:
        async def work(session: AsyncSession) -> M | None:
            return await session.get(model, key)

        return await self.transaction(work, name=f"store.read.{model.__name__}")

    async def read_many(
        self,
        model: type[M],
        *,
        filters: Mapping[str, Any] | None = None,
        conditions: Iterable[ColumnElement[bool]] = (),
        search: str | None = None,
        search_fields: Sequence[str] = (),
        limit: int | None = None,
        offset: int = 0,
        order_by: Any = None,
    ) -> list[M]:
        clauses: list[ColumnElement[bool]] = [
            getattr(model, field) == value for field, value in (filters or {}).items()
        ]
        clauses.extend(conditions)

        term = search.strip() if search else ""
        if term and search_fields:
            clauses.append(
                or_(*(getattr(model, field).icontains(term, autoescape=True) for field in search_fields))
            )

        page_size = min(limit or self._default_limit, self._max_limit)
        stmt = select(model)
        if clauses:
            stmt = stmt.where(and_(*clauses))
        stmt = (
            stmt.order_by(order_by if order_by is not None else _primary_key(model))
            .limit(page_size)
            .offset(max(offset, 0))
        )

        async def work(session: AsyncSession) -> list[M]:
            result = await session.scalars(stmt)
            return list(result.all())

        return await self.transaction(work, name=f"store.read_many.{model.__name__}")

    async def update(self, model: type[M], key: Any, payload: Mapping[str, Any]) -> M | None:
        async def work(session: AsyncSession) -> M | None:
            record = await session.get(model, key, with_for_update=True)
            if record is None:
                return None
            for field, value in payload.items():
                setattr(record, field, value)
            await session.flush()
            return record

        return await self.transaction(work, name=f"store.update.{model.__name__}")

    async def delete(self, model: type[M], key: Any) -> bool:
        async def work(session: AsyncSession) -> bool:
            result = await session.execute(delete(model).where(_primary_key(model) == key))
            return bool(result.rowcount)

        return await self.transaction(work, name=f"store.delete.{model.__name__}")
