from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class StringPrimaryKeyMixin:
    # Opaque string identity; callers may supply it so creates stay idempotent.
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)


class CreatedMixin:
    created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
