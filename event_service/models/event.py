from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy import DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_service.models.base import Base, CreatedMixin, StringPrimaryKeyMixin


class Event(Base, StringPrimaryKeyMixin, CreatedMixin):
    __tablename__ = "events"
    __table_args__ = (
        sa.CheckConstraint("favorites >= 0", name="ck_events_favorites_non_negative"),
        sa.CheckConstraint("price >= 0", name="ck_events_price_non_negative"),
        sa.Index("ix_events_startdate", "startdate"),
    )

    userid: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # Local copies of the scheduling/location data, used for filtering.
    # The calendar and point-of-interest collaborators stay authoritative.
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    organizer: Mapped[str] = mapped_column(String(256), nullable=False)
    street: Mapped[str] = mapped_column(String(256), nullable=False)
    doornumber: Mapped[str] = mapped_column(String(32), nullable=False)
    postcode: Mapped[str] = mapped_column(String(32), nullable=False)
    city: Mapped[str] = mapped_column(String(128), nullable=False)
    country: Mapped[str] = mapped_column(String(128), nullable=False)
    about: Mapped[str] = mapped_column(Text, nullable=False)
    startdate: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    enddate: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    category: Mapped[str] = mapped_column(String(64), nullable=False)
    contact: Mapped[str] = mapped_column(String(320), nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="---")

    favorites: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    maxparticipants: Mapped[int | None] = mapped_column(Integer, nullable=True)
    currentparticipants: Mapped[int | None] = mapped_column(Integer, nullable=True)

    calendarid: Mapped[str] = mapped_column(String(128), nullable=False)
    pointofinterestid: Mapped[str] = mapped_column(String(128), nullable=False)
