from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from event_service.core.config import settings

PRICE_PATTERN = r"^(EUR|USD|GBP)\d+\.\d{2}$"


def _to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return value
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError("datetime must be timezone-aware")
    return value.astimezone(timezone.utc)


class SchemaBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class UTCMixin(BaseModel):
    @field_validator(
        "startdate",
        "enddate",
        "beforedate",
        "afterdate",
        mode="after",
        check_fields=False,
    )
    @classmethod
    def _validate_utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value)


class CategoryMixin(BaseModel):
    @field_validator("category", mode="after", check_fields=False)
    @classmethod
    def _validate_category(cls, value: str | None) -> str | None:
        if value is None:
            return value
        normalized = value.strip().lower()
        if normalized not in settings.allowed_categories:
            raise ValueError(f"category must be one of: {', '.join(settings.allowed_categories)}")
        return normalized


class PointOfInterestIn(SchemaBase):
    name: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    category: str | None = None
    description: str | None = None
    thumbnail: str | None = None


class EventCreate(UTCMixin, CategoryMixin, SchemaBase):
    userid: str
    name: str
    organizer: str
    street: str
    doornumber: str
    postcode: str
    city: str
    country: str
    category: str
    contact: str
    startdate: datetime
    enddate: datetime
    about: str
    price: str | None = Field(default=None, pattern=PRICE_PATTERN, examples=["EUR25.55"])
    maxparticipants: int | None = Field(default=None, ge=0)
    currentparticipants: int | None = Field(default=None, ge=0)
    pointofinterestid: str | None = None
    pointofinterest: PointOfInterestIn | None = None

    @model_validator(mode="after")
    def _validate_time_bounds(self):
        if self.enddate < self.startdate:
            raise ValueError("enddate must not be before startdate")
        return self


class EventUpdate(UTCMixin, CategoryMixin, SchemaBase):
    userid: str | None = None
    name: str | None = None
    organizer: str | None = None
    street: str | None = None
    doornumber: str | None = None
    postcode: str | None = None
    city: str | None = None
    country: str | None = None
    category: str | None = None
    contact: str | None = None
    startdate: datetime | None = None
    enddate: datetime | None = None
    about: str | None = None
    price: str | None = Field(default=None, pattern=PRICE_PATTERN)
    maxparticipants: int | None = Field(default=None, ge=0)
    currentparticipants: int | None = Field(default=None, ge=0)
    pointofinterestid: str | None = None


class EventQuery(UTCMixin, SchemaBase):
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)
    search: str | None = None
    name: str | None = None
    organizer: str | None = None
    city: str | None = None
    category: str | None = None
    startdate: datetime | None = None
    beforedate: datetime | None = None
    afterdate: datetime | None = None
    maxprice: Decimal | None = Field(default=None, ge=0)


class PointOfInterestView(SchemaBase):
    id: str
    name: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    category: str | None = None
    description: str | None = None
    thumbnail: str | None = None


class EventView(SchemaBase):
    id: str
    userid: str
    name: str
    organizer: str
    street: str
    doornumber: str
    postcode: str
    city: str
    country: str
    category: str
    contact: str
    startdate: datetime
    enddate: datetime
    about: str
    price: Decimal
    currency: str
    favorites: int = Field(ge=0)
    maxparticipants: int | None = None
    currentparticipants: int | None = None
    calendarid: str
    pointofinterestid: str
    created: datetime
    pointofinterest: PointOfInterestView | None = None


class EventCreated(SchemaBase):
    event_id: str
    location: str


class EventUpdated(SchemaBase):
    event_id: str
    location: str
