from event_service.schemas.events import (
    EventCreate,
    EventCreated,
    EventQuery,
    EventUpdate,
    EventUpdated,
    EventView,
    PointOfInterestIn,
    PointOfInterestView,
)

__all__ = [
    "EventCreate",
    "EventCreated",
    "EventUpdate",
    "EventUpdated",
    "EventQuery",
    "EventView",
    "PointOfInterestIn",
    "PointOfInterestView",
]
