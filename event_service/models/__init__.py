from event_service.models.api_key import ApiKey
from event_service.models.base import Base
from event_service.models.event import Event
from event_service.models.favorite import Favorite

__all__ = ["Base", "Event", "Favorite", "ApiKey"]
