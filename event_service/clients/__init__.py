from event_service.clients.base import CollaboratorClient, default_collaborator_policy
from event_service.clients.calendar import CalendarClient
from event_service.clients.poi import PointOfInterestClient

__all__ = [
    "CollaboratorClient",
    "CalendarClient",
    "PointOfInterestClient",
    "default_collaborator_policy",
]
