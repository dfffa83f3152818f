from enum import Enum


class ErrorCode(str, Enum):
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENTS_NOT_FOUND = "EVENTS_NOT_FOUND"
    EVENT_STORE_FAILED = "EVENT_STORE_FAILED"
    EVENT_ALREADY_EXISTS = "EVENT_ALREADY_EXISTS"

    POI_NOT_FOUND = "POI_NOT_FOUND"
    POI_NAME_CONFLICT = "POI_NAME_CONFLICT"
    POI_LOCATION_CONFLICT = "POI_LOCATION_CONFLICT"
    POI_IMMUTABLE = "POI_IMMUTABLE"
    POI_UNAVAILABLE = "POI_UNAVAILABLE"

    CALENDAR_UNAVAILABLE = "CALENDAR_UNAVAILABLE"
    CALENDAR_EVENT_NOT_FOUND = "CALENDAR_EVENT_NOT_FOUND"

    COLLABORATOR_NOT_FOUND = "COLLABORATOR_NOT_FOUND"
    COLLABORATOR_CONFLICT = "COLLABORATOR_CONFLICT"
    COLLABORATOR_BAD_RESPONSE = "COLLABORATOR_BAD_RESPONSE"
    COLLABORATOR_UNREACHABLE = "COLLABORATOR_UNREACHABLE"

    STORE_UNREACHABLE = "STORE_UNREACHABLE"
    STORE_CONFLICT = "STORE_CONFLICT"
    STORE_FAILED = "STORE_FAILED"

    OPERATION_TIMED_OUT = "OPERATION_TIMED_OUT"
    INVALID_PRICE = "INVALID_PRICE"
    INVALID_DATES = "INVALID_DATES"
    INVALID_STORAGE_KEY = "INVALID_STORAGE_KEY"
