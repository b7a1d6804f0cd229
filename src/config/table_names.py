from enum import Enum


class TableNames(str, Enum):
    GUESTS = "guests"
    EVENT_DETAILS = "event_details"
    RSVPS = "rsvps"
    AUDIT_EVENTS = "audit_events"
