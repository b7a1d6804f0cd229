"""Per-event RSVP rules resolved from the event details record.

Rebuilt on every request; event details can change between submissions.
"""

import re
from collections.abc import Callable, Mapping
from typing import Any

from src.guests.dtos import EventConfig

DEFAULT_CLOSED_MESSAGE = "RSVPs are closed"


def _meal_options(raw: Any) -> frozenset[str] | None:
    if not isinstance(raw, list | tuple):
        return None
    options = frozenset(
        option.strip() for option in raw if isinstance(option, str) and option.strip()
    )
    # no usable options means free-text entry, not "required but unanswerable"
    return options or None


def build_event_config(details: Mapping[str, Any] | None) -> dict[str, EventConfig]:
    """Map event id to its RSVP rules.

    Definitions that are not objects or lack a non-blank id cannot be addressed
    and are skipped. Never raises on malformed input.
    """
    config: dict[str, EventConfig] = {}
    if not isinstance(details, Mapping):
        return config

    events = details.get("events")
    if not isinstance(events, list | tuple):
        return config

    for event in events:
        if not isinstance(event, Mapping):
            continue
        event_id = event.get("id")
        event_id = event_id.strip() if isinstance(event_id, str) else ""
        if not event_id:
            continue

        config[event_id] = EventConfig(
            requires_meal_selection=bool(event.get("requiresMealSelection")),
            meal_options=_meal_options(event.get("mealOptions")),
            collect_dietary_notes=bool(event.get("collectDietaryNotes")),
        )

    return config


def meal_requirement(config: Mapping[str, EventConfig]) -> Callable[[str], bool]:
    def requires_meal_selection(event_id: str) -> bool:
        event = config.get(event_id)
        return bool(event and event.requires_meal_selection)

    return requires_meal_selection


def meal_option_key(label: str) -> str:
    """Slug used by the admin API to address a meal option."""
    return re.sub(r"[^a-z0-9]+", "-", label.strip().lower()).strip("-")


def find_event_definition(details: Mapping[str, Any] | None, event_id: str) -> Mapping[str, Any] | None:
    if not isinstance(details, Mapping) or not isinstance(details.get("events"), list | tuple):
        return None
    for event in details["events"]:
        if isinstance(event, Mapping) and isinstance(event.get("id"), str):
            if event["id"].strip() == event_id:
                return event
    return None


def rsvp_closed_message(details: Mapping[str, Any] | None) -> str | None:
    """The message to show when RSVPs are closed, or ``None`` while open."""
    if not isinstance(details, Mapping):
        return None
    status = details.get("rsvpStatus")
    if not isinstance(status, Mapping) or status.get("mode") != "closed":
        return None
    message = status.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    return DEFAULT_CLOSED_MESSAGE
