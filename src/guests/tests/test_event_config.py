from src.guests.dtos import EventConfig
from src.guests.event_config import (
    DEFAULT_CLOSED_MESSAGE,
    build_event_config,
    find_event_definition,
    meal_option_key,
    meal_requirement,
    rsvp_closed_message,
)


def test_build_event_config():
    details = {
        "events": [
            {
                "id": " dinner ",
                "requiresMealSelection": True,
                "mealOptions": [" Fish ", "", 3, "Veg"],
                "collectDietaryNotes": True,
            },
            {"id": "brunch", "mealOptions": ["  "]},
            {"id": "   "},
            {"requiresMealSelection": True},
            "ceremony",
        ]
    }

    config = build_event_config(details)

    assert config == {
        "dinner": EventConfig(
            requires_meal_selection=True,
            meal_options=frozenset({"Fish", "Veg"}),
            collect_dietary_notes=True,
        ),
        "brunch": EventConfig(),
    }


def test_build_event_config_never_raises_on_malformed_details():
    assert build_event_config(None) == {}
    assert build_event_config({"events": "dinner"}) == {}
    assert build_event_config(["dinner"]) == {}


def test_meal_requirement():
    requires = meal_requirement(build_event_config({"events": [{"id": "dinner", "requiresMealSelection": 1}]}))

    assert requires("dinner") is True
    assert requires("unknown") is False


def test_meal_option_key():
    assert meal_option_key("Roast Chicken") == "roast-chicken"
    assert meal_option_key("  Fish & Chips! ") == "fish-chips"


def test_find_event_definition():
    details = {"events": [{"id": "brunch"}, {"id": " dinner ", "mealOptions": ["Fish"]}]}

    assert find_event_definition(details, "dinner") == {"id": " dinner ", "mealOptions": ["Fish"]}
    assert find_event_definition(details, "lunch") is None
    assert find_event_definition(None, "dinner") is None


def test_rsvp_closed_message():
    assert rsvp_closed_message({"events": []}) is None
    assert rsvp_closed_message({"rsvpStatus": {"mode": "open"}}) is None
    assert rsvp_closed_message({"rsvpStatus": {"mode": "closed"}}) == DEFAULT_CLOSED_MESSAGE
    assert (
        rsvp_closed_message({"rsvpStatus": {"mode": "closed", "message": " See you there "}})
        == "See you there"
    )
