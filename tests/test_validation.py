import pytest

from push_server.services.payload import PRICE_UPDATE_COLOR, NotificationPayload, Priority
from push_server.services.validation import (
    NotificationValidationError,
    validate_custom_notification,
    validate_price_notification,
)


@pytest.mark.parametrize(
    "raw",
    [
        {"message": "body only"},
        {"title": "title only"},
        {"title": "   ", "message": "body"},
        {"title": "title", "message": "  \n "},
        {"title": 42, "message": "body"},
        None,
        ["title", "message"],
    ],
)
def test_custom_notification_rejects_missing_text(raw):
    with pytest.raises(NotificationValidationError):
        validate_custom_notification(raw)


def test_custom_notification_defaults():
    payload = validate_custom_notification({"title": " Rain alert ", "message": " Cover the trays "})
    assert payload.title == "Rain alert"
    assert payload.body == "Cover the trays"
    assert payload.priority is Priority.MEDIUM
    assert payload.image_url is None
    assert dict(payload.data) == {
        "type": "custom",
        "priority": "medium",
        "targetAudience": "all",
        "targetMarket": "",
    }


def test_custom_notification_accepts_body_as_message():
    payload = validate_custom_notification({"title": "Hello", "body": "World"})
    assert payload.body == "World"


def test_custom_notification_full_fields_and_unknown_keys():
    payload = validate_custom_notification(
        {
            "title": "Market closed",
            "message": "Ramanagara closed tomorrow",
            "priority": "HIGH",
            "targetAudience": "market_specific",
            "targetMarket": "Ramanagara",
            "imageUrl": "https://i.imgur.com/abc.png",
            "sentBy": "admin@example.com",
        }
    )
    assert payload.priority is Priority.HIGH
    assert payload.image_url == "https://i.imgur.com/abc.png"
    assert payload.data["targetMarket"] == "Ramanagara"
    assert payload.data["imageUrl"] == "https://i.imgur.com/abc.png"
    assert payload.accent_color == "#EF4444"


def test_unknown_priority_falls_back_to_medium():
    payload = validate_custom_notification({"title": "t", "message": "m", "priority": "urgent"})
    assert payload.priority is Priority.MEDIUM


def test_price_notification_derives_text():
    payload = validate_price_notification(
        {"priceData": {"market": "Ramanagara", "breed": "CB", "minPrice": 450, "maxPrice": 550, "avgPrice": 500.5}}
    )
    assert payload.title == "Ramanagara - CB Price Update"
    assert payload.body == "Min: ₹450 | Max: ₹550 | Avg: ₹500.5/kg"
    assert payload.data["screen"] == "Market"
    assert payload.data["minPrice"] == "450"
    assert payload.priority is Priority.MEDIUM
    assert payload.accent_color == PRICE_UPDATE_COLOR


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"priceData": None},
        {"priceData": {"market": "Ramanagara"}},
        {"priceData": {"breed": "CB", "market": ""}},
        {"priceData": "Ramanagara"},
    ],
)
def test_price_notification_requires_market_and_breed(raw):
    with pytest.raises(NotificationValidationError):
        validate_price_notification(raw)


def test_payload_is_immutable_and_stringifies_data():
    payload = NotificationPayload(title="t", body="b", data={"count": 3, "missing": None})
    assert dict(payload.data) == {"count": "3", "missing": ""}
    with pytest.raises(TypeError):
        payload.data["count"] = "4"
    with pytest.raises(AttributeError):
        payload.title = "changed"


@pytest.mark.parametrize("priority", [3, True, None, ["high"], {"level": "high"}, ""])
def test_non_string_priority_falls_back_to_medium(priority):
    payload = validate_custom_notification({"title": "Hi", "message": "There", "priority": priority})
    assert payload.priority is Priority.MEDIUM
    assert payload.data["priority"] == "medium"


def test_mistyped_advisory_fields_do_not_reject_notification():
    payload = validate_custom_notification(
        {
            "title": "Hi",
            "message": "There",
            "targetAudience": ["all"],
            "targetMarket": 7,
            "imageUrl": 12345,
        }
    )
    assert payload.data["targetAudience"] == "all"
    assert payload.data["targetMarket"] == "7"
    assert payload.image_url is None
    assert "imageUrl" not in payload.data


def test_price_notification_renders_whole_floats_as_integers():
    payload = validate_price_notification(
        {"priceData": {"market": "Ramanagara", "breed": "CB", "minPrice": 450.0, "maxPrice": 550.0, "avgPrice": 499.75}}
    )
    assert payload.body == "Min: ₹450 | Max: ₹550 | Avg: ₹499.75/kg"
    assert payload.data["minPrice"] == "450"
