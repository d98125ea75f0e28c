"""Turn raw admin requests into :class:`NotificationPayload` objects.

Both entry points reject a request before any token is loaded or any
channel is touched. Unknown fields are ignored so that newer admin clients
keep working against this server.
"""

from typing import Any, Mapping

from pydantic import ValidationError

from push_server.schemas.notifications import CustomNotificationRequest, PriceNotificationRequest
from push_server.services.payload import PRICE_UPDATE_COLOR, NotificationPayload, Priority


class NotificationValidationError(ValueError):
    pass


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "invalid request")


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def _advisory_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (bool, int, float)):
        return str(value)
    return ""


def parse_priority(value: Any) -> Priority:
    if not isinstance(value, str) or not value.strip():
        return Priority.MEDIUM
    try:
        return Priority(value.strip().lower())
    except ValueError:
        return Priority.MEDIUM


def validate_custom_notification(raw: Mapping[str, Any] | None) -> NotificationPayload:
    if not isinstance(raw, Mapping):
        raise NotificationValidationError("request body must be a JSON object")
    try:
        request = CustomNotificationRequest.model_validate(raw)
    except ValidationError as exc:
        raise NotificationValidationError(_first_error(exc)) from exc
    image_url = _clean(request.image_url if isinstance(request.image_url, str) else None) or None

    title = _clean(request.title)
    body = _clean(request.message) or _clean(request.body)
    if not title or not body:
        raise NotificationValidationError("title and message are required")

    priority = parse_priority(request.priority)
    image_url = _advisory_text(request.image_url) or None
    # Targeting is advisory: every registered device still receives the
    # notification and the app decides whether to show it.
    data = {
        "type": "custom",
        "priority": priority.value,
        "targetAudience": _advisory_text(request.target_audience) or "all",
        "targetMarket": _advisory_text(request.target_market),
    }
    if image_url:
        data["imageUrl"] = image_url

    return NotificationPayload(title=title, body=body, data=data, priority=priority, image_url=image_url)


def _price_text(value: int | float | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def validate_price_notification(raw: Mapping[str, Any] | None) -> NotificationPayload:
    if not isinstance(raw, Mapping):
        raise NotificationValidationError("request body must be a JSON object")
    try:
        request = PriceNotificationRequest.model_validate(raw)
    except ValidationError as exc:
        raise NotificationValidationError(_first_error(exc)) from exc

    price = request.price_data
    if price is None:
        raise NotificationValidationError("priceData is required")

    market = _clean(price.market)
    breed = _clean(price.breed)
    if not market or not breed:
        raise NotificationValidationError("priceData.market and priceData.breed are required")

    min_price = _price_text(price.min_price)
    max_price = _price_text(price.max_price)
    avg_price = _price_text(price.avg_price)

    return NotificationPayload(
        title=f"{market} - {breed} Price Update",
        body=f"Min: ₹{min_price} | Max: ₹{max_price} | Avg: ₹{avg_price}/kg",
        data={
            "screen": "Market",
            "market": market,
            "breed": breed,
            "minPrice": min_price,
            "maxPrice": max_price,
            "avgPrice": avg_price,
        },
        priority=Priority.MEDIUM,
        color=PRICE_UPDATE_COLOR,
    )
