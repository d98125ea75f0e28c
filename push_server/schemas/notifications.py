from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CustomNotificationRequest(CamelModel):
    title: str | None = None
    message: str | None = None
    body: str | None = None
    # Advisory fields: a value of the wrong type is defaulted, not rejected.
    priority: Any = None
    target_audience: Any = None
    target_market: Any = None
    image_url: Any = None


class PriceData(CamelModel):
    market: str | None = None
    breed: str | None = None
    min_price: int | float | str | None = None
    max_price: int | float | str | None = None
    avg_price: int | float | str | None = None


class PriceNotificationRequest(CamelModel):
    price_data: PriceData | None = None


class DispatchResponse(CamelModel):
    success: bool = True
    message: str
    fcm_sent: int = 0
    expo_sent: int = 0
    total_sent: int = 0
    total_failed: int = 0
    invalid_tokens_removed: int = 0


class ErrorResponse(CamelModel):
    success: bool = False
    error: str


class ImageUrlValidationRequest(CamelModel):
    image_url: str | None = None


class ImageUrlValidationResponse(CamelModel):
    success: bool
    valid: bool
    message: str
    content_type: str | None = None
