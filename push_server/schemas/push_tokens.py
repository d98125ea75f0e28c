from datetime import datetime
from typing import Annotated

from pydantic import Field, StringConstraints

from push_server.schemas.notifications import CamelModel

TokenString = Annotated[str, StringConstraints(strip_whitespace=True, min_length=8, max_length=1024)]


class PushTokenRegisterRequest(CamelModel):
    token: TokenString
    platform: str = Field(default="android", max_length=32)
    token_type: str | None = Field(default=None, max_length=16)
    created_at: datetime | None = None


class PushTokenRegisterResponse(CamelModel):
    success: bool
    token: str
    transport_kind: str


class PushTokenDeleteResponse(CamelModel):
    success: bool
