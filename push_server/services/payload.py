from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_COLORS = {
    Priority.HIGH: "#EF4444",
    Priority.MEDIUM: "#F59E0B",
    Priority.LOW: "#10B981",
}

PRICE_UPDATE_COLOR = "#3B82F6"


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    body: str
    data: Mapping[str, str] = field(default_factory=dict)
    priority: Priority = Priority.MEDIUM
    image_url: str | None = None
    color: str | None = None

    def __post_init__(self) -> None:
        # Gateways only accept string values; freeze the mapping as well.
        frozen = MappingProxyType({str(key): "" if value is None else str(value) for key, value in self.data.items()})
        object.__setattr__(self, "data", frozen)

    @property
    def accent_color(self) -> str:
        return self.color or PRIORITY_COLORS[self.priority]

    @property
    def is_urgent(self) -> bool:
        return self.priority is Priority.HIGH
