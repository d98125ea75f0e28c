from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from push_server.db.base import Base
from push_server.models.common import CreatedAtMixin


class PushToken(CreatedAtMixin, Base):
    __tablename__ = "push_tokens"

    token: Mapped[str] = mapped_column(String(1024), primary_key=True)
    platform: Mapped[str] = mapped_column(String(32), nullable=False, default="android")
    # "fcm" | "expo"; NULL on records written before clients reported a type.
    token_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
