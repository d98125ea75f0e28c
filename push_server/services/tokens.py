import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from push_server.models.common import utcnow
from push_server.models.push_token import PushToken

logger = logging.getLogger(__name__)

RELAY_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")


class TransportKind(str, Enum):
    NATIVE = "fcm"
    RELAY = "expo"


class TokenStoreError(Exception):
    """The token registry could not be read or written."""


def infer_transport_kind(token: str, token_type: str | None = None) -> TransportKind:
    """Decide which channel delivers to ``token``.

    Relay-shaped tokens always go through the relay, whatever the client
    reported. Only an explicit ``"fcm"`` type selects the native gateway;
    a missing or unknown type falls back to the relay, which is what older
    clients that never recorded a type were using.
    """
    if token.startswith(RELAY_TOKEN_PREFIXES):
        return TransportKind.RELAY
    if token_type is not None and token_type.strip().lower() == TransportKind.NATIVE.value:
        return TransportKind.NATIVE
    return TransportKind.RELAY


@dataclass(frozen=True)
class DeviceToken:
    token: str
    transport_kind: TransportKind
    platform: str = "android"
    registered_at: datetime = field(default_factory=utcnow)


class TokenStore(Protocol):
    def list_all(self) -> list[DeviceToken]: ...

    def delete(self, token: str) -> None: ...

    def upsert(self, device_token: DeviceToken) -> None: ...


class SqlTokenStore:
    """Token registry on top of the ``push_tokens`` table.

    ``list_all`` reads the whole table in one query. There is no paging;
    that is fine for a few thousand installs.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def list_all(self) -> list[DeviceToken]:
        try:
            with self._session_factory() as db:
                rows = db.scalars(select(PushToken).order_by(PushToken.created_at)).all()
        except SQLAlchemyError as exc:
            raise TokenStoreError(f"failed to load push tokens: {exc}") from exc

        return [
            DeviceToken(
                token=row.token,
                transport_kind=infer_transport_kind(row.token, row.token_type),
                platform=row.platform,
                registered_at=row.created_at,
            )
            for row in rows
            if row.token
        ]

    def delete(self, token: str) -> None:
        try:
            with self._session_factory() as db:
                db.execute(delete(PushToken).where(PushToken.token == token))
                db.commit()
        except SQLAlchemyError as exc:
            raise TokenStoreError(f"failed to delete push token: {exc}") from exc

    def upsert(self, device_token: DeviceToken) -> None:
        try:
            with self._session_factory() as db:
                existing = db.get(PushToken, device_token.token)
                if existing:
                    existing.platform = device_token.platform
                    existing.token_type = device_token.transport_kind.value
                    db.add(existing)
                else:
                    db.add(
                        PushToken(
                            token=device_token.token,
                            platform=device_token.platform,
                            token_type=device_token.transport_kind.value,
                            created_at=device_token.registered_at,
                        )
                    )
                db.commit()
        except SQLAlchemyError as exc:
            raise TokenStoreError(f"failed to save push token: {exc}") from exc
        logger.info(
            "Registered push token %s... kind=%s platform=%s",
            device_token.token[:12],
            device_token.transport_kind.value,
            device_token.platform,
        )

    def count_by_kind(self) -> dict[str, int]:
        counts = {kind.value: 0 for kind in TransportKind}
        for device_token in self.list_all():
            counts[device_token.transport_kind.value] += 1
        return counts
