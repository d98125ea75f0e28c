from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from push_server.db.base import Base
from push_server.services.channels import PerTokenResult
from push_server.services.payload import NotificationPayload
from push_server.services.tokens import DeviceToken, SqlTokenStore, TokenStoreError, TransportKind

NATIVE_TOKEN_PREFIX = "fcm-token-"
RELAY_TOKEN_PREFIX = "ExponentPushToken["


def native_token(suffix: str) -> DeviceToken:
    return DeviceToken(token=f"{NATIVE_TOKEN_PREFIX}{suffix}", transport_kind=TransportKind.NATIVE)


def relay_token(suffix: str) -> DeviceToken:
    return DeviceToken(token=f"{RELAY_TOKEN_PREFIX}{suffix}]", transport_kind=TransportKind.RELAY)


def sample_payload(**overrides) -> NotificationPayload:
    fields = {"title": "Price Update", "body": "Min: 100 Max:200"}
    fields.update(overrides)
    return NotificationPayload(**fields)


class FakeChannel:
    """Channel double: every token succeeds unless listed in ``outcomes``.

    Outcomes are ``"ok"``, ``"invalid"`` (permanent) or ``"transient"``.
    """

    def __init__(self, name: str, outcomes: dict[str, str] | None = None, error: Exception | None = None):
        self.name = name
        self.outcomes = outcomes or {}
        self.error = error
        self.calls: list[list[str]] = []

    async def send(self, tokens, payload):
        self.calls.append(list(tokens))
        if self.error is not None:
            raise self.error
        results = []
        for token in tokens:
            outcome = self.outcomes.get(token, "ok")
            if outcome == "ok":
                results.append(PerTokenResult(token=token, succeeded=True))
            elif outcome == "invalid":
                results.append(PerTokenResult(token=token, succeeded=False, permanently_invalid=True, error_detail="unregistered"))
            else:
                results.append(PerTokenResult(token=token, succeeded=False, error_detail="quota"))
        return results

    @property
    def sent_tokens(self) -> list[str]:
        return [token for call in self.calls for token in call]


class FakeTokenStore:
    def __init__(self, tokens=(), *, fail_list: bool = False, fail_delete: set[str] | None = None):
        self.tokens = {t.token: t for t in tokens}
        self.fail_list = fail_list
        self.fail_delete = fail_delete or set()
        self.deleted: list[str] = []

    def list_all(self):
        if self.fail_list:
            raise TokenStoreError("database unavailable")
        return list(self.tokens.values())

    def delete(self, token: str) -> None:
        self.deleted.append(token)
        if token in self.fail_delete:
            raise TokenStoreError("delete failed")
        self.tokens.pop(token, None)

    def upsert(self, device_token: DeviceToken) -> None:
        self.tokens[device_token.token] = device_token


@pytest.fixture()
def sql_store(tmp_path: Path):
    engine = create_engine(
        f"sqlite+pysqlite:///{(tmp_path / 'tokens.db').as_posix()}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield SqlTokenStore(sessionmaker(bind=engine, expire_on_commit=False))
    engine.dispose()


@pytest.fixture()
def app_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_file.as_posix()}")
    monkeypatch.setenv("AUTO_CREATE_SCHEMA", "true")
    monkeypatch.setenv("FCM_SERVICE_ACCOUNT_JSON", str(tmp_path / "missing_fcm.json"))

    from push_server.core.config import clear_settings_cache
    from push_server.db.session import reset_engine

    clear_settings_cache()
    reset_engine()

    from push_server.main import create_app

    app = create_app()
    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    reset_engine()
    clear_settings_cache()
