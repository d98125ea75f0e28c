import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from push_server.models.push_token import PushToken
from push_server.services.tokens import (
    DeviceToken,
    SqlTokenStore,
    TokenStoreError,
    TransportKind,
    infer_transport_kind,
)


def test_infer_transport_kind_explicit_types():
    assert infer_transport_kind("abc123:APA91b", "fcm") is TransportKind.NATIVE
    assert infer_transport_kind("abc123:APA91b", "FCM") is TransportKind.NATIVE
    assert infer_transport_kind("abc123:APA91b", "expo") is TransportKind.RELAY


def test_infer_transport_kind_defaults_to_relay():
    assert infer_transport_kind("abc123:APA91b", None) is TransportKind.RELAY
    assert infer_transport_kind("abc123:APA91b", "apns") is TransportKind.RELAY


def test_relay_shaped_token_is_always_relay():
    assert infer_transport_kind("ExponentPushToken[xxxx]", "fcm") is TransportKind.RELAY
    assert infer_transport_kind("ExpoPushToken[xxxx]", None) is TransportKind.RELAY


def test_upsert_and_list_all(sql_store: SqlTokenStore):
    sql_store.upsert(DeviceToken(token="fcm-token-0001", transport_kind=TransportKind.NATIVE, platform="android"))
    sql_store.upsert(DeviceToken(token="ExponentPushToken[abc]", transport_kind=TransportKind.RELAY, platform="ios"))

    tokens = {t.token: t for t in sql_store.list_all()}
    assert set(tokens) == {"fcm-token-0001", "ExponentPushToken[abc]"}
    assert tokens["fcm-token-0001"].transport_kind is TransportKind.NATIVE
    assert tokens["ExponentPushToken[abc]"].platform == "ios"


def test_upsert_existing_token_updates_in_place(sql_store: SqlTokenStore):
    sql_store.upsert(DeviceToken(token="fcm-token-0001", transport_kind=TransportKind.RELAY, platform="android"))
    sql_store.upsert(DeviceToken(token="fcm-token-0001", transport_kind=TransportKind.NATIVE, platform="ios"))

    tokens = sql_store.list_all()
    assert len(tokens) == 1
    assert tokens[0].transport_kind is TransportKind.NATIVE
    assert tokens[0].platform == "ios"


def test_delete_is_idempotent(sql_store: SqlTokenStore):
    sql_store.upsert(DeviceToken(token="fcm-token-0001", transport_kind=TransportKind.NATIVE))
    sql_store.delete("fcm-token-0001")
    sql_store.delete("fcm-token-0001")
    sql_store.delete("never-registered")
    assert sql_store.list_all() == []


def test_legacy_rows_without_type_are_relay(sql_store: SqlTokenStore):
    with sql_store._session_factory() as db:
        db.add(PushToken(token="legacy-token-0001", platform="android", token_type=None))
        db.commit()

    [token] = sql_store.list_all()
    assert token.transport_kind is TransportKind.RELAY


def test_count_by_kind(sql_store: SqlTokenStore):
    sql_store.upsert(DeviceToken(token="fcm-token-0001", transport_kind=TransportKind.NATIVE))
    sql_store.upsert(DeviceToken(token="ExponentPushToken[a]", transport_kind=TransportKind.RELAY))
    sql_store.upsert(DeviceToken(token="ExponentPushToken[b]", transport_kind=TransportKind.RELAY))
    assert sql_store.count_by_kind() == {"fcm": 1, "expo": 2}


def test_store_errors_are_wrapped(tmp_path):
    engine = create_engine(f"sqlite+pysqlite:///{(tmp_path / 'empty.db').as_posix()}")
    store = SqlTokenStore(sessionmaker(bind=engine))

    # No schema: every operation hits "no such table".
    with pytest.raises(TokenStoreError):
        store.list_all()
    with pytest.raises(TokenStoreError):
        store.delete("fcm-token-0001")
    engine.dispose()
