from fastapi import APIRouter, Depends

from push_server.api.deps import get_token_store
from push_server.models.common import utcnow
from push_server.schemas.push_tokens import (
    PushTokenDeleteResponse,
    PushTokenRegisterRequest,
    PushTokenRegisterResponse,
)
from push_server.services.tokens import DeviceToken, SqlTokenStore, infer_transport_kind

router = APIRouter(prefix="/push-tokens", tags=["push-tokens"])


@router.post("/register", response_model=PushTokenRegisterResponse)
def register_push_token(payload: PushTokenRegisterRequest, store: SqlTokenStore = Depends(get_token_store)):
    token = payload.token
    device_token = DeviceToken(
        token=token,
        transport_kind=infer_transport_kind(token, payload.token_type),
        platform=payload.platform,
        registered_at=payload.created_at or utcnow(),
    )
    store.upsert(device_token)
    return PushTokenRegisterResponse(success=True, token=token, transport_kind=device_token.transport_kind.value)


@router.delete("/{token}", response_model=PushTokenDeleteResponse)
def unregister_push_token(token: str, store: SqlTokenStore = Depends(get_token_store)):
    store.delete(token)
    return PushTokenDeleteResponse(success=True)
