from datetime import UTC, datetime
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from push_server.api.deps import get_token_store
from push_server.core.config import get_settings
from push_server.schemas.notifications import ImageUrlValidationRequest, ImageUrlValidationResponse
from push_server.services.images import check_image_url
from push_server.services.tokens import SqlTokenStore

router = APIRouter(tags=["system"])


@router.get("/")
@router.get("/health")
def health():
    settings = get_settings()
    return {
        "status": "ok",
        "message": f"{settings.app_name} is running",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": settings.app_version,
    }


@router.get("/push/status")
def push_status(store: SqlTokenStore = Depends(get_token_store)):
    settings = get_settings()
    creds_path = Path(settings.fcm_service_account_json)
    counts = store.count_by_kind()
    return {
        "fcm_service_account_json": str(creds_path),
        "credentials_exists": creds_path.exists(),
        "relay_push_url": settings.relay_push_url,
        "registered_tokens": sum(counts.values()),
        "tokens_by_kind": counts,
    }


@router.post("/validate-image-url", response_model=ImageUrlValidationResponse)
async def validate_image_url(payload: ImageUrlValidationRequest):
    if not payload.image_url:
        raise HTTPException(status_code=400, detail="imageUrl is required")

    check = await check_image_url(payload.image_url, timeout_seconds=get_settings().push_timeout_seconds)
    return ImageUrlValidationResponse(
        success=check.valid,
        valid=check.valid,
        message=check.message,
        content_type=check.content_type,
    )
