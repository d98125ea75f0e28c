import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from push_server.api.deps import get_fanout_coordinator
from push_server.schemas.notifications import DispatchResponse, ErrorResponse
from push_server.services.fanout import DispatchOutcome, FanoutCoordinator
from push_server.services.validation import validate_custom_notification, validate_price_notification

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])

_error_responses = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _to_response(outcome: DispatchOutcome, message: str) -> DispatchResponse:
    if outcome.recipients == 0:
        message = "No tokens found"
    return DispatchResponse(
        success=True,
        message=message,
        fcm_sent=outcome.native.sent,
        expo_sent=outcome.relay.sent,
        total_sent=outcome.total_sent,
        total_failed=outcome.total_failed,
        invalid_tokens_removed=outcome.invalid_tokens_removed,
    )


@router.post("/send-notification", response_model=DispatchResponse, responses=_error_responses)
async def send_price_notification(
    body: dict[str, Any] = Body(...),
    coordinator: FanoutCoordinator = Depends(get_fanout_coordinator),
):
    payload = validate_price_notification(body)
    outcome = await coordinator.dispatch(payload)
    return _to_response(outcome, "Notifications sent successfully")


@router.post("/send-custom-notification", response_model=DispatchResponse, responses=_error_responses)
async def send_custom_notification(
    body: dict[str, Any] = Body(...),
    coordinator: FanoutCoordinator = Depends(get_fanout_coordinator),
):
    payload = validate_custom_notification(body)
    if payload.data.get("targetAudience") == "market_specific":
        # No per-market recipient mapping exists; the app filters on its side.
        logger.info("Market-specific notification for '%s', sending to all tokens.", payload.data.get("targetMarket"))
    outcome = await coordinator.dispatch(payload)
    return _to_response(outcome, "Custom notification sent successfully")
