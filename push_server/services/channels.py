import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol, Sequence

import aiohttp
import firebase_admin
from firebase_admin import credentials, messaging

from push_server.core.config import Settings
from push_server.services.payload import NotificationPayload

logger = logging.getLogger(__name__)

FCM_MAX_BATCH_SIZE = 500
RELAY_MAX_BATCH_SIZE = 100

_INVALID_TOKEN_ERROR_MARKERS = (
    "not a valid fcm registration token",
    "invalid registration token",
    "registration-token-not-registered",
    "requested entity was not found",
    "unregistered",
)

RELAY_PERMANENT_ERRORS = frozenset({"DeviceNotRegistered"})


@dataclass(frozen=True)
class PerTokenResult:
    token: str
    succeeded: bool
    permanently_invalid: bool = False
    error_detail: str | None = None


def all_failed(tokens: Sequence[str], detail: str) -> list[PerTokenResult]:
    """Mark every token as a transient failure; used when a whole request fails."""
    return [PerTokenResult(token=token, succeeded=False, error_detail=detail) for token in tokens]


def _batches(tokens: Sequence[str], size: int):
    for start in range(0, len(tokens), size):
        yield list(tokens[start : start + size])


class ChannelSender(Protocol):
    name: str

    async def send(self, tokens: Sequence[str], payload: NotificationPayload) -> list[PerTokenResult]: ...


def is_permanent_native_error(exc: BaseException | None) -> bool:
    if exc is None:
        return False
    if isinstance(exc, (messaging.UnregisteredError, messaging.SenderIdMismatchError)):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _INVALID_TOKEN_ERROR_MARKERS)


class NativeChannel:
    """FCM multicast through the Firebase Admin SDK."""

    name = "fcm"

    def __init__(
        self,
        app: firebase_admin.App | None = None,
        *,
        enabled: bool = True,
        batch_size: int = FCM_MAX_BATCH_SIZE,
        default_image_url: str | None = None,
    ) -> None:
        self._app = app
        self.enabled = enabled
        self._batch_size = max(1, min(batch_size, FCM_MAX_BATCH_SIZE))
        self._default_image_url = default_image_url

    @classmethod
    def from_settings(cls, settings: Settings) -> "NativeChannel":
        options = {
            "batch_size": settings.fcm_batch_size,
            "default_image_url": settings.default_notification_image_url,
        }
        creds_path = Path(settings.fcm_service_account_json)
        if not creds_path.exists():
            logger.info("FCM service account is missing (%s), native push channel disabled.", creds_path)
            return cls(enabled=False, **options)

        if not firebase_admin._apps:
            cred = credentials.Certificate(str(creds_path))
            firebase_admin.initialize_app(cred, {"httpTimeout": settings.push_timeout_seconds})
        return cls(firebase_admin.get_app(), **options)

    def build_message(self, tokens: list[str], payload: NotificationPayload) -> messaging.MulticastMessage:
        image = payload.image_url or self._default_image_url
        data = dict(payload.data)
        if image:
            data.setdefault("imageUrl", image)

        return messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=payload.title, body=payload.body, image=image),
            data=data,
            android=messaging.AndroidConfig(
                priority="high" if payload.is_urgent else "normal",
                notification=messaging.AndroidNotification(
                    color=payload.accent_color,
                    sound="default",
                    image=image,
                    channel_id="default",
                    priority="high" if payload.is_urgent else "default",
                ),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default", badge=1)),
                fcm_options=messaging.APNSFCMOptions(image=image) if image else None,
            ),
        )

    async def send(self, tokens: Sequence[str], payload: NotificationPayload) -> list[PerTokenResult]:
        results: list[PerTokenResult] = []
        for batch in _batches(tokens, self._batch_size):
            results.extend(await self._send_batch(batch, payload))
        return results

    async def _send_batch(self, batch: list[str], payload: NotificationPayload) -> list[PerTokenResult]:
        if not self.enabled:
            return all_failed(batch, "fcm_disabled_or_missing_credentials")

        try:
            message = self.build_message(batch, payload)
            response = await asyncio.to_thread(messaging.send_each_for_multicast, message, app=self._app)
        except Exception as exc:
            logger.warning("FCM multicast failed for %d token(s): %s", len(batch), exc)
            return all_failed(batch, str(exc))

        responses = list(response.responses)
        if len(responses) != len(batch):
            logger.warning("FCM returned %d result(s) for %d token(s).", len(responses), len(batch))
            return all_failed(batch, "fcm_result_count_mismatch")

        results = []
        for token, send_response in zip(batch, responses):
            if send_response.success:
                results.append(PerTokenResult(token=token, succeeded=True))
                continue
            exc = send_response.exception
            permanent = is_permanent_native_error(exc)
            if permanent:
                logger.info("FCM token is invalid/unregistered token=%s...", token[:12])
            else:
                logger.warning("FCM token send failed token=%s...: %s", token[:12], exc)
            results.append(
                PerTokenResult(token=token, succeeded=False, permanently_invalid=permanent, error_detail=str(exc))
            )
        return results


class RelayChannel:
    """Expo push API: one POST per batch with a flat message schema."""

    name = "expo"

    def __init__(
        self,
        push_url: str,
        *,
        batch_size: int = RELAY_MAX_BATCH_SIZE,
        timeout_seconds: float = 15.0,
        access_token: str | None = None,
        session_factory: Callable[[], aiohttp.ClientSession] | None = None,
    ) -> None:
        self._push_url = push_url
        self._batch_size = max(1, min(batch_size, RELAY_MAX_BATCH_SIZE))
        self._timeout_seconds = timeout_seconds
        self._access_token = access_token
        self._session_factory = session_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "RelayChannel":
        return cls(
            settings.relay_push_url,
            batch_size=settings.relay_batch_size,
            timeout_seconds=settings.push_timeout_seconds,
            access_token=settings.relay_access_token,
        )

    def _new_session(self) -> aiohttp.ClientSession:
        if self._session_factory is not None:
            return self._session_factory()
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._timeout_seconds))

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    def build_message(self, tokens: list[str], payload: NotificationPayload) -> dict[str, Any]:
        return {
            "to": tokens,
            "sound": "default",
            "title": payload.title,
            "body": payload.body,
            "data": dict(payload.data),
            "priority": "high" if payload.is_urgent else "default",
            "channelId": "default",
        }

    async def send(self, tokens: Sequence[str], payload: NotificationPayload) -> list[PerTokenResult]:
        if not tokens:
            return []
        results: list[PerTokenResult] = []
        async with self._new_session() as session:
            for batch in _batches(tokens, self._batch_size):
                results.extend(await self._send_batch(session, batch, payload))
        return results

    async def _send_batch(
        self,
        session: aiohttp.ClientSession,
        batch: list[str],
        payload: NotificationPayload,
    ) -> list[PerTokenResult]:
        try:
            async with session.post(
                self._push_url,
                json=self.build_message(batch, payload),
                headers=self._headers(),
            ) as resp:
                if not 200 <= resp.status < 300:
                    text = await resp.text()
                    logger.warning("Relay push returned HTTP %s for %d token(s): %s", resp.status, len(batch), text[:200])
                    return all_failed(batch, f"relay_http_{resp.status}")
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.warning("Relay push request failed for %d token(s): %s", len(batch), exc)
            return all_failed(batch, f"relay_request_failed: {exc}")

        statuses = body.get("data") if isinstance(body, dict) else None
        if not isinstance(statuses, list) or len(statuses) != len(batch):
            logger.error("Unexpected relay response format: %s", str(body)[:200])
            return all_failed(batch, "relay_unexpected_response")

        return [self._parse_ticket(token, ticket) for token, ticket in zip(batch, statuses)]

    def _parse_ticket(self, token: str, ticket: Any) -> PerTokenResult:
        if not isinstance(ticket, dict):
            return PerTokenResult(token=token, succeeded=False, error_detail="relay_malformed_ticket")
        if ticket.get("status") == "ok":
            return PerTokenResult(token=token, succeeded=True)

        details = ticket.get("details")
        code = details.get("error") if isinstance(details, dict) else None
        permanent = code in RELAY_PERMANENT_ERRORS
        detail = code or ticket.get("message") or "relay_error"
        if permanent:
            logger.info("Relay token is not registered token=%s...", token[:12])
        else:
            logger.warning("Relay token send failed token=%s...: %s", token[:12], ticket.get("message") or detail)
        return PerTokenResult(token=token, succeeded=False, permanently_invalid=permanent, error_detail=detail)
