import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from push_server.services.channels import ChannelSender, PerTokenResult, all_failed
from push_server.services.payload import NotificationPayload
from push_server.services.tokens import TokenStore, TransportKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelOutcome:
    sent: int = 0
    failed: int = 0
    invalid_tokens: tuple[str, ...] = ()

    @classmethod
    def from_results(cls, results: Sequence[PerTokenResult]) -> "ChannelOutcome":
        sent = sum(1 for result in results if result.succeeded)
        invalid = tuple(result.token for result in results if not result.succeeded and result.permanently_invalid)
        return cls(sent=sent, failed=len(results) - sent, invalid_tokens=invalid)


@dataclass(frozen=True)
class DispatchOutcome:
    native: ChannelOutcome = field(default_factory=ChannelOutcome)
    relay: ChannelOutcome = field(default_factory=ChannelOutcome)
    invalid_tokens_removed: int = 0
    recipients: int = 0

    @property
    def total_sent(self) -> int:
        return self.native.sent + self.relay.sent

    @property
    def total_failed(self) -> int:
        return self.native.failed + self.relay.failed


def _unique(tokens) -> list[str]:
    return list(dict.fromkeys(token for token in tokens if token))


class FanoutCoordinator:
    """Deliver one payload to every registered token across both channels.

    The two channels are independent: an outage on one side only shows up
    as failed counts for that side's tokens. Only tokens a channel reports
    as permanently invalid are removed from the store, and only after both
    sends have finished. Store read errors propagate to the caller.
    """

    def __init__(self, store: TokenStore, native: ChannelSender, relay: ChannelSender) -> None:
        self._store = store
        self._native = native
        self._relay = relay

    async def dispatch(self, payload: NotificationPayload) -> DispatchOutcome:
        device_tokens = await asyncio.to_thread(self._store.list_all)
        if not device_tokens:
            logger.info("No push tokens registered, nothing to send for '%s'.", payload.title)
            return DispatchOutcome()

        native_tokens = _unique(t.token for t in device_tokens if t.transport_kind is TransportKind.NATIVE)
        relay_tokens = _unique(t.token for t in device_tokens if t.transport_kind is TransportKind.RELAY)
        logger.info("Token distribution: %d FCM, %d Expo", len(native_tokens), len(relay_tokens))

        native_results, relay_results = await asyncio.gather(
            self._send_safely(self._native, native_tokens, payload),
            self._send_safely(self._relay, relay_tokens, payload),
        )
        native = ChannelOutcome.from_results(native_results)
        relay = ChannelOutcome.from_results(relay_results)
        logger.info(
            "Dispatch '%s': FCM sent=%d failed=%d, Expo sent=%d failed=%d",
            payload.title,
            native.sent,
            native.failed,
            relay.sent,
            relay.failed,
        )

        removed = await self._prune(native.invalid_tokens + relay.invalid_tokens)
        return DispatchOutcome(
            native=native,
            relay=relay,
            invalid_tokens_removed=removed,
            recipients=len(native_tokens) + len(relay_tokens),
        )

    async def _send_safely(
        self,
        channel: ChannelSender,
        tokens: list[str],
        payload: NotificationPayload,
    ) -> list[PerTokenResult]:
        if not tokens:
            return []
        try:
            results = await channel.send(tokens, payload)
        except Exception as exc:
            logger.exception("Channel %s failed for %d token(s).", getattr(channel, "name", channel), len(tokens))
            return all_failed(tokens, f"channel_error: {exc}")

        # Tokens the channel did not report on count as transient failures.
        reported = {result.token for result in results}
        missing = [token for token in tokens if token not in reported]
        return list(results) + all_failed(missing, "no_result_from_channel")

    async def _prune(self, invalid_tokens: Sequence[str]) -> int:
        removed = 0
        for token in _unique(invalid_tokens):
            try:
                await asyncio.to_thread(self._store.delete, token)
            except Exception as exc:
                logger.warning("Failed to remove invalid push token %s...: %s", token[:12], exc)
                continue
            removed += 1
        if removed:
            logger.info("Cleaned up %d invalid push token(s).", removed)
        return removed
