#!/usr/bin/env python3
"""
Smoke test for a running notification server.

Checks /health, optionally registers a token, then sends either a price
update or a custom notification and prints the delivery counts.

  python scripts/send_test_notification.py --base-url http://localhost:3000
  python scripts/send_test_notification.py --custom --title "Hello" --message "World"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
from typing import Any

import aiohttp

HTTP_TIMEOUT_SECONDS = 30
DEFAULT_BASE_URL = os.getenv("BACKEND_URL", "http://localhost:3000").rstrip("/")

TEST_PRICE_DATA = {
    "market": "Test Market",
    "breed": "CB",
    "minPrice": 450,
    "maxPrice": 550,
    "avgPrice": 500,
    "pricePerKg": 500,
    "quality": "A",
    "lotNumber": 123,
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send a test push notification through the server.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--register-token", help="Register this push token before sending.")
    parser.add_argument("--token-type", choices=("fcm", "expo"), default=None)
    parser.add_argument("--custom", action="store_true", help="Send a custom notification instead of a price update.")
    parser.add_argument("--title", default="Test notification")
    parser.add_argument("--message", default="If you see this message, push notifications are configured correctly.")
    parser.add_argument("--priority", choices=("low", "medium", "high"), default="medium")
    return parser.parse_args()


async def _request(session: aiohttp.ClientSession, method: str, url: str, payload: Any = None) -> dict[str, Any]:
    async with session.request(method, url, json=payload) as resp:
        body = await resp.json(content_type=None)
        if resp.status >= 400:
            raise RuntimeError(f"{method} {url} -> HTTP {resp.status}: {body}")
        return body


async def run(args: argparse.Namespace) -> int:
    timeout = aiohttp.ClientTimeout(total=HTTP_TIMEOUT_SECONDS)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        health = await _request(session, "GET", f"{args.base_url}/health")
        print(f"Server is up: {health.get('message')} ({health.get('version')})")

        if args.register_token:
            registered = await _request(
                session,
                "POST",
                f"{args.base_url}/push-tokens/register",
                {"token": args.register_token, "tokenType": args.token_type},
            )
            print(f"Registered token as {registered.get('transportKind')}")

        if args.custom:
            url = f"{args.base_url}/send-custom-notification"
            payload = {"title": args.title, "message": args.message, "priority": args.priority}
        else:
            url = f"{args.base_url}/send-notification"
            payload = {"priceData": TEST_PRICE_DATA}
        result = await _request(session, "POST", url, payload)

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0 if result.get("success") else 1


def main() -> None:
    raise SystemExit(asyncio.run(run(parse_args())))


if __name__ == "__main__":
    main()
