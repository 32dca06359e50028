#!/usr/bin/env python3
"""
Send correctly signed DoorDash / Uber test webhooks to a running server.

Secrets are read from the same settings (.env) the service uses, so the
webhooks pass real signature verification.

Usage:
    python send_test_webhook.py doordash
    python send_test_webhook.py uber --status picked_up --delivery-id del_123
    python send_test_webhook.py doordash --lifecycle
    python send_test_webhook.py uber --base-url https://abc123.ngrok.io
"""

import argparse
import asyncio
import json
import sys

import httpx

from courier_webhooks.config.settings import settings
from courier_webhooks.utils.webhook_sender import (
    SignedWebhookSender,
    build_doordash_payload,
    build_uber_payload,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send signed courier test webhooks")
    parser.add_argument("provider", choices=["doordash", "uber"])
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    parser.add_argument("--event-type", help="Provider event type (default: status update)")
    parser.add_argument("--delivery-id")
    parser.add_argument("--status", default="delivered")
    parser.add_argument(
        "--lifecycle",
        action="store_true",
        help="Send created, assigned, pickup, in-transit and delivered in order"
    )
    return parser.parse_args()


def print_response(response: httpx.Response) -> None:
    print(f"Status Code: {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


async def run(args: argparse.Namespace) -> int:
    sender = SignedWebhookSender.from_settings(settings, args.base_url)

    if args.lifecycle:
        responses = await sender.simulate_lifecycle(args.provider, args.delivery_id)
    else:
        if args.provider == "doordash":
            payload = build_doordash_payload(
                args.event_type or "delivery_status_update", args.delivery_id, status=args.status
            )
        else:
            payload = build_uber_payload(
                args.event_type or "delivery.status.changed", args.delivery_id, args.status
            )
        print(f"Payload: {json.dumps(payload, indent=2)}")
        responses = [await sender.send(args.provider, payload)]

    for response in responses:
        print_response(response)

    return 0 if all(r.status_code == 202 for r in responses) else 1


def main():
    args = parse_args()
    try:
        sys.exit(asyncio.run(run(args)))
    except httpx.HTTPError as e:
        print(f"REQUEST FAILED: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
