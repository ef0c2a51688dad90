"""
External ticker: calls the relay's cron endpoint at the top of every minute.

Use this (or any cron service) when the relay runs without
LOCAL_TICKER_ENABLED, e.g. on serverless hosting.
"""

from __future__ import annotations

import argparse
import logging
import os
import time

import requests

logger = logging.getLogger(__name__)


def seconds_until_next_minute(now: float) -> float:
    return 60.0 - (now % 60.0)


def trigger_tick(base_url: str, secret: str | None, timeout: float) -> dict:
    headers = {"Authorization": f"Bearer {secret}"} if secret else {}
    response = requests.get(
        f"{base_url.rstrip('/')}/api/cron", headers=headers, timeout=timeout
    )
    response.raise_for_status()
    return response.json()


def main() -> int:
    parser = argparse.ArgumentParser(description="Meal reminder tick daemon")
    parser.add_argument(
        "--base-url",
        type=str,
        default=os.getenv("MEAL_NOTIFY_URL", "http://localhost:8000"),
        help="Relay base URL",
    )
    parser.add_argument(
        "--secret",
        type=str,
        default=os.getenv("CRON_SECRET"),
        help="Shared secret expected by /api/cron",
    )
    parser.add_argument(
        "--timeout-seconds",
        type=float,
        default=50.0,
        help="HTTP timeout; keep below 60 so ticks never overlap",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Trigger a single tick and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    while True:
        if not args.once:
            time.sleep(seconds_until_next_minute(time.time()))
        try:
            result = trigger_tick(args.base_url, args.secret, args.timeout_seconds)
            summary = result.get("summary", {})
            logger.info(
                "Tick %s: %s matches, %s sent, %s failed",
                result.get("current_time"),
                summary.get("time_matches", 0),
                summary.get("notifications_succeeded", 0),
                summary.get("notifications_failed", 0),
            )
            for issue in result.get("issues", []):
                logger.info("Issue: %s", issue)
        except requests.RequestException as exc:
            logger.exception("Tick request failed: %s", exc)
            if args.once:
                return 1

        if args.once:
            return 0


if __name__ == "__main__":
    raise SystemExit(main())
