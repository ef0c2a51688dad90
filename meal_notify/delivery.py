"""
Delivery gateway for Web Push, plus an in-memory variant for local runs/tests.

`send` never raises: every outcome comes back as a DeliveryResult so one bad
endpoint cannot abort a tick. A 404/410 from the push service means the browser
dropped the subscription, so the registry entry is removed before returning.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests
from pywebpush import WebPushException, webpush

from meal_notify.models import DeliveryResult, NotificationPayload, PushSubscription, truncate
from meal_notify.subscriptions import SubscriptionRegistry

logger = logging.getLogger(__name__)

PERMANENT_FAILURE_STATUSES = frozenset({404, 410})

# Push services accept 4096 bytes of ciphertext; leave room for the
# aes128gcm header and padding.
MAX_PAYLOAD_BYTES = 3800


class PushRejected(Exception):
    """The push service answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DeliveryGateway(ABC):
    """Shared outcome handling; subclasses implement `_transmit`."""

    def __init__(self, registry: SubscriptionRegistry, timeout_seconds: float = 10.0):
        self.registry = registry
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    def _transmit(self, subscription: PushSubscription, data: str) -> None:
        """Blocking send; raises PushRejected or asyncio.TimeoutError on failure."""

    async def send(
        self, subscription: PushSubscription, payload: NotificationPayload
    ) -> DeliveryResult:
        endpoint = truncate(subscription.endpoint, 50)
        data = json.dumps(payload.as_dict(), ensure_ascii=False)
        if len(data.encode("utf-8")) > MAX_PAYLOAD_BYTES:
            logger.warning("Refusing oversize payload for %s", endpoint)
            return DeliveryResult(
                success=False,
                endpoint=endpoint,
                error=f"Payload exceeds {MAX_PAYLOAD_BYTES} bytes",
            )

        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._transmit, subscription, data),
                timeout=self.timeout_seconds,
            )
        except PushRejected as exc:
            return self._rejected(subscription, endpoint, exc)
        except asyncio.TimeoutError:
            logger.warning(
                "Push to %s timed out after %.1fs", endpoint, self.timeout_seconds
            )
            return DeliveryResult(
                success=False,
                endpoint=endpoint,
                error=f"Timed out after {self.timeout_seconds:g}s",
            )
        except Exception as exc:
            logger.warning("Push to %s failed: %s", endpoint, exc)
            return DeliveryResult(success=False, endpoint=endpoint, error=str(exc))

        logger.info("Push sent to %s (title: %s)", endpoint, payload.title[:30])
        return DeliveryResult(
            success=True,
            endpoint=endpoint,
            message="Notification sent successfully",
        )

    def _rejected(
        self, subscription: PushSubscription, endpoint: str, exc: PushRejected
    ) -> DeliveryResult:
        result = DeliveryResult(
            success=False,
            endpoint=endpoint,
            error=str(exc),
            status_code=exc.status_code,
            body=exc.body[:100] if exc.body else None,
        )
        if exc.status_code in PERMANENT_FAILURE_STATUSES:
            identifier = subscription.identifier
            result.permanent = True
            result.subscription_removed = self.registry.remove(identifier)
            logger.info(
                "Removed invalid subscription %s (status %s)",
                truncate(identifier, 20),
                exc.status_code,
            )
        else:
            logger.warning(
                "Push to %s rejected with status %s: %s",
                endpoint,
                exc.status_code,
                exc,
            )
        return result


class WebPushGateway(DeliveryGateway):
    """VAPID-signed delivery through pywebpush."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        *,
        vapid_private_key: str,
        vapid_subject: str,
        timeout_seconds: float = 10.0,
        ttl: int = 86400,
    ):
        super().__init__(registry, timeout_seconds=timeout_seconds)
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.ttl = ttl

    def _transmit(self, subscription: PushSubscription, data: str) -> None:
        try:
            webpush(
                subscription_info=subscription.as_subscription_info(),
                data=data,
                vapid_private_key=self.vapid_private_key,
                # pywebpush fills in aud/exp on the dict it is given.
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl,
                timeout=self.timeout_seconds,
            )
        except WebPushException as exc:
            response = getattr(exc, "response", None)
            if response is None:
                raise PushRejected(str(exc)) from exc
            raise PushRejected(
                str(exc), status_code=response.status_code, body=response.text or ""
            ) from exc
        except requests.exceptions.Timeout as exc:
            raise asyncio.TimeoutError() from exc


@dataclass
class RecordedDelivery:
    subscription: PushSubscription
    payload: dict


class InMemoryDeliveryGateway(DeliveryGateway):
    """Records deliveries instead of sending them. Failures can be scripted."""

    def __init__(self, registry: SubscriptionRegistry, timeout_seconds: float = 10.0):
        super().__init__(registry, timeout_seconds=timeout_seconds)
        self.sent: list[RecordedDelivery] = []
        self.failures: dict[str, tuple[int, str]] = {}

    def fail_with(self, endpoint: str, status_code: int, body: str = "") -> None:
        self.failures[endpoint] = (status_code, body)

    def clear_failures(self) -> None:
        self.failures.clear()

    def _transmit(self, subscription: PushSubscription, data: str) -> None:
        failure = self.failures.get(subscription.endpoint)
        if failure:
            status_code, body = failure
            raise PushRejected(
                f"Received Response [{status_code}]",
                status_code=status_code,
                body=body,
            )
        self.sent.append(RecordedDelivery(subscription, json.loads(data)))

    def reset(self) -> None:
        self.sent.clear()
        self.failures.clear()
