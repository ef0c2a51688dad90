"""
Domain records shared by the stores, composer, gateway and evaluator.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

FoodId = Union[str, int]

MAX_SNAPSHOT_FOODS = 5


def truncate(value: Optional[str], length: int) -> str:
    """Shorten identifiers/endpoints for logs and diagnostics."""
    if not value:
        return ""
    return f"{value[:length]}..."


@dataclass(frozen=True)
class FoodItem:
    id: FoodId
    name: str

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class PushSubscription:
    """A browser push subscription as produced by PushManager.subscribe()."""

    endpoint: str
    p256dh: Optional[str] = None
    auth: Optional[str] = None
    expiration_time: Optional[float] = None

    @property
    def identifier(self) -> str:
        # The auth secret is stable for a browser's subscription, so
        # re-subscribing overwrites instead of adding a second record.
        return self.auth or self.endpoint

    @property
    def has_keys(self) -> bool:
        return bool(self.p256dh and self.auth)

    def as_subscription_info(self) -> dict:
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "PushSubscription":
        keys = payload.get("keys") or {}
        return cls(
            endpoint=payload["endpoint"],
            p256dh=keys.get("p256dh"),
            auth=keys.get("auth"),
            expiration_time=payload.get("expirationTime"),
        )


@dataclass
class Schedule:
    identifier: str
    times: tuple[str, ...]
    foods: tuple[FoodItem, ...] = ()
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "times": list(self.times),
            "foods": [food.as_dict() for food in self.foods],
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class NotificationAction:
    action: str
    title: str


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    body: str
    actions: tuple[NotificationAction, ...]
    data: dict[str, Any]
    icon: str = "/icon-192.png"
    badge: str = "/icon-192.png"
    tag: str = "meal-reminder"

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "tag": self.tag,
            "data": self.data,
            "actions": [
                {"action": action.action, "title": action.title}
                for action in self.actions
            ],
        }


@dataclass
class DeliveryResult:
    """Outcome of a single push attempt. Failures are values, never raised."""

    success: bool
    endpoint: str
    message: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    body: Optional[str] = None
    permanent: bool = False
    subscription_removed: bool = False

    def as_dict(self) -> dict:
        payload: dict[str, Any] = {
            "success": self.success,
            "endpoint": self.endpoint,
        }
        if self.success:
            payload["message"] = self.message
        else:
            payload.update(
                {
                    "error": self.error,
                    "status_code": self.status_code,
                    "body": self.body,
                    "permanent": self.permanent,
                    "subscription_removed": self.subscription_removed,
                }
            )
        return payload
