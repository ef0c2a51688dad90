"""
Request-level operations: subscribe, schedule updates, unsubscribe, test sends
and the read-only debug snapshot.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from meal_notify.composer import compose_notification, summarize_foods
from meal_notify.delivery import DeliveryGateway
from meal_notify.errors import MissingSubscriptionError
from meal_notify.models import DeliveryResult, FoodItem, PushSubscription, Schedule, truncate
from meal_notify.schedules import ScheduleStore, validate_times
from meal_notify.subscriptions import SubscriptionRegistry

logger = logging.getLogger(__name__)

WELCOME_TITLE = "Welcome!"
WELCOME_BODY = (
    "Notifications enabled. You will receive meal reminders at your scheduled times."
)
TEST_TITLE = "Test Notification"
TEST_BODY_NO_FOODS = "Test notification - no recent foods"


def _require(subscription: Optional[PushSubscription]) -> PushSubscription:
    if subscription is None or not subscription.endpoint:
        raise MissingSubscriptionError()
    return subscription


class NotificationService:
    def __init__(
        self,
        registry: SubscriptionRegistry,
        schedules: ScheduleStore,
        gateway: DeliveryGateway,
    ):
        self.registry = registry
        self.schedules = schedules
        self.gateway = gateway

    def subscribe(self, subscription: Optional[PushSubscription]) -> str:
        subscription = _require(subscription)
        identifier = self.registry.upsert(subscription)
        logger.info(
            "Subscription saved for %s (%d total)",
            truncate(identifier, 30),
            len(self.registry),
        )
        return identifier

    async def send_welcome(self, subscription: PushSubscription) -> DeliveryResult:
        """Best effort; some browsers reject the first push right after subscribing."""
        result = await self.gateway.send(
            subscription, compose_notification([], title=WELCOME_TITLE, body=WELCOME_BODY)
        )
        if not result.success:
            logger.info("Welcome notification failed (non-blocking): %s", result.error)
        return result

    def update_schedule(
        self,
        subscription: Optional[PushSubscription],
        times: Optional[Sequence[str]],
        foods: Iterable[FoodItem] = (),
    ) -> Schedule:
        subscription = _require(subscription)
        # Validate before touching either store so a rejected update leaves
        # the previous schedule in place.
        valid_times = validate_times(times)
        identifier = self.registry.upsert(subscription)
        schedule = self.schedules.replace(identifier, valid_times, foods)
        logger.info(
            "Schedule updated for %s: times=%s foods=%d",
            truncate(identifier, 30),
            ", ".join(schedule.times),
            len(schedule.foods),
        )
        return schedule

    def unsubscribe(self, subscription: Optional[PushSubscription]) -> str:
        identifier = _require(subscription).identifier
        self.registry.remove(identifier)
        self.schedules.remove(identifier)
        logger.info("Unsubscribed %s", truncate(identifier, 30))
        return identifier

    async def send_test(
        self,
        subscription: Optional[PushSubscription],
        foods: Sequence[FoodItem] = (),
    ) -> DeliveryResult:
        subscription = _require(subscription)
        summary = summarize_foods(list(foods))
        payload = compose_notification(
            foods,
            title=TEST_TITLE,
            body=f"Test: {summary}" if summary else TEST_BODY_NO_FOODS,
        )
        return await self.gateway.send(subscription, payload)

    def snapshot(self) -> dict:
        subscriptions = [
            {
                "user_id": truncate(identifier, 30),
                "endpoint": truncate(subscription.endpoint, 50) or "no endpoint",
                "has_keys": subscription.has_keys,
            }
            for identifier, subscription in self.registry.all()
        ]
        schedules = [
            {
                "user_id": truncate(schedule.identifier, 30),
                "notification_times": list(schedule.times),
                "foods_count": len(schedule.foods),
                "foods": [food.name for food in schedule.foods],
            }
            for schedule in self.schedules.all()
        ]
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "memory": {
                "total_subscriptions": len(subscriptions),
                "total_schedules": len(schedules),
            },
            "subscriptions": subscriptions,
            "schedules": schedules,
            "notes": {
                "subscriptions_in_memory": "Subscriptions found"
                if subscriptions
                else "No subscriptions - enable notifications first",
                "schedules_in_memory": "Schedules found"
                if schedules
                else "No schedules - save settings first",
            },
        }
