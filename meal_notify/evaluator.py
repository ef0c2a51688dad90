"""
Per-tick evaluation of reminder schedules.

A tick compares every scheduled "HH:MM" with the current minute-of-day and
sends on an exact match. The external ticker fires once per minute, so exact
matching neither drops nor repeats a reminder. Ticks keep no state between
runs; overlapping ticks are refused instead of queued.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from meal_notify.composer import DEFAULT_TITLE, compose_notification, summarize_foods
from meal_notify.delivery import DeliveryGateway
from meal_notify.models import MAX_SNAPSHOT_FOODS, PushSubscription, Schedule, truncate
from meal_notify.schedules import ScheduleStore, minute_distance, minute_of_day
from meal_notify.subscriptions import SubscriptionRegistry

logger = logging.getLogger(__name__)

NO_FOODS_BODY = "Time to log your meal! What did you eat?"


@dataclass
class TickSummary:
    subscriptions_checked: int = 0
    subscriptions_with_schedules: int = 0
    schedules_checked: int = 0
    time_matches: int = 0
    notifications_attempted: int = 0
    notifications_succeeded: int = 0
    notifications_failed: int = 0
    subscriptions_removed: int = 0


@dataclass
class TimeCheck:
    scheduled_time: str
    scheduled_minutes: int
    current_minutes: int
    time_diff: int

    @property
    def matches(self) -> bool:
        return self.time_diff == 0

    def as_dict(self) -> dict:
        return {
            "scheduled_time": self.scheduled_time,
            "scheduled_minutes": self.scheduled_minutes,
            "current_minutes": self.current_minutes,
            "time_diff": self.time_diff,
            "matches": self.matches,
        }


@dataclass
class UserTick:
    """Everything one tick did for a single subscription."""

    identifier: str
    endpoint: str
    has_schedule: bool = False
    schedule_times: list[str] = field(default_factory=list)
    time_checks: list[TimeCheck] = field(default_factory=list)
    notifications: list[dict] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    skip_reason: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "user_id": truncate(self.identifier, 30),
            "endpoint": self.endpoint,
            "has_schedule": self.has_schedule,
            "schedule_times": self.schedule_times,
            "time_checks": [check.as_dict() for check in self.time_checks],
            "notifications": self.notifications,
            "issues": self.issues,
            "error": self.error,
        }


@dataclass
class TickDiagnostics:
    timestamp: str
    current_time: str
    subscriptions_in_memory: int
    schedules_in_memory: int
    summary: TickSummary = field(default_factory=TickSummary)
    subscriptions: list[UserTick] = field(default_factory=list)
    orphaned_schedules: list[str] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    skipped: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "current_time": self.current_time,
            "subscriptions_in_memory": self.subscriptions_in_memory,
            "schedules_in_memory": self.schedules_in_memory,
            "skipped": self.skipped,
            "summary": vars(self.summary).copy(),
            "subscriptions": [user.as_dict() for user in self.subscriptions],
            "orphaned_schedules": self.orphaned_schedules,
            "issues": self.issues,
        }


def reminder_body(schedule: Schedule) -> str:
    summary = summarize_foods(schedule.foods[:MAX_SNAPSHOT_FOODS])
    return f"Quick log: {summary}" if summary else NO_FOODS_BODY


class ScheduleEvaluator:
    def __init__(
        self,
        registry: SubscriptionRegistry,
        schedules: ScheduleStore,
        gateway: DeliveryGateway,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.registry = registry
        self.schedules = schedules
        self.gateway = gateway
        self.clock = clock or datetime.now
        # Non-blocking so it works across the event loops of the ticker and
        # HTTP handlers.
        self._running = threading.Lock()

    async def run_tick(self, now: Optional[datetime] = None) -> TickDiagnostics:
        now = now or self.clock()
        current_time = now.strftime("%H:%M")
        diagnostics = TickDiagnostics(
            timestamp=now.isoformat(),
            current_time=current_time,
            subscriptions_in_memory=len(self.registry),
            schedules_in_memory=len(self.schedules),
        )

        if not self._running.acquire(blocking=False):
            logger.warning("Tick at %s skipped: previous tick still running", current_time)
            diagnostics.skipped = True
            diagnostics.issues.append("Previous tick still running")
            return diagnostics

        try:
            await self._evaluate(now.hour * 60 + now.minute, diagnostics)
        finally:
            self._running.release()

        summary = diagnostics.summary
        logger.info(
            "Tick %s: %d subscriptions, %d matches, %d sent, %d failed",
            current_time,
            summary.subscriptions_checked,
            summary.time_matches,
            summary.notifications_succeeded,
            summary.notifications_failed,
        )
        return diagnostics

    async def _evaluate(self, current_minutes: int, diagnostics: TickDiagnostics) -> None:
        subscriptions = self.registry.all()
        subscribed = {identifier for identifier, _ in subscriptions}

        for schedule in self.schedules.all():
            if schedule.identifier not in subscribed:
                diagnostics.orphaned_schedules.append(truncate(schedule.identifier, 30))
                diagnostics.issues.append("Schedule has no subscription")

        if not subscriptions:
            diagnostics.issues.append(
                "No subscriptions stored - did you enable notifications?"
            )
            return

        users = await asyncio.gather(
            *(
                self._evaluate_user(identifier, subscription, current_minutes)
                for identifier, subscription in subscriptions
            )
        )
        for user in users:
            self._aggregate(user, diagnostics)

    async def _evaluate_user(
        self, identifier: str, subscription: PushSubscription, current_minutes: int
    ) -> UserTick:
        user = UserTick(identifier=identifier, endpoint=truncate(subscription.endpoint, 50))
        try:
            await self._check_user(user, subscription, current_minutes)
        except Exception as exc:
            logger.exception("Evaluation failed for %s", truncate(identifier, 20))
            user.error = str(exc)
            user.issues.append(f"Evaluation failed: {exc}")
        return user

    async def _check_user(
        self, user: UserTick, subscription: PushSubscription, current_minutes: int
    ) -> None:
        schedule = self.schedules.get(user.identifier)
        if schedule is None:
            user.issues.append("No schedule data found")
            user.skip_reason = "Subscription has no schedule"
            return
        if not schedule.times:
            user.issues.append("No notification times set")
            user.skip_reason = "Subscription has no notification times"
            return

        user.has_schedule = True
        user.schedule_times = list(schedule.times)
        for scheduled_time in schedule.times:
            scheduled_minutes = minute_of_day(scheduled_time)
            check = TimeCheck(
                scheduled_time=scheduled_time,
                scheduled_minutes=scheduled_minutes,
                current_minutes=current_minutes,
                time_diff=minute_distance(scheduled_minutes, current_minutes),
            )
            user.time_checks.append(check)
            if check.matches:
                user.notifications.append(
                    await self._deliver(subscription, schedule, scheduled_time)
                )

    async def _deliver(
        self, subscription: PushSubscription, schedule: Schedule, scheduled_time: str
    ) -> dict:
        try:
            payload = compose_notification(
                schedule.foods[:MAX_SNAPSHOT_FOODS],
                title=DEFAULT_TITLE,
                body=reminder_body(schedule),
            )
            result = await self.gateway.send(subscription, payload)
            outcome = result.as_dict()
        except Exception as exc:
            logger.exception(
                "Reminder for %s at %s failed", truncate(schedule.identifier, 20), scheduled_time
            )
            outcome = {"success": False, "error": str(exc)}
        outcome.update(
            {
                "scheduled_time": scheduled_time,
                "attempted": True,
                "timestamp": self.clock().isoformat(),
            }
        )
        return outcome

    @staticmethod
    def _aggregate(user: UserTick, diagnostics: TickDiagnostics) -> None:
        summary = diagnostics.summary
        summary.subscriptions_checked += 1
        diagnostics.subscriptions.append(user)
        if user.skip_reason:
            diagnostics.issues.append(user.skip_reason)
            return
        if user.error:
            diagnostics.issues.append(
                f"Evaluation failed for {truncate(user.identifier, 20)}: {user.error}"
            )
        if not user.has_schedule:
            return

        summary.subscriptions_with_schedules += 1
        summary.schedules_checked += len(user.time_checks)
        summary.time_matches += sum(1 for check in user.time_checks if check.matches)
        for outcome in user.notifications:
            summary.notifications_attempted += 1
            if outcome.get("success"):
                summary.notifications_succeeded += 1
                continue
            summary.notifications_failed += 1
            if outcome.get("subscription_removed"):
                summary.subscriptions_removed += 1
            kind = "permanent" if outcome.get("permanent") else "transient"
            diagnostics.issues.append(
                f"Notification failed for {outcome['scheduled_time']}: "
                f"{outcome.get('error')} ({outcome.get('status_code') or 'unknown'}, {kind})"
            )
