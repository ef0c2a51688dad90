"""
Dependency wiring for the FastAPI app.

One Services container is built per app and kept on `app.state`, so the
registry and schedule store are shared by the request handlers and the
ticker without module-level globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from fastapi import Request

from meal_notify.config import Settings, get_settings
from meal_notify.delivery import DeliveryGateway, InMemoryDeliveryGateway, WebPushGateway
from meal_notify.evaluator import ScheduleEvaluator
from meal_notify.schedules import InMemoryScheduleStore
from meal_notify.service import NotificationService
from meal_notify.subscriptions import InMemorySubscriptionRegistry

logger = logging.getLogger(__name__)


def make_clock(timezone_name: Optional[str]) -> Callable[[], datetime]:
    """Wall clock for reminder matching; server local time when unset."""
    if not timezone_name:
        return datetime.now
    zone = ZoneInfo(timezone_name)
    return lambda: datetime.now(zone)


def build_gateway(
    settings: Settings, registry: InMemorySubscriptionRegistry
) -> DeliveryGateway:
    if settings.use_in_memory_delivery or not settings.has_vapid_keys:
        if not settings.use_in_memory_delivery:
            logger.warning(
                "VAPID keys not configured; notifications will be recorded, not sent. "
                "Generate keys with scripts/generate_vapid_keys.py"
            )
        return InMemoryDeliveryGateway(
            registry, timeout_seconds=settings.delivery_timeout_seconds
        )
    return WebPushGateway(
        registry,
        vapid_private_key=settings.vapid_private_key,
        vapid_subject=settings.vapid_subject,
        timeout_seconds=settings.delivery_timeout_seconds,
        ttl=settings.push_ttl_seconds,
    )


@dataclass
class Services:
    settings: Settings
    registry: InMemorySubscriptionRegistry
    schedules: InMemoryScheduleStore
    gateway: DeliveryGateway
    evaluator: ScheduleEvaluator
    notifications: NotificationService

    @classmethod
    def build(
        cls,
        settings: Optional[Settings] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "Services":
        settings = settings or get_settings()
        registry = InMemorySubscriptionRegistry()
        schedules = InMemoryScheduleStore()
        gateway = build_gateway(settings, registry)
        evaluator = ScheduleEvaluator(
            registry,
            schedules,
            gateway,
            clock=clock or make_clock(settings.reminder_timezone),
        )
        return cls(
            settings=settings,
            registry=registry,
            schedules=schedules,
            gateway=gateway,
            evaluator=evaluator,
            notifications=NotificationService(registry, schedules, gateway),
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_notification_service(request: Request) -> NotificationService:
    return get_services(request).notifications


def get_evaluator(request: Request) -> ScheduleEvaluator:
    return get_services(request).evaluator
