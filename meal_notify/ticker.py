"""
In-process minute ticker for local runs.

Deployments without a long-running process point an external cron at
`GET /api/cron` instead (see scripts/tick_daemon.py).
"""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from meal_notify.evaluator import ScheduleEvaluator

logger = logging.getLogger(__name__)


def create_ticker(
    evaluator: ScheduleEvaluator, timezone_name: Optional[str] = None
) -> AsyncIOScheduler:
    """
    Schedule one evaluator tick at the top of every minute.

    `max_instances=1` with `coalesce=True` keeps an overrunning tick from
    being joined by a second one for the same minute.
    """
    scheduler = AsyncIOScheduler()

    async def tick() -> None:
        await evaluator.run_tick()

    trigger = (
        CronTrigger(minute="*", second=0, timezone=timezone_name)
        if timezone_name
        else CronTrigger(minute="*", second=0)
    )
    scheduler.add_job(
        tick,
        trigger,
        id="reminder_tick",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=30,
        replace_existing=True,
    )
    return scheduler
