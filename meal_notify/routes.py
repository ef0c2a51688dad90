"""
HTTP routes for the reminder relay.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from meal_notify.dependencies import (
    Services,
    get_evaluator,
    get_notification_service,
    get_services,
)
from meal_notify.errors import NotifyError
from meal_notify.evaluator import ScheduleEvaluator
from meal_notify.schemas import (
    SendTestRequest,
    StatusResponse,
    SubscribeRequest,
    UnsubscribeRequest,
    UpdateScheduleRequest,
    VapidKeyResponse,
    to_foods,
    to_subscription,
)
from meal_notify.service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter()


def _cron_authorized(secret: Optional[str], supplied: Optional[str]) -> bool:
    if not secret:
        return True
    if not supplied:
        return False
    if supplied.startswith("Bearer "):
        supplied = supplied[len("Bearer "):]
    return hmac.compare_digest(supplied, secret)


@router.get("/vapid-key", response_model=VapidKeyResponse)
def vapid_key(services: Services = Depends(get_services)):
    return VapidKeyResponse(public_key=services.settings.vapid_public_key)


@router.post("/subscribe", response_model=StatusResponse)
def subscribe(
    payload: SubscribeRequest,
    background_tasks: BackgroundTasks,
    service: NotificationService = Depends(get_notification_service),
):
    """
    Save the subscription, then send a welcome push after responding.
    """
    subscription = to_subscription(payload.subscription)
    try:
        service.subscribe(subscription)
    except NotifyError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    background_tasks.add_task(service.send_welcome, subscription)
    return StatusResponse(message="Subscribed successfully")


@router.post("/update-schedule", response_model=StatusResponse)
def update_schedule(
    payload: UpdateScheduleRequest,
    service: NotificationService = Depends(get_notification_service),
):
    try:
        service.update_schedule(
            to_subscription(payload.subscription),
            payload.notification_times,
            to_foods(payload.foods),
        )
    except NotifyError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return StatusResponse(message="Schedule updated")


@router.post("/unsubscribe", response_model=StatusResponse)
def unsubscribe(
    payload: UnsubscribeRequest,
    service: NotificationService = Depends(get_notification_service),
):
    try:
        service.unsubscribe(to_subscription(payload.subscription))
    except NotifyError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return StatusResponse(message="Unsubscribed")


@router.post("/test-notification")
async def test_notification(
    payload: SendTestRequest,
    service: NotificationService = Depends(get_notification_service),
):
    try:
        result = await service.send_test(
            to_subscription(payload.subscription), to_foods(payload.foods)
        )
    except NotifyError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if not result.success:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Failed to send notification",
                "details": result.as_dict(),
            },
        )
    return {
        "success": True,
        "message": "Test notification sent",
        "details": result.as_dict(),
    }


@router.get("/cron")
async def cron(
    secret: Optional[str] = Query(default=None),
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
    evaluator: ScheduleEvaluator = Depends(get_evaluator),
):
    """
    Run one reminder tick. Called by an external scheduler once per minute;
    the diagnostics are returned so delivery can be checked without log access.
    """
    if not _cron_authorized(services.settings.cron_secret, authorization or secret):
        raise HTTPException(status_code=401, detail="Unauthorized")
    diagnostics = await evaluator.run_tick()
    return {
        "success": True,
        "message": "Notifications checked",
        **diagnostics.as_dict(),
    }


@router.get("/debug")
def debug(service: NotificationService = Depends(get_notification_service)):
    return service.snapshot()
