"""
Pydantic schemas for the relay's HTTP API.

Field names follow the PWA client (camelCase on the wire).
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from meal_notify.models import FoodItem, PushSubscription


class SubscriptionKeys(BaseModel):
    p256dh: Optional[str] = None
    auth: Optional[str] = None


class SubscriptionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    endpoint: str = Field(..., min_length=1, max_length=2048)
    expiration_time: Optional[float] = Field(default=None, alias="expirationTime")
    keys: Optional[SubscriptionKeys] = None

    def to_subscription(self) -> PushSubscription:
        keys = self.keys or SubscriptionKeys()
        return PushSubscription(
            endpoint=self.endpoint,
            p256dh=keys.p256dh,
            auth=keys.auth,
            expiration_time=self.expiration_time,
        )


class FoodPayload(BaseModel):
    id: Union[str, int]
    name: str = Field(..., max_length=200)

    def to_food(self) -> FoodItem:
        return FoodItem(id=self.id, name=self.name)


def to_subscription(payload: Optional[SubscriptionPayload]) -> Optional[PushSubscription]:
    return payload.to_subscription() if payload else None


def to_foods(payload: Optional[list[FoodPayload]]) -> list[FoodItem]:
    return [food.to_food() for food in payload or []]


class SubscribeRequest(BaseModel):
    subscription: Optional[SubscriptionPayload] = None


class UpdateScheduleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subscription: Optional[SubscriptionPayload] = None
    notification_times: Optional[list[Any]] = Field(
        default=None, alias="notificationTimes"
    )
    foods: Optional[list[FoodPayload]] = None


class UnsubscribeRequest(BaseModel):
    subscription: Optional[SubscriptionPayload] = None


class SendTestRequest(BaseModel):
    subscription: Optional[SubscriptionPayload] = None
    foods: Optional[list[FoodPayload]] = None


class StatusResponse(BaseModel):
    success: Literal[True] = True
    message: str


class VapidKeyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_key: Optional[str] = Field(default=None, serialization_alias="publicKey")
