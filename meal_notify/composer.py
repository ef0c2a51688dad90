"""
Builds the Web Push payload shown by the PWA service worker.

The service worker turns each `food-<id>` action into a one-tap log entry and
`view-all` into a navigation to `data.url`.
"""

from __future__ import annotations

from typing import Optional, Sequence

from meal_notify.models import FoodItem, NotificationAction, NotificationPayload

DEFAULT_TITLE = "Meal Reminder 🍽️"
DEFAULT_BODY = "Time to log your meal!"
TARGET_URL = "/log"

# Browsers render at most a handful of notification buttons; one slot is
# reserved for "View All".
MAX_FOOD_ACTIONS = 4
MAX_BODY_FOODS = 3
MAX_LABEL_LENGTH = 20
TRUNCATED_LABEL_LENGTH = 17
MAX_BODY_LENGTH = 200


def action_label(name: str) -> str:
    if len(name) > MAX_LABEL_LENGTH:
        return name[:TRUNCATED_LABEL_LENGTH] + "..."
    return name


def summarize_foods(foods: Sequence[FoodItem]) -> Optional[str]:
    """Comma-joined names of the first three foods, or None for no foods."""
    if not foods:
        return None
    summary = ", ".join(food.name for food in foods[:MAX_BODY_FOODS])
    if len(foods) > MAX_BODY_FOODS:
        summary += f" +{len(foods) - MAX_BODY_FOODS} more"
    return summary


def compose_notification(
    foods: Sequence[FoodItem],
    title: Optional[str] = None,
    body: Optional[str] = None,
) -> NotificationPayload:
    foods = list(foods or [])
    actions = [
        NotificationAction(action=f"food-{food.id}", title=action_label(food.name))
        for food in foods[:MAX_FOOD_ACTIONS]
    ]
    actions.append(NotificationAction(action="view-all", title="View All"))

    if body is None:
        body = summarize_foods(foods) or DEFAULT_BODY

    return NotificationPayload(
        title=title or DEFAULT_TITLE,
        body=body[:MAX_BODY_LENGTH],
        actions=tuple(actions),
        data={"url": TARGET_URL, "foods": [food.id for food in foods]},
    )
