"""
Exceptions raised at the request boundary.

Delivery problems are never raised; see DeliveryResult.
"""


class NotifyError(ValueError):
    """Base class for rejected requests."""


class MissingSubscriptionError(NotifyError):
    def __init__(self, message: str = "Subscription required"):
        super().__init__(message)


class ScheduleValidationError(NotifyError):
    """Reminder times were missing, empty or malformed."""
