"""
Reminder relay for the meal-notify PWA.

This package keeps per-device Web Push subscriptions and reminder schedules in
memory, and sends "time to log your meal" notifications when a scheduled
minute comes around. A FastAPI app exposes the subscribe/schedule endpoints and
a cron endpoint that an external ticker calls once per minute.
"""
