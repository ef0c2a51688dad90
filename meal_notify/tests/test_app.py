import unittest
from datetime import datetime

from fastapi.testclient import TestClient

from meal_notify.app import create_app
from meal_notify.config import Settings
from meal_notify.dependencies import Services
from meal_notify.models import PushSubscription

SUBSCRIPTION = {
    "endpoint": "https://fcm.googleapis.com/fcm/send/device-1",
    "expirationTime": None,
    "keys": {"p256dh": "p256dh-key", "auth": "auth-1"},
}


def _services(**overrides) -> Services:
    settings = Settings(
        use_in_memory_delivery=True,
        vapid_public_key="public-key",
        cron_secret=overrides.pop("cron_secret", None),
        local_ticker_enabled=False,
    )
    return Services.build(settings, clock=lambda: datetime(2026, 10, 17, 11, 0))


class RelayApiTests(unittest.TestCase):
    def setUp(self):
        self.services = _services()
        self.client = TestClient(create_app(self.services))

    def test_vapid_key(self):
        response = self.client.get("/api/vapid-key")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"publicKey": "public-key"})

    def test_subscribe_stores_once_and_sends_welcome(self):
        for _ in range(2):
            response = self.client.post("/api/subscribe", json={"subscription": SUBSCRIPTION})
            self.assertEqual(response.status_code, 200)
            self.assertTrue(response.json()["success"])
        self.assertEqual(len(self.services.registry), 1)
        sent = self.services.gateway.sent
        self.assertEqual(len(sent), 2)
        self.assertEqual(sent[0].payload["title"], "Welcome!")

    def test_subscribe_survives_failed_welcome(self):
        self.services.gateway.fail_with(SUBSCRIPTION["endpoint"], 500)
        response = self.client.post("/api/subscribe", json={"subscription": SUBSCRIPTION})
        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(self.services.registry.get("auth-1"))

    def test_subscribe_requires_subscription(self):
        response = self.client.post("/api/subscribe", json={})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Subscription required")

    def test_update_schedule_and_tick(self):
        response = self.client.post(
            "/api/update-schedule",
            json={
                "subscription": SUBSCRIPTION,
                "notificationTimes": ["11:00", "15:00"],
                "foods": [{"id": "1", "name": "Chicken Breast"}],
            },
        )
        self.assertEqual(response.status_code, 200)
        schedule = self.services.schedules.get("auth-1")
        self.assertEqual(schedule.times, ("11:00", "15:00"))

        tick = self.client.get("/api/cron")
        self.assertEqual(tick.status_code, 200)
        payload = tick.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["message"], "Notifications checked")
        self.assertEqual(payload["summary"]["notifications_succeeded"], 1)
        self.assertIn("Chicken Breast", self.services.gateway.sent[-1].payload["body"])

    def test_invalid_time_leaves_store_untouched(self):
        self.client.post(
            "/api/update-schedule",
            json={"subscription": SUBSCRIPTION, "notificationTimes": ["08:00"]},
        )
        response = self.client.post(
            "/api/update-schedule",
            json={"subscription": SUBSCRIPTION, "notificationTimes": ["25:00"]},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("25:00", response.json()["detail"])
        self.assertEqual(self.services.schedules.get("auth-1").times, ("08:00",))

    def test_update_schedule_requires_times(self):
        for body in (
            {"subscription": SUBSCRIPTION},
            {"subscription": SUBSCRIPTION, "notificationTimes": []},
            {"notificationTimes": ["08:00"]},
        ):
            with self.subTest(body=body):
                response = self.client.post("/api/update-schedule", json=body)
                self.assertEqual(response.status_code, 400)
        self.assertEqual(len(self.services.schedules), 0)
        self.assertEqual(len(self.services.registry), 0)

    def test_unsubscribe_clears_both_stores(self):
        self.client.post(
            "/api/update-schedule",
            json={"subscription": SUBSCRIPTION, "notificationTimes": ["08:00"]},
        )
        for _ in range(2):
            response = self.client.post("/api/unsubscribe", json={"subscription": SUBSCRIPTION})
            self.assertEqual(response.status_code, 200)
        self.assertEqual(len(self.services.registry), 0)
        self.assertEqual(len(self.services.schedules), 0)

    def test_test_notification(self):
        foods = [{"id": i, "name": f"Food {i}"} for i in range(1, 7)]
        response = self.client.post(
            "/api/test-notification", json={"subscription": SUBSCRIPTION, "foods": foods}
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        payload = self.services.gateway.sent[-1].payload
        self.assertEqual(payload["title"], "Test Notification")
        self.assertEqual(payload["body"], "Test: Food 1, Food 2, Food 3 +3 more")
        self.assertEqual(len(payload["actions"]), 5)
        self.assertEqual(payload["data"]["foods"], [1, 2, 3, 4, 5, 6])

    def test_test_notification_failure_reports_details(self):
        self.services.registry.upsert(PushSubscription.from_dict(SUBSCRIPTION))
        self.services.gateway.fail_with(SUBSCRIPTION["endpoint"], 410, "expired")
        response = self.client.post("/api/test-notification", json={"subscription": SUBSCRIPTION})
        self.assertEqual(response.status_code, 500)
        details = response.json()["details"]
        self.assertEqual(details["status_code"], 410)
        self.assertTrue(details["permanent"])
        self.assertEqual(len(self.services.registry), 0)

    def test_debug_snapshot_truncates(self):
        self.client.post(
            "/api/update-schedule",
            json={
                "subscription": SUBSCRIPTION,
                "notificationTimes": ["08:00"],
                "foods": [{"id": "1", "name": "Oats"}],
            },
        )
        response = self.client.get("/api/debug")
        self.assertEqual(response.status_code, 200)
        snapshot = response.json()
        self.assertEqual(snapshot["memory"]["total_subscriptions"], 1)
        self.assertEqual(snapshot["subscriptions"][0]["user_id"], "auth-1...")
        self.assertTrue(snapshot["subscriptions"][0]["has_keys"])
        self.assertEqual(snapshot["schedules"][0]["foods"], ["Oats"])


class CronSecretTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app(_services(cron_secret="s3cret")))

    def test_rejects_missing_secret(self):
        self.assertEqual(self.client.get("/api/cron").status_code, 401)
        self.assertEqual(
            self.client.get("/api/cron", headers={"Authorization": "Bearer nope"}).status_code,
            401,
        )

    def test_accepts_header_or_query(self):
        for kwargs in (
            {"headers": {"Authorization": "Bearer s3cret"}},
            {"headers": {"Authorization": "s3cret"}},
            {"params": {"secret": "s3cret"}},
        ):
            with self.subTest(**kwargs):
                response = self.client.get("/api/cron", **kwargs)
                self.assertEqual(response.status_code, 200)
                self.assertIn(
                    "No subscriptions stored - did you enable notifications?",
                    response.json()["issues"],
                )


if __name__ == "__main__":
    unittest.main()
