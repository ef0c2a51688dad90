import unittest

from meal_notify.errors import ScheduleValidationError
from meal_notify.models import FoodItem, PushSubscription
from meal_notify.schedules import (
    InMemoryScheduleStore,
    minute_distance,
    minute_of_day,
    validate_times,
)
from meal_notify.subscriptions import InMemorySubscriptionRegistry


def _subscription(endpoint="https://push.example/abc", auth="auth-secret"):
    return PushSubscription(endpoint=endpoint, p256dh="p256dh-key", auth=auth)


class TimeOfDayTests(unittest.TestCase):
    def test_minute_of_day(self):
        for hour in (0, 7, 12, 23):
            for minute in (0, 1, 30, 59):
                value = f"{hour:02d}:{minute:02d}"
                self.assertEqual(minute_of_day(value), hour * 60 + minute)

    def test_minute_distance_wraps_midnight(self):
        self.assertEqual(minute_distance(660, 661), 1)
        self.assertEqual(minute_distance(0, 1439), 1)
        self.assertEqual(minute_distance(900, 900), 0)

    def test_validate_times_rejects_malformed(self):
        for bad in (["25:00"], ["12:60"], ["9:00"], ["noon"], [900], [], None):
            with self.subTest(times=bad):
                with self.assertRaises(ScheduleValidationError):
                    validate_times(bad)

    def test_validate_times_dedupes_in_order(self):
        self.assertEqual(
            validate_times(["15:00", "11:00", "15:00"]), ("15:00", "11:00")
        )


class SubscriptionRegistryTests(unittest.TestCase):
    def setUp(self):
        self.registry = InMemorySubscriptionRegistry()

    def test_identifier_prefers_auth_secret(self):
        self.assertEqual(_subscription().identifier, "auth-secret")
        no_keys = PushSubscription(endpoint="https://push.example/xyz")
        self.assertEqual(no_keys.identifier, "https://push.example/xyz")

    def test_resubscribe_overwrites(self):
        self.registry.upsert(_subscription(endpoint="https://push.example/old"))
        self.registry.upsert(_subscription(endpoint="https://push.example/new"))
        self.assertEqual(len(self.registry), 1)
        self.assertEqual(
            self.registry.get("auth-secret").endpoint, "https://push.example/new"
        )

    def test_remove_is_idempotent(self):
        self.assertFalse(self.registry.remove("missing"))
        self.registry.upsert(_subscription())
        self.assertTrue(self.registry.remove("auth-secret"))
        self.assertFalse(self.registry.remove("auth-secret"))
        self.assertIsNone(self.registry.get("auth-secret"))

    def test_all_keeps_insertion_order(self):
        self.registry.upsert(_subscription(auth="b"))
        self.registry.upsert(_subscription(auth="a"))
        self.assertEqual([i for i, _ in self.registry.all()], ["b", "a"])

    def test_from_dict(self):
        subscription = PushSubscription.from_dict(
            {
                "endpoint": "https://push.example/1",
                "expirationTime": None,
                "keys": {"p256dh": "p", "auth": "a"},
            }
        )
        self.assertTrue(subscription.has_keys)
        self.assertEqual(subscription.identifier, "a")


class ScheduleStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryScheduleStore()

    def test_replace_is_wholesale(self):
        self.store.replace("u1", ("08:00", "12:00"), [FoodItem("1", "Eggs")])
        self.store.replace("u1", ("19:00",), [])
        schedule = self.store.get("u1")
        self.assertEqual(schedule.times, ("19:00",))
        self.assertEqual(schedule.foods, ())
        self.assertEqual(len(self.store), 1)

    def test_snapshot_capped_at_five_foods(self):
        foods = [FoodItem(str(i), f"Food {i}") for i in range(8)]
        schedule = self.store.replace("u1", ("08:00",), foods)
        self.assertEqual(len(schedule.foods), 5)
        self.assertEqual(schedule.foods[0].id, "0")

    def test_remove_is_idempotent(self):
        self.assertFalse(self.store.remove("nobody"))
        self.store.replace("u1", ("08:00",), [])
        self.assertTrue(self.store.remove("u1"))
        self.assertIsNone(self.store.get("u1"))


if __name__ == "__main__":
    unittest.main()
