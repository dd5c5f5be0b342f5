import unittest
from datetime import datetime, timezone

from shared.types import (
    INVALID_DATE,
    Quadrant,
    UserProfile,
    format_date,
    merge_settings,
    needs_reflection_for,
    parse_json,
)


class FormatDateTests(unittest.TestCase):
    def test_iso_string(self):
        self.assertEqual(format_date("2024-01-15T10:30:00Z"), "Jan 15, 2024")

    def test_custom_format(self):
        self.assertEqual(
            format_date("2024-01-15T10:30:00+00:00", "%Y-%m-%d %H:%M"),
            "2024-01-15 10:30",
        )

    def test_datetime_and_epoch_millis(self):
        moment = datetime(2023, 7, 4, tzinfo=timezone.utc)
        self.assertEqual(format_date(moment), "Jul 04, 2023")
        self.assertEqual(format_date(int(moment.timestamp() * 1000)), "Jul 04, 2023")

    def test_invalid_input(self):
        for value in ("not a date", "", None, object(), 10**20):
            self.assertEqual(format_date(value), INVALID_DATE)


class MergeSettingsTests(unittest.TestCase):
    def test_partial_overrides(self):
        current = {"theme": "light", "goal": "Write", "show_completed_tasks": True}
        merged = merge_settings(current, {"theme": "dark", "show_completed_tasks": False})
        self.assertEqual(
            merged, {"theme": "dark", "goal": "Write", "show_completed_tasks": False}
        )
        self.assertEqual(current["theme"], "light")

    def test_none_values_are_ignored(self):
        merged = merge_settings({"goal": "Write"}, {"goal": None, "priority": "Edit"})
        self.assertEqual(merged, {"goal": "Write", "priority": "Edit"})

    def test_task_settings_merge_over_defaults(self):
        merged = merge_settings(
            {"task_settings": {"end_of_day_time": "18:00"}},
            {"task_settings": {"auto_archive_delay": 2}},
        )
        self.assertEqual(
            merged["task_settings"],
            {
                "end_of_day_time": "18:00",
                "auto_archive_delay": 2,
                "grace_period": 24,
                "retain_recurring_tasks": True,
            },
        )


class ParseJsonTests(unittest.TestCase):
    def test_valid(self):
        self.assertEqual(parse_json('{"a": 1}'), {"a": 1})

    def test_invalid_returns_default(self):
        self.assertFalse(parse_json("{oops", False))
        self.assertEqual(parse_json(None, {}), {})


class MiscTypeTests(unittest.TestCase):
    def test_needs_reflection_for(self):
        self.assertFalse(needs_reflection_for(Quadrant.Q1))
        self.assertFalse(needs_reflection_for("q2"))
        self.assertTrue(needs_reflection_for("q3"))
        self.assertTrue(needs_reflection_for(Quadrant.Q4))

    def test_license_status(self):
        self.assertEqual(UserProfile("u1").license_status, "inactive")
        self.assertEqual(UserProfile("u1", license_key="k").license_status, "active")
        self.assertEqual(
            UserProfile("u1", is_legacy_user=True).license_status, "legacy"
        )


if __name__ == "__main__":
    unittest.main()
