import unittest

from gsdapp.db import InMemoryDbClient, NotFoundError
from gsdapp.preferences import (
    complete_onboarding,
    load_profile,
    save_preferences,
)
from shared.types import Theme, UserPreferences

USER = "user_1"


class PreferenceServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_client_cannot_change_managed_flags(self):
        self.db.save_preferences(UserPreferences(user_id=USER, is_legacy_user=True))
        saved = save_preferences(
            self.db,
            USER,
            {"is_legacy_user": False, "has_completed_onboarding": True, "goal": "Run"},
        )
        self.assertTrue(saved.is_legacy_user)
        self.assertFalse(saved.has_completed_onboarding)
        self.assertEqual(saved.goal, "Run")

    def test_onboarding(self):
        with self.assertRaises(NotFoundError):
            complete_onboarding(self.db, USER)
        save_preferences(self.db, USER, {"goal": "Run"})
        prefs = complete_onboarding(self.db, USER)
        self.assertTrue(prefs.has_completed_onboarding)
        self.assertEqual(prefs.goal, "Run")

    def test_profile_fallback_uses_preferences(self):
        self.assertEqual(load_profile(self.db, USER).theme, Theme.SYSTEM)
        save_preferences(self.db, USER, {"theme": Theme.DARK, "license_key": "LIC-9"})
        profile = load_profile(self.db, USER)
        self.assertEqual(profile.theme, Theme.DARK)
        self.assertEqual(profile.license_key, "LIC-9")


if __name__ == "__main__":
    unittest.main()
