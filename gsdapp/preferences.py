"""
User settings and profile storage on top of the DbClient.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from gsdapp.db import DbClient, NotFoundError
from shared.types import (
    Theme,
    UserPreferences,
    UserProfile,
    merge_settings,
    record_from_dict,
)

logger = logging.getLogger(__name__)

SERVER_MANAGED_FIELDS = ("is_legacy_user", "has_completed_onboarding")


def load_preferences(db: DbClient, user_id: str) -> UserPreferences:
    """Stored preferences, or the defaults for a user who has none."""
    return db.get_preferences(user_id) or UserPreferences(user_id=user_id)


def _store(db: DbClient, user_id: str, merged: Dict[str, Any]) -> UserPreferences:
    merged["user_id"] = user_id
    # The provider key only leaves the browser when the user opts in.
    if not merged.get("sync_api_key"):
        merged["api_key"] = None
    prefs = record_from_dict(UserPreferences, merged)
    return db.save_preferences(prefs)


def save_preferences(
    db: DbClient, user_id: str, partial: Dict[str, Any]
) -> UserPreferences:
    """
    Merge a client update over the stored settings. Legacy status and
    onboarding are never taken from the client.
    """
    update = {k: v for k, v in partial.items() if k not in SERVER_MANAGED_FIELDS}
    current = load_preferences(db, user_id).as_dict()
    return _store(db, user_id, merge_settings(current, update))


def complete_onboarding(db: DbClient, user_id: str) -> UserPreferences:
    prefs = db.get_preferences(user_id)
    if prefs is None:
        raise NotFoundError("User preferences not found")
    merged = prefs.as_dict()
    merged["has_completed_onboarding"] = True
    return _store(db, user_id, merged)


def load_profile(db: DbClient, user_id: str) -> UserProfile:
    profile = db.get_profile(user_id)
    if profile is not None:
        return profile
    prefs = db.get_preferences(user_id)
    return UserProfile(
        user_id=user_id,
        theme=prefs.theme if prefs else Theme.SYSTEM,
        is_legacy_user=prefs.is_legacy_user if prefs else False,
        license_key=prefs.license_key if prefs else None,
    )


def save_profile(db: DbClient, user_id: str, partial: Dict[str, Any]) -> UserProfile:
    merged = merge_settings(load_profile(db, user_id).as_dict(), partial)
    merged.pop("license_status", None)
    merged["user_id"] = user_id
    profile = record_from_dict(UserProfile, merged)
    logger.info("Saved profile for %s", user_id)
    return db.save_profile(profile)
