"""
Subscription access rules: who gets which features, and tier limits.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Optional

from shared.types import (
    AccessLevel,
    Subscription,
    SubscriptionStatus,
    UserPreferences,
)

FREE_MAX_TASKS = 100
FREE_MAX_IDEAS = 50


class TierLimitError(Exception):
    """Raised when a free or expired account hits a creation limit."""


@dataclass(frozen=True)
class TierFeatures:
    max_tasks: Optional[int]  # None means unlimited
    max_ideas: Optional[int]
    ai_enabled: bool
    team_enabled: bool

    def as_dict(self) -> dict:
        return asdict(self)


_UNLIMITED_AI = TierFeatures(
    max_tasks=None, max_ideas=None, ai_enabled=True, team_enabled=False
)
_LIMITED = TierFeatures(
    max_tasks=FREE_MAX_TASKS,
    max_ideas=FREE_MAX_IDEAS,
    ai_enabled=False,
    team_enabled=False,
)

TIER_FEATURES = {
    AccessLevel.TEAM: TierFeatures(
        max_tasks=None, max_ideas=None, ai_enabled=True, team_enabled=True
    ),
    AccessLevel.PRO: _UNLIMITED_AI,
    AccessLevel.LEGACY: _UNLIMITED_AI,
    AccessLevel.FREE: _LIMITED,
    AccessLevel.EXPIRED: _LIMITED,
}


def now_ms() -> int:
    return int(time.time() * 1000)


def is_subscription_active(
    subscription: Optional[Subscription], at_ms: Optional[int] = None
) -> bool:
    if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
        return False
    if subscription.valid_until is None:
        return True
    return subscription.valid_until > (at_ms if at_ms is not None else now_ms())


def get_access_level(
    subscription: Optional[Subscription],
    preferences: Optional[UserPreferences] = None,
    at_ms: Optional[int] = None,
) -> AccessLevel:
    if preferences is not None and preferences.is_legacy_user:
        return AccessLevel.LEGACY
    if subscription is None:
        return AccessLevel.FREE
    if not is_subscription_active(subscription, at_ms):
        return AccessLevel.EXPIRED
    return AccessLevel(str(subscription.tier))


def has_pro_access(level: AccessLevel) -> bool:
    return level in (AccessLevel.LEGACY, AccessLevel.PRO, AccessLevel.TEAM)


def get_tier_features(level: AccessLevel) -> TierFeatures:
    return TIER_FEATURES[level]


def access_level_for_user(db, user_id: str) -> AccessLevel:
    return get_access_level(db.get_subscription(user_id), db.get_preferences(user_id))


def check_limit(db, user_id: str, kind: str) -> None:
    """Raise ``TierLimitError`` when creating one more ``kind`` would exceed the tier."""
    features = get_tier_features(access_level_for_user(db, user_id))
    if kind == "tasks":
        limit, count = features.max_tasks, db.count_tasks
    elif kind == "ideas":
        limit, count = features.max_ideas, db.count_ideas
    else:
        raise ValueError(f"Unknown limit kind: {kind}")
    if limit is not None and count(user_id) >= limit:
        raise TierLimitError(
            f"Your plan allows up to {limit} {kind}. Upgrade to Pro for unlimited {kind}."
        )
