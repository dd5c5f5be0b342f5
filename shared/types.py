# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""
Record and enum types shared by the API, the worker and the AI layer.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum, StrEnum
from typing import Any, Dict, List, Optional, Type, TypeVar

from dacite import Config, from_dict

logger = logging.getLogger(__name__)

INVALID_DATE = "Invalid Date"

T = TypeVar("T")


class Quadrant(StrEnum):
    Q1 = "q1"  # Urgent & Important
    Q2 = "q2"  # Important, Not Urgent
    Q3 = "q3"  # Urgent, Not Important
    Q4 = "q4"  # Not Urgent & Not Important


QUADRANT_TITLES = {
    Quadrant.Q1: "Urgent & Important",
    Quadrant.Q2: "Important, Not Urgent",
    Quadrant.Q3: "Urgent, Not Important",
    Quadrant.Q4: "Not Urgent & Not Important",
}


class TaskType(StrEnum):
    PERSONAL = "personal"
    WORK = "work"
    BUSINESS = "business"
    IDEA = "idea"


class TaskStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"


class GoalStatus(StrEnum):
    ACTIVE = "active"
    ACHIEVED = "achieved"
    ARCHIVED = "archived"


class Theme(StrEnum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class Trend(StrEnum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class SubscriptionTier(StrEnum):
    FREE = "free"
    PRO = "pro"
    TEAM = "team"


class AccessLevel(StrEnum):
    LEGACY = "legacy"
    FREE = "free"
    PRO = "pro"
    TEAM = "team"
    EXPIRED = "expired"


class JobStatus(StrEnum):
    WAITING = "WAITING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass
class TaskReflection:
    justification: str
    final_quadrant: Quadrant
    reflected_at: str
    ai_analysis: Optional[str] = None
    suggested_quadrant: Optional[Quadrant] = None
    feedback: Optional[str] = None
    content: Optional[str] = None


@dataclass
class Task:
    """A single to-do item placed in one Eisenhower quadrant."""

    id: str
    user_id: str
    text: str
    quadrant: Quadrant
    created_at: str
    updated_at: str
    task_type: TaskType = TaskType.PERSONAL
    status: TaskStatus = TaskStatus.ACTIVE
    needs_reflection: bool = False
    description: Optional[str] = None
    reflection: Optional[TaskReflection] = None
    completed_at: Optional[str] = None
    order: float = 0

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class Idea:
    id: str
    user_id: str
    text: str
    task_type: TaskType
    connected_to_priority: bool
    created_at: str
    updated_at: str

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class Goal:
    id: str
    user_id: str
    title: str
    status: GoalStatus
    created_at: str
    updated_at: str
    description: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class TaskSettings:
    end_of_day_time: str = "17:00"  # 24-hour HH:MM
    auto_archive_delay: float = 7  # days after completion
    grace_period: float = 24  # before permanent deletion
    retain_recurring_tasks: bool = True


@dataclass
class UserPreferences:
    """Per-user settings. Missing preferences read back as the defaults."""

    user_id: str
    goal: Optional[str] = None
    priority: Optional[str] = None
    theme: Theme = Theme.SYSTEM
    show_completed_tasks: bool = True
    auto_analyze: bool = False
    sync_api_key: bool = False
    api_key: Optional[str] = None
    license_key: Optional[str] = None
    has_completed_onboarding: bool = False
    is_legacy_user: bool = False
    task_settings: TaskSettings = field(default_factory=TaskSettings)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class UserProfile:
    user_id: str
    name: str = ""
    email: str = ""
    theme: Theme = Theme.SYSTEM
    personal_context: str = ""
    is_legacy_user: bool = False
    license_key: Optional[str] = None

    @property
    def license_status(self) -> str:
        if self.is_legacy_user:
            return "legacy"
        return "active" if self.license_key else "inactive"

    def as_dict(self) -> dict:
        payload = asdict(self)
        payload["license_status"] = self.license_status
        return payload


@dataclass
class QuadrantMetrics:
    total: int = 0
    completed: int = 0
    completion_rate: float = 0.0


@dataclass
class ScorecardMetrics:
    date: str
    total_tasks: int
    completed_tasks: int
    completion_rate: float
    quadrant_metrics: Dict[str, QuadrantMetrics]
    high_value_completion_rate: float  # q1 + q2
    priority_alignment_score: float  # 0-10


@dataclass
class ScorecardTrends:
    completion_rate_trend: Trend = Trend.STABLE
    high_value_completion_trend: Trend = Trend.STABLE
    priority_alignment_trend: Trend = Trend.STABLE


@dataclass
class ScorecardInsights:
    analysis: str
    suggestions: List[str]


@dataclass
class Scorecard:
    id: str
    user_id: str
    created_at: str
    metrics: ScorecardMetrics
    trends: ScorecardTrends
    insights: ScorecardInsights
    notes: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class Subscription:
    user_id: str
    status: SubscriptionStatus
    tier: SubscriptionTier
    valid_until: Optional[int] = None  # epoch milliseconds
    polar_subscription_id: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class ReasoningLog:
    task_id: str
    task_text: str
    timestamp: int
    suggested_quadrant: Quadrant
    task_type: TaskType
    reasoning: str
    alignment_score: Optional[float] = None
    urgency_score: Optional[float] = None
    importance_score: Optional[float] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class AnalysisJob:
    job_id: str
    user_id: str
    task_id: str
    status: JobStatus = JobStatus.WAITING
    attempts: int = 0
    error: Optional[str] = None
    created_at: float = field(default_factory=lambda: datetime.now().timestamp())
    updated_at: float = field(default_factory=lambda: datetime.now().timestamp())

    def as_dict(self) -> dict:
        return asdict(self)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_date(value: Any, fmt: str = "%b %d, %Y") -> str:
    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        else:
            parsed = parse_iso(value)
        if parsed is None:
            return INVALID_DATE
        return parsed.strftime(fmt)
    except (AttributeError, TypeError, ValueError, OverflowError, OSError) as e:
        logger.warning("Error formatting date %r: %s", value, e)
        return INVALID_DATE


def parse_json(text: Optional[str], default: Any = None) -> Any:
    if not text:
        return default
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        logger.warning("Failed to parse JSON: %s", e)
        return default


def merge_settings(current: dict, partial: dict) -> dict:
    """
    Shallow object-spread merge of ``partial`` over ``current``.

    ``None`` values in ``partial`` are ignored. ``task_settings`` is merged
    one level deeper so a partial update keeps the remaining task defaults.
    """
    merged = dict(current)
    for key, value in partial.items():
        if value is None:
            continue
        if key == "task_settings" and isinstance(value, dict):
            nested = dict(asdict(TaskSettings()))
            nested.update(current.get("task_settings") or {})
            nested.update({k: v for k, v in value.items() if v is not None})
            merged[key] = nested
        else:
            merged[key] = value
    return merged


def needs_reflection_for(quadrant: Quadrant | str) -> bool:
    return Quadrant(quadrant) in (Quadrant.Q3, Quadrant.Q4)


_DACITE_CONFIG = Config(cast=[Enum, float])


def record_from_dict(record_type: Type[T], data: dict) -> T:
    """Rebuild a (possibly nested) record from plain JSON-style data."""
    return from_dict(data_class=record_type, data=data, config=_DACITE_CONFIG)
