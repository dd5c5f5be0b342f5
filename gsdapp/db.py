"""
Database abstraction for Postgres and an in-memory test implementation.

Every query is scoped by ``user_id``: a record that belongs to another user
is indistinguishable from a missing one.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, replace
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    create_engine,
    inspect,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.types import (
    AnalysisJob,
    Goal,
    GoalStatus,
    Idea,
    JobStatus,
    Quadrant,
    ReasoningLog,
    Scorecard,
    Subscription,
    Task,
    UserPreferences,
    UserProfile,
    now_iso,
    record_from_dict,
)


def new_id() -> str:
    return uuid.uuid4().hex


class NotFoundError(LookupError):
    """A record is missing or belongs to another user."""


class DbClient(Protocol):
    """Interface for database access."""

    def list_tasks(
        self, user_id: str, quadrant: Optional[Quadrant] = None
    ) -> list[Task]:
        ...

    def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        ...

    def add_task(self, task: Task) -> Task:
        ...

    def update_task(
        self, user_id: str, task_id: str, updates: Dict[str, Any]
    ) -> Optional[Task]:
        ...

    def delete_task(self, user_id: str, task_id: str) -> Optional[Task]:
        ...

    def count_tasks(self, user_id: str) -> int:
        ...

    def list_ideas(self, user_id: str) -> list[Idea]:
        ...

    def get_idea(self, user_id: str, idea_id: str) -> Optional[Idea]:
        ...

    def add_idea(self, idea: Idea) -> Idea:
        ...

    def update_idea(
        self, user_id: str, idea_id: str, updates: Dict[str, Any]
    ) -> Optional[Idea]:
        ...

    def delete_idea(self, user_id: str, idea_id: str) -> Optional[Idea]:
        ...

    def count_ideas(self, user_id: str) -> int:
        ...

    def list_goals(
        self, user_id: str, status: Optional[GoalStatus] = None
    ) -> list[Goal]:
        ...

    def get_goal(self, user_id: str, goal_id: str) -> Optional[Goal]:
        ...

    def add_goal(self, goal: Goal) -> Goal:
        ...

    def update_goal(
        self, user_id: str, goal_id: str, updates: Dict[str, Any]
    ) -> Optional[Goal]:
        ...

    def delete_goal(self, user_id: str, goal_id: str) -> Optional[Goal]:
        ...

    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        ...

    def save_preferences(self, prefs: UserPreferences) -> UserPreferences:
        ...

    def delete_preferences(self, user_id: str) -> bool:
        ...

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        ...

    def save_profile(self, profile: UserProfile) -> UserProfile:
        ...

    def list_scorecards(self, user_id: str) -> list[Scorecard]:
        ...

    def get_scorecard(self, user_id: str, scorecard_id: str) -> Optional[Scorecard]:
        ...

    def add_scorecard(self, scorecard: Scorecard) -> Scorecard:
        ...

    def update_scorecard(
        self, user_id: str, scorecard_id: str, updates: Dict[str, Any]
    ) -> Optional[Scorecard]:
        ...

    def delete_scorecard(
        self, user_id: str, scorecard_id: str
    ) -> Optional[Scorecard]:
        ...

    def get_subscription(self, user_id: str) -> Optional[Subscription]:
        ...

    def upsert_subscription(self, subscription: Subscription) -> Subscription:
        ...

    def save_reasoning_log(self, user_id: str, log: ReasoningLog) -> None:
        ...

    def get_reasoning_log(self, user_id: str, task_id: str) -> Optional[ReasoningLog]:
        ...

    def delete_reasoning_log(self, user_id: str, task_id: str) -> None:
        ...

    def create_analysis_job(self, user_id: str, task_id: str) -> AnalysisJob:
        ...

    def get_analysis_job(self, job_id: str) -> Optional[AnalysisJob]:
        ...

    def update_analysis_job(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        attempts: Optional[int] = None,
        error: Optional[str] = None,
    ) -> Optional[AnalysisJob]:
        ...


def _sort_tasks(tasks: list[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: (str(t.quadrant), t.order or 0))


def _stamp(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Drop immutable fields and stamp ``updated_at``."""
    clean = {
        key: value
        for key, value in updates.items()
        if key not in ("id", "user_id", "created_at")
    }
    clean["updated_at"] = now_iso()
    return clean


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.tasks: Dict[str, Task] = {}
        self.ideas: Dict[str, Idea] = {}
        self.goals: Dict[str, Goal] = {}
        self.preferences: Dict[str, UserPreferences] = {}
        self.profiles: Dict[str, UserProfile] = {}
        self.scorecards: Dict[str, Scorecard] = {}
        self.subscriptions: Dict[str, Subscription] = {}
        self.reasoning_logs: Dict[tuple[str, str], ReasoningLog] = {}
        self.jobs: Dict[str, AnalysisJob] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.tasks.clear()
        self.ideas.clear()
        self.goals.clear()
        self.preferences.clear()
        self.profiles.clear()
        self.scorecards.clear()
        self.subscriptions.clear()
        self.reasoning_logs.clear()
        self.jobs.clear()

    @staticmethod
    def _owned(store: dict, user_id: str, record_id: str):
        record = store.get(record_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def _patch(self, store: dict, user_id: str, record_id: str, updates: dict):
        record = self._owned(store, user_id, record_id)
        if record is None:
            return None
        store[record_id] = replace(record, **_stamp(updates))
        return store[record_id]

    def _pop(self, store: dict, user_id: str, record_id: str):
        if self._owned(store, user_id, record_id) is None:
            return None
        return store.pop(record_id)

    def list_tasks(
        self, user_id: str, quadrant: Optional[Quadrant] = None
    ) -> list[Task]:
        tasks = [
            t
            for t in self.tasks.values()
            if t.user_id == user_id and (quadrant is None or t.quadrant == quadrant)
        ]
        return _sort_tasks(tasks)

    def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        return self._owned(self.tasks, user_id, task_id)

    def add_task(self, task: Task) -> Task:
        self.tasks[task.id] = task
        return task

    def update_task(
        self, user_id: str, task_id: str, updates: Dict[str, Any]
    ) -> Optional[Task]:
        return self._patch(self.tasks, user_id, task_id, updates)

    def delete_task(self, user_id: str, task_id: str) -> Optional[Task]:
        return self._pop(self.tasks, user_id, task_id)

    def count_tasks(self, user_id: str) -> int:
        return sum(1 for t in self.tasks.values() if t.user_id == user_id)

    def list_ideas(self, user_id: str) -> list[Idea]:
        return [i for i in self.ideas.values() if i.user_id == user_id]

    def get_idea(self, user_id: str, idea_id: str) -> Optional[Idea]:
        return self._owned(self.ideas, user_id, idea_id)

    def add_idea(self, idea: Idea) -> Idea:
        self.ideas[idea.id] = idea
        return idea

    def update_idea(
        self, user_id: str, idea_id: str, updates: Dict[str, Any]
    ) -> Optional[Idea]:
        return self._patch(self.ideas, user_id, idea_id, updates)

    def delete_idea(self, user_id: str, idea_id: str) -> Optional[Idea]:
        return self._pop(self.ideas, user_id, idea_id)

    def count_ideas(self, user_id: str) -> int:
        return len(self.list_ideas(user_id))

    def list_goals(
        self, user_id: str, status: Optional[GoalStatus] = None
    ) -> list[Goal]:
        goals = [
            g
            for g in self.goals.values()
            if g.user_id == user_id and (status is None or g.status == status)
        ]
        return sorted(goals, key=lambda g: g.created_at, reverse=True)

    def get_goal(self, user_id: str, goal_id: str) -> Optional[Goal]:
        return self._owned(self.goals, user_id, goal_id)

    def add_goal(self, goal: Goal) -> Goal:
        self.goals[goal.id] = goal
        return goal

    def update_goal(
        self, user_id: str, goal_id: str, updates: Dict[str, Any]
    ) -> Optional[Goal]:
        return self._patch(self.goals, user_id, goal_id, updates)

    def delete_goal(self, user_id: str, goal_id: str) -> Optional[Goal]:
        return self._pop(self.goals, user_id, goal_id)

    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        return self.preferences.get(user_id)

    def save_preferences(self, prefs: UserPreferences) -> UserPreferences:
        self.preferences[prefs.user_id] = prefs
        return prefs

    def delete_preferences(self, user_id: str) -> bool:
        return self.preferences.pop(user_id, None) is not None

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get(user_id)

    def save_profile(self, profile: UserProfile) -> UserProfile:
        self.profiles[profile.user_id] = profile
        return profile

    def list_scorecards(self, user_id: str) -> list[Scorecard]:
        cards = [s for s in self.scorecards.values() if s.user_id == user_id]
        return sorted(cards, key=lambda s: s.created_at, reverse=True)

    def get_scorecard(self, user_id: str, scorecard_id: str) -> Optional[Scorecard]:
        return self._owned(self.scorecards, user_id, scorecard_id)

    def add_scorecard(self, scorecard: Scorecard) -> Scorecard:
        self.scorecards[scorecard.id] = scorecard
        return scorecard

    def update_scorecard(
        self, user_id: str, scorecard_id: str, updates: Dict[str, Any]
    ) -> Optional[Scorecard]:
        record = self._owned(self.scorecards, user_id, scorecard_id)
        if record is None:
            return None
        # Scorecards carry no updated_at.
        clean = {
            k: v for k, v in updates.items() if k not in ("id", "user_id", "created_at")
        }
        self.scorecards[scorecard_id] = replace(record, **clean)
        return self.scorecards[scorecard_id]

    def delete_scorecard(
        self, user_id: str, scorecard_id: str
    ) -> Optional[Scorecard]:
        return self._pop(self.scorecards, user_id, scorecard_id)

    def get_subscription(self, user_id: str) -> Optional[Subscription]:
        return self.subscriptions.get(user_id)

    def upsert_subscription(self, subscription: Subscription) -> Subscription:
        self.subscriptions[subscription.user_id] = subscription
        return subscription

    def save_reasoning_log(self, user_id: str, log: ReasoningLog) -> None:
        self.reasoning_logs[(user_id, log.task_id)] = log

    def get_reasoning_log(self, user_id: str, task_id: str) -> Optional[ReasoningLog]:
        return self.reasoning_logs.get((user_id, task_id))

    def delete_reasoning_log(self, user_id: str, task_id: str) -> None:
        self.reasoning_logs.pop((user_id, task_id), None)

    def create_analysis_job(self, user_id: str, task_id: str) -> AnalysisJob:
        job = AnalysisJob(job_id=new_id(), user_id=user_id, task_id=task_id)
        self.jobs[job.job_id] = job
        return job

    def get_analysis_job(self, job_id: str) -> Optional[AnalysisJob]:
        return self.jobs.get(job_id)

    def update_analysis_job(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        attempts: Optional[int] = None,
        error: Optional[str] = None,
    ) -> Optional[AnalysisJob]:
        job = self.jobs.get(job_id)
        if not job:
            return None
        if status:
            job.status = status
        if attempts is not None:
            job.attempts = attempts
        if error is not None:
            job.error = error
        job.updated_at = time.time()
        return job


def _row_values(row) -> dict:
    return {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}


def _column_value(value: Any) -> Any:
    """Convert a record field into something a JSON/String column accepts."""
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "__dataclass_fields__"):
        return asdict(value)
    if isinstance(value, dict):
        return {k: _column_value(v) for k, v in value.items()}
    return value


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    # Generic helpers for the user-scoped tables.

    def _list(self, row_cls, record_cls, user_id: str, *criteria, order_by=()):
        with self.Session() as session:
            stmt = select(row_cls).where(row_cls.user_id == user_id, *criteria)
            if order_by:
                stmt = stmt.order_by(*order_by)
            rows = session.execute(stmt).scalars().all()
            return [record_from_dict(record_cls, _row_values(row)) for row in rows]

    def _get(self, row_cls, record_cls, user_id: str, record_id: str):
        with self.Session() as session:
            row = session.get(row_cls, record_id)
            if not row or row.user_id != user_id:
                return None
            return record_from_dict(record_cls, _row_values(row))

    def _add(self, row_cls, record):
        with self.Session() as session:
            values = {k: _column_value(v) for k, v in asdict(record).items()}
            session.add(row_cls(**values))
            session.commit()
        return record

    def _patch(
        self, row_cls, record_cls, user_id: str, record_id: str, updates: dict
    ):
        with self.Session() as session:
            row = session.get(row_cls, record_id)
            if not row or row.user_id != user_id:
                return None
            for key, value in updates.items():
                setattr(row, key, _column_value(value))
            session.commit()
            session.refresh(row)
            return record_from_dict(record_cls, _row_values(row))

    def _delete(self, row_cls, record_cls, user_id: str, record_id: str):
        with self.Session() as session:
            row = session.get(row_cls, record_id)
            if not row or row.user_id != user_id:
                return None
            record = record_from_dict(record_cls, _row_values(row))
            session.delete(row)
            session.commit()
            return record

    def _count(self, row_cls, user_id: str) -> int:
        with self.Session() as session:
            return (
                session.query(row_cls).filter(row_cls.user_id == user_id).count()
            )

    def list_tasks(
        self, user_id: str, quadrant: Optional[Quadrant] = None
    ) -> list[Task]:
        criteria = [TaskRow.quadrant == str(quadrant)] if quadrant else []
        tasks = self._list(TaskRow, Task, user_id, *criteria)
        return _sort_tasks(tasks)

    def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        return self._get(TaskRow, Task, user_id, task_id)

    def add_task(self, task: Task) -> Task:
        return self._add(TaskRow, task)

    def update_task(
        self, user_id: str, task_id: str, updates: Dict[str, Any]
    ) -> Optional[Task]:
        return self._patch(TaskRow, Task, user_id, task_id, _stamp(updates))

    def delete_task(self, user_id: str, task_id: str) -> Optional[Task]:
        return self._delete(TaskRow, Task, user_id, task_id)

    def count_tasks(self, user_id: str) -> int:
        return self._count(TaskRow, user_id)

    def list_ideas(self, user_id: str) -> list[Idea]:
        return self._list(IdeaRow, Idea, user_id, order_by=(IdeaRow.created_at.asc(),))

    def get_idea(self, user_id: str, idea_id: str) -> Optional[Idea]:
        return self._get(IdeaRow, Idea, user_id, idea_id)

    def add_idea(self, idea: Idea) -> Idea:
        return self._add(IdeaRow, idea)

    def update_idea(
        self, user_id: str, idea_id: str, updates: Dict[str, Any]
    ) -> Optional[Idea]:
        return self._patch(IdeaRow, Idea, user_id, idea_id, _stamp(updates))

    def delete_idea(self, user_id: str, idea_id: str) -> Optional[Idea]:
        return self._delete(IdeaRow, Idea, user_id, idea_id)

    def count_ideas(self, user_id: str) -> int:
        return self._count(IdeaRow, user_id)

    def list_goals(
        self, user_id: str, status: Optional[GoalStatus] = None
    ) -> list[Goal]:
        criteria = [GoalRow.status == str(status)] if status else []
        return self._list(
            GoalRow, Goal, user_id, *criteria, order_by=(GoalRow.created_at.desc(),)
        )

    def get_goal(self, user_id: str, goal_id: str) -> Optional[Goal]:
        return self._get(GoalRow, Goal, user_id, goal_id)

    def add_goal(self, goal: Goal) -> Goal:
        return self._add(GoalRow, goal)

    def update_goal(
        self, user_id: str, goal_id: str, updates: Dict[str, Any]
    ) -> Optional[Goal]:
        return self._patch(GoalRow, Goal, user_id, goal_id, _stamp(updates))

    def delete_goal(self, user_id: str, goal_id: str) -> Optional[Goal]:
        return self._delete(GoalRow, Goal, user_id, goal_id)

    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        with self.Session() as session:
            row = session.get(PreferencesRow, user_id)
            if not row:
                return None
            return record_from_dict(UserPreferences, {**row.data, "user_id": user_id})

    def save_preferences(self, prefs: UserPreferences) -> UserPreferences:
        data = _column_value(prefs)
        with self.Session() as session:
            row = session.get(PreferencesRow, prefs.user_id)
            if row:
                row.data = data
            else:
                session.add(PreferencesRow(user_id=prefs.user_id, data=data))
            session.commit()
        return prefs

    def delete_preferences(self, user_id: str) -> bool:
        with self.Session() as session:
            row = session.get(PreferencesRow, user_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with self.Session() as session:
            row = session.get(ProfileRow, user_id)
            if not row:
                return None
            return record_from_dict(UserProfile, {**row.data, "user_id": user_id})

    def save_profile(self, profile: UserProfile) -> UserProfile:
        data = _column_value(profile)
        with self.Session() as session:
            row = session.get(ProfileRow, profile.user_id)
            if row:
                row.data = data
            else:
                session.add(ProfileRow(user_id=profile.user_id, data=data))
            session.commit()
        return profile

    def list_scorecards(self, user_id: str) -> list[Scorecard]:
        return self._list(
            ScorecardRow,
            Scorecard,
            user_id,
            order_by=(ScorecardRow.created_at.desc(),),
        )

    def get_scorecard(self, user_id: str, scorecard_id: str) -> Optional[Scorecard]:
        return self._get(ScorecardRow, Scorecard, user_id, scorecard_id)

    def add_scorecard(self, scorecard: Scorecard) -> Scorecard:
        return self._add(ScorecardRow, scorecard)

    def update_scorecard(
        self, user_id: str, scorecard_id: str, updates: Dict[str, Any]
    ) -> Optional[Scorecard]:
        clean = {
            k: v for k, v in updates.items() if k not in ("id", "user_id", "created_at")
        }
        return self._patch(ScorecardRow, Scorecard, user_id, scorecard_id, clean)

    def delete_scorecard(
        self, user_id: str, scorecard_id: str
    ) -> Optional[Scorecard]:
        return self._delete(ScorecardRow, Scorecard, user_id, scorecard_id)

    def get_subscription(self, user_id: str) -> Optional[Subscription]:
        with self.Session() as session:
            row = session.get(SubscriptionRow, user_id)
            if not row:
                return None
            return record_from_dict(Subscription, _row_values(row))

    def upsert_subscription(self, subscription: Subscription) -> Subscription:
        values = {k: _column_value(v) for k, v in asdict(subscription).items()}
        with self.Session() as session:
            row = session.get(SubscriptionRow, subscription.user_id)
            if row:
                for key, value in values.items():
                    setattr(row, key, value)
            else:
                session.add(SubscriptionRow(**values))
            session.commit()
        return subscription

    def save_reasoning_log(self, user_id: str, log: ReasoningLog) -> None:
        with self.Session() as session:
            row = session.get(ReasoningLogRow, (user_id, log.task_id))
            if row:
                row.data = asdict(log)
            else:
                session.add(
                    ReasoningLogRow(user_id=user_id, task_id=log.task_id, data=asdict(log))
                )
            session.commit()

    def get_reasoning_log(self, user_id: str, task_id: str) -> Optional[ReasoningLog]:
        with self.Session() as session:
            row = session.get(ReasoningLogRow, (user_id, task_id))
            return record_from_dict(ReasoningLog, row.data) if row else None

    def delete_reasoning_log(self, user_id: str, task_id: str) -> None:
        with self.Session() as session:
            row = session.get(ReasoningLogRow, (user_id, task_id))
            if row:
                session.delete(row)
                session.commit()

    def create_analysis_job(self, user_id: str, task_id: str) -> AnalysisJob:
        now = time.time()
        with self.Session() as session:
            row = AnalysisJobRow(
                job_id=new_id(),
                user_id=user_id,
                task_id=task_id,
                status=JobStatus.WAITING.value,
                attempts=0,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return record_from_dict(AnalysisJob, _row_values(row))

    def get_analysis_job(self, job_id: str) -> Optional[AnalysisJob]:
        with self.Session() as session:
            row = session.get(AnalysisJobRow, job_id)
            if not row:
                return None
            return record_from_dict(AnalysisJob, _row_values(row))

    def update_analysis_job(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        attempts: Optional[int] = None,
        error: Optional[str] = None,
    ) -> Optional[AnalysisJob]:
        with self.Session() as session:
            row = session.get(AnalysisJobRow, job_id)
            if not row:
                return None
            if status:
                row.status = status.value
            if attempts is not None:
                row.attempts = attempts
            if error is not None:
                row.error = error
            row.updated_at = time.time()
            session.commit()
            session.refresh(row)
            return record_from_dict(AnalysisJob, _row_values(row))


Base = declarative_base()


class TaskRow(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    text = Column(String, nullable=False)
    quadrant = Column(String, nullable=False)
    task_type = Column(String, nullable=False, default="personal")
    status = Column(String, nullable=False, default="active")
    needs_reflection = Column(Boolean, nullable=False, default=False)
    description = Column(String, nullable=True)
    reflection = Column(JSON, nullable=True)
    completed_at = Column(String, nullable=True)
    order = Column("sort_order", Float, nullable=False, default=0)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class IdeaRow(Base):
    __tablename__ = "ideas"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    text = Column(String, nullable=False)
    task_type = Column(String, nullable=False)
    connected_to_priority = Column(Boolean, nullable=False, default=False)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class GoalRow(Base):
    __tablename__ = "goals"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    status = Column(String, nullable=False, index=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class PreferencesRow(Base):
    __tablename__ = "user_preferences"

    user_id = Column(String, primary_key=True)
    data = Column("preferences", JSON, nullable=False)


class ProfileRow(Base):
    __tablename__ = "user_profiles"

    user_id = Column(String, primary_key=True)
    data = Column("profile", JSON, nullable=False)


class ScorecardRow(Base):
    __tablename__ = "scorecards"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    created_at = Column(String, nullable=False)
    metrics = Column(JSON, nullable=False)
    trends = Column(JSON, nullable=False)
    insights = Column(JSON, nullable=False)
    notes = Column(String, nullable=True)


class SubscriptionRow(Base):
    __tablename__ = "subscriptions"

    user_id = Column(String, primary_key=True)
    status = Column(String, nullable=False)
    tier = Column(String, nullable=False)
    valid_until = Column(BigInteger, nullable=True)
    polar_subscription_id = Column(String, nullable=True)


class ReasoningLogRow(Base):
    __tablename__ = "reasoning_logs"

    user_id = Column(String, primary_key=True)
    task_id = Column(String, primary_key=True)
    data = Column("log", JSON, nullable=False)


class AnalysisJobRow(Base):
    __tablename__ = "analysis_jobs"

    job_id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    task_id = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    error = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)
