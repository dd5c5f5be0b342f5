"""
Daily productivity scorecard: metrics, trends and assembly.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from gsdapp.analysis import FALLBACK_INSIGHTS, TaskAnalyzer
from gsdapp.db import DbClient, new_id
from shared.types import (
    Quadrant,
    QuadrantMetrics,
    Scorecard,
    ScorecardInsights,
    ScorecardMetrics,
    ScorecardTrends,
    Task,
    TaskStatus,
    Trend,
    now_iso,
    parse_iso,
)

logger = logging.getLogger(__name__)

RATE_THRESHOLD = 0.05
SCORE_THRESHOLD = 0.5

HIGH_VALUE = (Quadrant.Q1, Quadrant.Q2)


def _day_of(value: Optional[str], today: date, tz) -> bool:
    try:
        parsed = parse_iso(value)
    except ValueError:
        logger.warning("Skipping unparsable timestamp %r", value)
        return False
    return parsed is not None and parsed.astimezone(tz).date() == today


def _completed_today(task: Task, today: date, tz) -> bool:
    return task.status == TaskStatus.COMPLETED and _day_of(task.completed_at, today, tz)


def _rate(part: int, whole: int) -> float:
    return part / whole if whole else 0.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def priority_alignment(
    tasks: Iterable[Task], priority: Optional[str], now: Optional[datetime] = None
) -> float:
    """
    Score from 0-10 of how much of today's completed work was high value.

    No priority set scores 5; nothing high value completed scores 3.
    """
    if not priority or not priority.strip():
        return 5
    now = now or datetime.now(timezone.utc)
    tz, today = now.tzinfo or timezone.utc, now.date()

    completed = [t for t in tasks if _completed_today(t, today, tz)]
    high_value = [t for t in completed if t.quadrant in HIGH_VALUE]
    if not high_value:
        return 3
    return min(10, max(2, _round_half_up(len(high_value) / len(completed) * 10)))


def calculate_metrics(
    tasks: Iterable[Task], priority: Optional[str], now: Optional[datetime] = None
) -> ScorecardMetrics:
    tasks = list(tasks)
    now = now or datetime.now(timezone.utc)
    tz, today = now.tzinfo or timezone.utc, now.date()

    todays = [
        t
        for t in tasks
        if _day_of(t.created_at, today, tz) or _day_of(t.completed_at, today, tz)
    ]
    done = [t for t in todays if _completed_today(t, today, tz)]

    quadrant_metrics = {}
    for quadrant in Quadrant:
        total = sum(1 for t in todays if t.quadrant == quadrant)
        completed = sum(1 for t in done if t.quadrant == quadrant)
        quadrant_metrics[quadrant.value] = QuadrantMetrics(
            total=total, completed=completed, completion_rate=_rate(completed, total)
        )

    high_value_total = sum(quadrant_metrics[q.value].total for q in HIGH_VALUE)
    high_value_done = sum(quadrant_metrics[q.value].completed for q in HIGH_VALUE)

    logger.debug(
        "Scorecard metrics: %d tasks, %d today, %d completed today",
        len(tasks),
        len(todays),
        len(done),
    )
    return ScorecardMetrics(
        date=today.isoformat(),
        total_tasks=len(todays),
        completed_tasks=len(done),
        completion_rate=_rate(len(done), len(todays)),
        quadrant_metrics=quadrant_metrics,
        high_value_completion_rate=_rate(high_value_done, high_value_total),
        priority_alignment_score=priority_alignment(tasks, priority, now),
    )


def _trend(current: float, previous: float, threshold: float) -> Trend:
    difference = current - previous
    if difference > threshold:
        return Trend.UP
    if difference < -threshold:
        return Trend.DOWN
    return Trend.STABLE


def calculate_trends(
    current: ScorecardMetrics, previous: Optional[ScorecardMetrics]
) -> ScorecardTrends:
    if previous is None:
        return ScorecardTrends()
    return ScorecardTrends(
        completion_rate_trend=_trend(
            current.completion_rate, previous.completion_rate, RATE_THRESHOLD
        ),
        high_value_completion_trend=_trend(
            current.high_value_completion_rate,
            previous.high_value_completion_rate,
            RATE_THRESHOLD,
        ),
        priority_alignment_trend=_trend(
            current.priority_alignment_score,
            previous.priority_alignment_score,
            SCORE_THRESHOLD,
        ),
    )


def generate_scorecard(
    db: DbClient,
    analyzer: TaskAnalyzer,
    user_id: str,
    goal: Optional[str],
    priority: Optional[str],
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Scorecard:
    """Compute today's metrics, ask for insights, compare with the last card and save."""
    tasks = db.list_tasks(user_id)
    metrics = calculate_metrics(tasks, priority, now)
    if analyzer.is_configured:
        insights = analyzer.generate_insights(metrics, tasks, goal, priority)
    else:
        insights = FALLBACK_INSIGHTS

    history = db.list_scorecards(user_id)
    previous = history[0].metrics if history else None

    scorecard = Scorecard(
        id=new_id(),
        user_id=user_id,
        created_at=now_iso(),
        metrics=metrics,
        trends=calculate_trends(metrics, previous),
        insights=ScorecardInsights(
            analysis=insights.analysis, suggestions=list(insights.suggestions)
        ),
        notes=notes,
    )
    return db.add_scorecard(scorecard)
