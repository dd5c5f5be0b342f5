"""
Reflection flow for tasks placed in the low-value quadrants.

A reflection asks the user to justify keeping a q3/q4 task, sends the
justification to the analyzer once, and records the outcome on the task.
"""

from __future__ import annotations

import logging
from typing import Optional

from gsdapp.analysis import TaskAnalyzer
from gsdapp.db import DbClient
from gsdapp.tasks import get_task_or_raise
from shared.types import Task, TaskReflection, now_iso

logger = logging.getLogger(__name__)


def needs_reflection(task: Task) -> bool:
    """A flagged task the user has not yet justified in their own words."""
    return bool(task.needs_reflection) and (
        task.reflection is None or task.reflection.content is None
    )


def submit_reflection(
    db: DbClient,
    analyzer: TaskAnalyzer,
    user_id: str,
    task_id: str,
    justification: str,
    goal: Optional[str] = None,
    priority: Optional[str] = None,
) -> Task:
    task = get_task_or_raise(db, user_id, task_id)
    justification = (justification or "").strip()
    if not justification:
        raise ValueError("Justification cannot be empty")

    analysis = analyzer.analyze_reflection(
        task.text, justification, goal, priority, task.quadrant
    )
    final_quadrant = analysis.suggested_quadrant or task.quadrant
    reflection = TaskReflection(
        justification=justification,
        ai_analysis=analysis.analysis,
        suggested_quadrant=analysis.suggested_quadrant,
        final_quadrant=final_quadrant,
        feedback=analysis.suggestion,
        content=justification,
        reflected_at=now_iso(),
    )
    logger.info(
        "Reflection for task %s: %s -> %s", task_id, task.quadrant, final_quadrant
    )
    return db.update_task(
        user_id,
        task_id,
        {
            "reflection": reflection,
            "quadrant": final_quadrant,
            "needs_reflection": False,
        },
    )
