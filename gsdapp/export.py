"""CSV export of a user's tasks and goals."""

from __future__ import annotations

import csv
import io
from typing import Any, Iterable, Optional, Sequence

from shared.types import Goal, Task, UserPreferences

TASK_HEADERS = ["Id", "Text", "Quadrant", "Status", "CompletedAt"]
GOAL_HEADERS = ["Goal", "Priority", "Status", "LastModified"]


def _cell(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(value) for value in row])
    return buffer.getvalue()


def tasks_to_csv(tasks: Iterable[Task]) -> str:
    return to_csv(
        TASK_HEADERS,
        (
            (task.id, task.text, task.quadrant, task.status, task.completed_at)
            for task in tasks
        ),
    )


def goals_to_csv(goals: Iterable[Goal], prefs: Optional[UserPreferences]) -> str:
    """
    One row per goal, each carrying the user's current priority. A user
    with no goal records but a goal in their settings gets a single row.
    """
    priority = prefs.priority if prefs else None
    rows = [(g.title, priority, g.status, g.updated_at) for g in goals]
    if not rows and prefs is not None and prefs.goal:
        rows.append((prefs.goal, priority, "active", None))
    return to_csv(GOAL_HEADERS, rows)
