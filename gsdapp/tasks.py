"""
Task operations layered over the DbClient.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from gsdapp.analysis import CategorizeResult
from gsdapp.db import DbClient, NotFoundError, new_id
from gsdapp.subscriptions import TierLimitError, check_limit
from shared.types import (
    Idea,
    Quadrant,
    ReasoningLog,
    Task,
    TaskReflection,
    TaskStatus,
    TaskType,
    needs_reflection_for,
    now_iso,
)

logger = logging.getLogger(__name__)


@dataclass
class NewTask:
    text: str
    quadrant: Quadrant = Quadrant.Q4
    task_type: TaskType = TaskType.PERSONAL
    status: TaskStatus = TaskStatus.ACTIVE
    needs_reflection: bool = False
    description: Optional[str] = None
    order: Optional[float] = None


def next_order(db: DbClient, user_id: str, quadrant: Quadrant) -> float:
    existing = db.list_tasks(user_id, quadrant)
    if not existing:
        return 0
    return max(t.order or 0 for t in existing) + 1


def create_task(db: DbClient, user_id: str, new_task: NewTask) -> Task:
    text = (new_task.text or "").strip()
    if not text:
        raise ValueError("Task text cannot be empty")
    check_limit(db, user_id, "tasks")

    now = now_iso()
    order = new_task.order
    if order is None:
        order = next_order(db, user_id, new_task.quadrant)
    task = Task(
        id=new_id(),
        user_id=user_id,
        text=text,
        quadrant=new_task.quadrant,
        task_type=new_task.task_type,
        status=new_task.status,
        needs_reflection=new_task.needs_reflection,
        description=new_task.description.strip() if new_task.description else None,
        completed_at=now if new_task.status == TaskStatus.COMPLETED else None,
        order=order,
        created_at=now,
        updated_at=now,
    )
    return db.add_task(task)


def get_task_or_raise(db: DbClient, user_id: str, task_id: str) -> Task:
    task = db.get_task(user_id, task_id)
    if task is None:
        raise NotFoundError(f"Task not found with ID: {task_id}")
    return task


def update_task(
    db: DbClient, user_id: str, task_id: str, updates: Dict[str, Any]
) -> Task:
    clean = {k: v for k, v in updates.items() if v is not None}
    for key in ("text", "description"):
        if isinstance(clean.get(key), str):
            clean[key] = clean[key].strip()
    if "text" in clean and not clean["text"]:
        raise ValueError("Task text cannot be empty")
    if clean.get("status") == TaskStatus.COMPLETED and "completed_at" not in clean:
        clean["completed_at"] = now_iso()
    elif clean.get("status") == TaskStatus.ACTIVE:
        clean["completed_at"] = None
    if "quadrant" in clean and "needs_reflection" not in clean:
        clean["needs_reflection"] = needs_reflection_for(clean["quadrant"])
    task = db.update_task(user_id, task_id, clean)
    if task is None:
        raise NotFoundError(f"Task not found with ID: {task_id}")
    return task


def delete_task(db: DbClient, user_id: str, task_id: str) -> Task:
    task = db.delete_task(user_id, task_id)
    if task is None:
        raise NotFoundError(f"Task not found with ID: {task_id}")
    db.delete_reasoning_log(user_id, task_id)
    return task


def toggle_task(db: DbClient, user_id: str, task_id: str) -> Task:
    task = get_task_or_raise(db, user_id, task_id)
    if task.status == TaskStatus.COMPLETED:
        updates = {"status": TaskStatus.ACTIVE, "completed_at": None}
    else:
        updates = {"status": TaskStatus.COMPLETED, "completed_at": now_iso()}
    # Bypass update_task so completed_at can be cleared.
    updated = db.update_task(user_id, task_id, updates)
    if task.quadrant == Quadrant.Q1 and updated.status == TaskStatus.COMPLETED:
        logger.info("Q1 task %s completed", task_id)
    return updated


def move_task(db: DbClient, user_id: str, task_id: str, quadrant: Quadrant) -> Task:
    get_task_or_raise(db, user_id, task_id)
    return db.update_task(
        user_id,
        task_id,
        {"quadrant": quadrant, "needs_reflection": needs_reflection_for(quadrant)},
    )


def reorder_tasks(
    db: DbClient,
    user_id: str,
    quadrant: Quadrant,
    source_index: int,
    destination_index: int,
) -> int:
    """
    Move the task at ``source_index`` to ``destination_index`` within a
    quadrant. Only tasks between the two positions are rewritten.

    Returns the number of tasks whose order was updated.
    """
    if source_index < 0 or destination_index < 0:
        raise ValueError(
            f"Invalid indices: source ({source_index}) and destination "
            f"({destination_index}) must be non-negative"
        )
    if source_index == destination_index:
        return 0

    tasks = sorted(db.list_tasks(user_id, quadrant), key=lambda t: t.order or 0)
    if source_index >= len(tasks) or destination_index >= len(tasks):
        raise ValueError(
            f"Invalid indices: source ({source_index}) and destination "
            f"({destination_index}) must be less than the number of tasks ({len(tasks)})"
        )

    moved = tasks.pop(source_index)
    tasks.insert(destination_index, moved)

    low = min(source_index, destination_index)
    high = max(source_index, destination_index)
    for position in range(low, high + 1):
        db.update_task(user_id, tasks[position].id, {"order": position})
    return high - low + 1


def apply_categorization(
    db: DbClient, user_id: str, task: Task, result: CategorizeResult
) -> Task:
    """Store an AI categorization on the task and keep its reasoning log."""
    now = now_iso()
    task_type = result.task_type or task.task_type or TaskType.PERSONAL
    updates: Dict[str, Any] = {
        "quadrant": result.category,
        "task_type": task_type,
        "needs_reflection": needs_reflection_for(result.category),
    }
    if result.reasoning:
        updates["reflection"] = TaskReflection(
            justification=result.reasoning,
            ai_analysis=json.dumps(result.as_dict()),
            suggested_quadrant=result.category,
            final_quadrant=result.category,
            reflected_at=now,
        )
        db.save_reasoning_log(
            user_id,
            ReasoningLog(
                task_id=task.id,
                task_text=task.text,
                timestamp=int(time.time() * 1000),
                suggested_quadrant=result.category,
                task_type=task_type,
                reasoning=result.reasoning,
                alignment_score=result.alignment_score,
                urgency_score=result.urgency_score,
                importance_score=result.importance_score,
            ),
        )
    updated = db.update_task(user_id, task.id, updates)
    if updated is None:
        raise NotFoundError(f"Task not found with ID: {task.id}")
    return updated


def create_idea(
    db: DbClient,
    user_id: str,
    text: str,
    task_type: TaskType,
    connected_to_priority: bool,
) -> Idea:
    text = (text or "").strip()
    if not text:
        raise ValueError("Idea text cannot be empty")
    check_limit(db, user_id, "ideas")
    now = now_iso()
    return db.add_idea(
        Idea(
            id=new_id(),
            user_id=user_id,
            text=text,
            task_type=task_type,
            connected_to_priority=connected_to_priority,
            created_at=now,
            updated_at=now,
        )
    )


def convert_idea_to_task(
    db: DbClient, user_id: str, idea_id: str, quadrant: Quadrant
) -> Task:
    idea = db.get_idea(user_id, idea_id)
    if idea is None:
        raise NotFoundError("Idea not found or unauthorized")
    task_type = TaskType.PERSONAL if idea.task_type == TaskType.IDEA else idea.task_type
    task = create_task(
        db,
        user_id,
        NewTask(
            text=idea.text,
            quadrant=quadrant,
            task_type=task_type,
            needs_reflection=needs_reflection_for(quadrant),
        ),
    )
    db.delete_idea(user_id, idea_id)
    return task


__all__ = [
    "NewTask",
    "TierLimitError",
    "apply_categorization",
    "convert_idea_to_task",
    "create_idea",
    "create_task",
    "delete_task",
    "get_task_or_raise",
    "move_task",
    "next_order",
    "reorder_tasks",
    "toggle_task",
    "update_task",
]
