"""
HTTP routes for tasks, ideas, goals, settings, scorecards and exports.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from gsdapp import export, preferences, tasks
from gsdapp.analysis import TaskAnalyzer
from gsdapp.db import DbClient, new_id
from gsdapp.dependencies import (
    get_analyzer,
    get_current_user,
    get_db_client,
    get_queue_client,
)
from gsdapp.queue import JobQueue
from gsdapp.reflection import submit_reflection
from gsdapp.schemas import (
    ConvertIdeaRequest,
    GoalCreateRequest,
    GoalUpdateRequest,
    IdeaCreateRequest,
    IdeaUpdateRequest,
    JobStatusResponse,
    MoveTaskRequest,
    PreferencesRequest,
    ProfileRequest,
    ReflectionRequest,
    ReorderTasksRequest,
    ReorderTasksResponse,
    ScorecardCreateRequest,
    ScorecardUpdateRequest,
    SubscriptionResponse,
    TaskCreateRequest,
    TaskCreateResponse,
    TaskUpdateRequest,
)
from gsdapp.subscriptions import access_level_for_user, get_tier_features
from shared.types import (
    Goal,
    GoalStatus,
    Scorecard,
    ScorecardInsights,
    now_iso,
    record_from_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# Tasks


@router.get("/tasks")
def list_tasks(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return [task.as_dict() for task in db.list_tasks(user_id)]


@router.post("/tasks", response_model=TaskCreateResponse, status_code=201)
def create_task(
    payload: TaskCreateRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    """
    Create a task. With ``analyze`` set the task is stored in q4 and a
    background job categorizes it.
    """
    task = tasks.create_task(
        db,
        user_id,
        tasks.NewTask(
            text=payload.text,
            quadrant=payload.quadrant,
            task_type=payload.task_type,
            description=payload.description,
        ),
    )
    job_id = None
    if payload.analyze:
        job = db.create_analysis_job(user_id, task.id)
        queue.enqueue(job.job_id)
        job_id = job.job_id
    return TaskCreateResponse(task=task.as_dict(), job_id=job_id)


@router.post("/tasks/reorder", response_model=ReorderTasksResponse)
def reorder_tasks(
    payload: ReorderTasksRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updated = tasks.reorder_tasks(
        db,
        user_id,
        payload.quadrant,
        payload.source_index,
        payload.destination_index,
    )
    return ReorderTasksResponse(updated=updated)


@router.get("/tasks/{task_id}")
def get_task(
    task_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return tasks.get_task_or_raise(db, user_id, task_id).as_dict()


@router.patch("/tasks/{task_id}")
def update_task(
    task_id: str,
    payload: TaskUpdateRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return tasks.update_task(
        db, user_id, task_id, payload.model_dump(exclude_none=True)
    ).as_dict()


@router.delete("/tasks/{task_id}", status_code=204)
def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    tasks.delete_task(db, user_id, task_id)
    return Response(status_code=204)


@router.post("/tasks/{task_id}/toggle")
def toggle_task(
    task_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return tasks.toggle_task(db, user_id, task_id).as_dict()


@router.post("/tasks/{task_id}/move")
def move_task(
    task_id: str,
    payload: MoveTaskRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return tasks.move_task(db, user_id, task_id, payload.quadrant).as_dict()


@router.post("/tasks/{task_id}/reflection")
def reflect_on_task(
    task_id: str,
    payload: ReflectionRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    analyzer: TaskAnalyzer = Depends(get_analyzer),
):
    prefs = preferences.load_preferences(db, user_id)
    return submit_reflection(
        db,
        analyzer,
        user_id,
        task_id,
        payload.justification,
        goal=prefs.goal,
        priority=prefs.priority,
    ).as_dict()


@router.get("/tasks/{task_id}/reasoning")
def get_task_reasoning(
    task_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    log = db.get_reasoning_log(user_id, task_id)
    if log is None:
        raise HTTPException(status_code=404, detail="Reasoning log not found")
    return log.as_dict()


@router.get("/analysis-jobs/{job_id}", response_model=JobStatusResponse)
def analysis_job_status(
    job_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    job = db.get_analysis_job(job_id)
    if not job or job.user_id != user_id:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(
        job_id=job.job_id,
        task_id=job.task_id,
        status=job.status.value,
        attempts=job.attempts,
        error=job.error,
    )


# Ideas


@router.get("/ideas")
def list_ideas(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return [idea.as_dict() for idea in db.list_ideas(user_id)]


@router.post("/ideas", status_code=201)
def create_idea(
    payload: IdeaCreateRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return tasks.create_idea(
        db, user_id, payload.text, payload.task_type, payload.connected_to_priority
    ).as_dict()


@router.patch("/ideas/{idea_id}")
def update_idea(
    idea_id: str,
    payload: IdeaUpdateRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updates = payload.model_dump(exclude_none=True)
    if "text" in updates:
        updates["text"] = updates["text"].strip()
        if not updates["text"]:
            raise ValueError("Idea text cannot be empty")
    idea = db.update_idea(user_id, idea_id, updates)
    if idea is None:
        raise HTTPException(status_code=404, detail="Idea not found")
    return idea.as_dict()


@router.delete("/ideas/{idea_id}", status_code=204)
def delete_idea(
    idea_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if db.delete_idea(user_id, idea_id) is None:
        raise HTTPException(status_code=404, detail="Idea not found")
    return Response(status_code=204)


@router.post("/ideas/{idea_id}/convert", status_code=201)
def convert_idea(
    idea_id: str,
    payload: ConvertIdeaRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return tasks.convert_idea_to_task(db, user_id, idea_id, payload.quadrant).as_dict()


# Goals


@router.get("/goals")
def list_goals(
    status: Optional[GoalStatus] = Query(None),
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return [goal.as_dict() for goal in db.list_goals(user_id, status)]


@router.post("/goals", status_code=201)
def create_goal(
    payload: GoalCreateRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    title = payload.title.strip()
    if not title:
        raise ValueError("Goal title cannot be empty")
    now = now_iso()
    goal = Goal(
        id=new_id(),
        user_id=user_id,
        title=title,
        description=payload.description.strip() if payload.description else None,
        status=payload.status,
        created_at=now,
        updated_at=now,
    )
    return db.add_goal(goal).as_dict()


@router.get("/goals/{goal_id}")
def get_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    goal = db.get_goal(user_id, goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal.as_dict()


@router.patch("/goals/{goal_id}")
def update_goal(
    goal_id: str,
    payload: GoalUpdateRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updates = payload.model_dump(exclude_none=True)
    if "title" in updates:
        updates["title"] = updates["title"].strip()
        if not updates["title"]:
            raise ValueError("Goal title cannot be empty")
    goal = db.update_goal(user_id, goal_id, updates)
    if goal is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal.as_dict()


@router.delete("/goals/{goal_id}", status_code=204)
def delete_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if db.delete_goal(user_id, goal_id) is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    return Response(status_code=204)


# Preferences and profile


@router.get("/preferences")
def get_preferences(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return preferences.load_preferences(db, user_id).as_dict()


@router.put("/preferences")
def save_preferences(
    payload: PreferencesRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return preferences.save_preferences(
        db, user_id, payload.model_dump(exclude_none=True)
    ).as_dict()


@router.delete("/preferences", status_code=204)
def delete_preferences(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    db.delete_preferences(user_id)
    return Response(status_code=204)


@router.post("/preferences/onboarding")
def complete_onboarding(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return preferences.complete_onboarding(db, user_id).as_dict()


@router.get("/profile")
def get_profile(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return preferences.load_profile(db, user_id).as_dict()


@router.put("/profile")
def save_profile(
    payload: ProfileRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return preferences.save_profile(
        db, user_id, payload.model_dump(exclude_none=True)
    ).as_dict()


# Scorecards


@router.get("/scorecards")
def list_scorecards(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return [card.as_dict() for card in db.list_scorecards(user_id)]


@router.post("/scorecards", status_code=201)
def create_scorecard(
    payload: ScorecardCreateRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    data = payload.model_dump()
    data.update(id=new_id(), user_id=user_id, created_at=now_iso())
    return db.add_scorecard(record_from_dict(Scorecard, data)).as_dict()


@router.get("/scorecards/{scorecard_id}")
def get_scorecard(
    scorecard_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    card = db.get_scorecard(user_id, scorecard_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Scorecard not found")
    return card.as_dict()


@router.patch("/scorecards/{scorecard_id}")
def update_scorecard(
    scorecard_id: str,
    payload: ScorecardUpdateRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    existing = db.get_scorecard(user_id, scorecard_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Scorecard not found")
    updates = {}
    if payload.notes is not None:
        updates["notes"] = payload.notes
    if payload.insights is not None:
        updates["insights"] = record_from_dict(
            ScorecardInsights, payload.insights.model_dump()
        )
    return db.update_scorecard(user_id, scorecard_id, updates).as_dict()


@router.delete("/scorecards/{scorecard_id}", status_code=204)
def delete_scorecard(
    scorecard_id: str,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if db.delete_scorecard(user_id, scorecard_id) is None:
        raise HTTPException(status_code=404, detail="Scorecard not found")
    return Response(status_code=204)


# Subscription


@router.get("/subscription", response_model=SubscriptionResponse)
def get_subscription(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    subscription = db.get_subscription(user_id)
    level = access_level_for_user(db, user_id)
    return SubscriptionResponse(
        subscription=subscription.as_dict() if subscription else None,
        access_level=level.value,
        features=get_tier_features(level).as_dict(),
    )


# Exports


@router.get("/export/tasks.csv")
def export_tasks(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return Response(
        content=export.tasks_to_csv(db.list_tasks(user_id)),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="my-tasks.csv"'},
    )


@router.get("/export/goals.csv")
def export_goals(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return Response(
        content=export.goals_to_csv(db.list_goals(user_id), db.get_preferences(user_id)),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="my-goals.csv"'},
    )
