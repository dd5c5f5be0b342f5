"""
HTTP routes backed by the text-analysis provider.
"""

from __future__ import annotations

import json
import logging
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from gsdapp import preferences
from gsdapp.analysis import AnalysisError, TaskAnalyzer
from gsdapp.config import get_settings
from gsdapp.db import DbClient
from gsdapp.dependencies import get_analyzer, get_current_user, get_db_client
from gsdapp.scorecard import generate_scorecard
from gsdapp.schemas import (
    AnalyzeReflectionRequest,
    CategorizeRequest,
    CategorizeResponse,
    ChatRequest,
    GenerateScorecardRequest,
    PersonalContextRequest,
)
from gsdapp.subscriptions import access_level_for_user, get_tier_features

logger = logging.getLogger(__name__)

router = APIRouter()


def get_user_analyzer(
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    analyzer: TaskAnalyzer = Depends(get_analyzer),
) -> TaskAnalyzer:
    """
    The analyzer for this caller: checks the AI tier when enforced and
    prefers the user's own synced provider key.
    """
    if get_settings().enforce_ai_tier:
        level = access_level_for_user(db, user_id)
        if not get_tier_features(level).ai_enabled:
            raise HTTPException(
                status_code=403, detail="AI features require a Pro subscription"
            )
    prefs = db.get_preferences(user_id)
    if prefs and prefs.sync_api_key and prefs.api_key:
        return TaskAnalyzer(api_key=prefs.api_key, model=analyzer.model)
    return analyzer


@router.post("/categorize", response_model=CategorizeResponse)
def categorize(
    payload: CategorizeRequest,
    analyzer: TaskAnalyzer = Depends(get_user_analyzer),
):
    task = payload.task.strip()
    if not task:
        raise HTTPException(status_code=400, detail="Task is required")
    result = analyzer.categorize(task, payload.goal, payload.priority)
    return CategorizeResponse(**result.as_dict())


@router.post("/analyze-reflection")
def analyze_reflection(
    payload: AnalyzeReflectionRequest,
    analyzer: TaskAnalyzer = Depends(get_user_analyzer),
):
    if not payload.task.strip() or not payload.justification.strip():
        raise HTTPException(
            status_code=400, detail="Task and justification are required"
        )
    result = analyzer.analyze_reflection(
        payload.task,
        payload.justification,
        payload.goal,
        payload.priority,
        payload.current_quadrant,
    )
    return result.model_dump()


@router.post("/generate-scorecard", status_code=201)
def create_daily_scorecard(
    payload: GenerateScorecardRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    analyzer: TaskAnalyzer = Depends(get_user_analyzer),
):
    prefs = preferences.load_preferences(db, user_id)
    scorecard = generate_scorecard(
        db,
        analyzer,
        user_id,
        goal=payload.goal or prefs.goal,
        priority=payload.priority or prefs.priority,
        notes=payload.notes,
    )
    return scorecard.as_dict()


@router.post("/analyze-personal-context")
def analyze_personal_context(
    payload: PersonalContextRequest,
    analyzer: TaskAnalyzer = Depends(get_user_analyzer),
):
    text = payload.personal_context.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Personal context is required")
    return analyzer.analyze_personal_context(text).model_dump()


def _sse(payload) -> str:
    return f"data: {payload}\n\n"


@router.post("/chat")
def chat(
    payload: ChatRequest,
    user_id: str = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    analyzer: TaskAnalyzer = Depends(get_user_analyzer),
):
    """
    Stream an assistant reply as server-sent events. Each chunk is
    ``data: {"choices": [{"delta": {"content": ...}}]}`` and the stream
    ends with ``data: [DONE]``.
    """
    if not payload.messages:
        raise HTTPException(status_code=400, detail="Messages array is required")
    messages = []
    for message in payload.messages:
        if not message.content.strip():
            raise HTTPException(
                status_code=400, detail="Message content must be a non-empty string"
            )
        if message.role != "system":
            messages.append({"role": message.role, "content": message.content})
    if not analyzer.is_configured:
        raise AnalysisError("AI provider is not configured", status_code=503)

    tasks = db.list_tasks(user_id)
    logger.info(
        "Chat request from %s: %d messages, %d tasks",
        user_id,
        len(messages),
        len(tasks),
    )

    def event_stream() -> Iterator[str]:
        try:
            for text in analyzer.stream_chat(messages, payload.user_context, tasks):
                yield _sse(json.dumps({"choices": [{"delta": {"content": text}}]}))
        except AnalysisError as e:
            # Headers are already sent; report the failure inside the stream.
            yield _sse(json.dumps({"error": e.message}))
        yield _sse("[DONE]")

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
