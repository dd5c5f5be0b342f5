"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import re
from typing import Optional

from fastapi import Header, HTTPException

from gsdapp.analysis import TaskAnalyzer
from gsdapp.config import get_settings
from gsdapp.db import DbClient, InMemoryDbClient, SqlDbClient
from gsdapp.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from models import api_config

USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,128}$")

_db_client: DbClient | None = None
_queue_client: JobQueue | None = None
_analyzer: TaskAnalyzer | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so records persist across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for dispatching analysis jobs to workers.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_analyzer() -> TaskAnalyzer:
    global _analyzer
    if _analyzer:
        return _analyzer

    settings = get_settings()
    if settings.gemini_api_key:
        api_config.DEFAULT_API_KEY = settings.gemini_api_key
    _analyzer = TaskAnalyzer(
        api_key=settings.gemini_api_key or api_config.DEFAULT_API_KEY,
        model=settings.gemini_model,
    )
    return _analyzer


def get_current_user(x_user_id: Optional[str] = Header(None)) -> str:
    """Identify the caller from the header set by the upstream auth proxy."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not USER_ID_PATTERN.match(x_user_id):
        raise HTTPException(status_code=401, detail="Invalid user id")
    return x_user_id
