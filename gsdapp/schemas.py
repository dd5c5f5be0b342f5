"""
Pydantic schemas for the GSDapp HTTP API.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from shared.types import GoalStatus, Quadrant, TaskStatus, TaskType, Theme, Trend


class TaskCreateRequest(BaseModel):
    text: str = Field(..., max_length=1000)
    quadrant: Quadrant = Quadrant.Q4
    task_type: TaskType = TaskType.PERSONAL
    description: Optional[str] = Field(None, max_length=5000)
    # Queue background AI categorization; the task starts in q4.
    analyze: bool = False


class TaskCreateResponse(BaseModel):
    task: dict
    job_id: Optional[str] = None


class TaskUpdateRequest(BaseModel):
    text: Optional[str] = Field(None, max_length=1000)
    description: Optional[str] = Field(None, max_length=5000)
    quadrant: Optional[Quadrant] = None
    task_type: Optional[TaskType] = None
    status: Optional[TaskStatus] = None
    needs_reflection: Optional[bool] = None


class MoveTaskRequest(BaseModel):
    quadrant: Quadrant


class ReorderTasksRequest(BaseModel):
    quadrant: Quadrant
    source_index: int
    destination_index: int


class ReorderTasksResponse(BaseModel):
    updated: int


class ReflectionRequest(BaseModel):
    justification: str = Field(..., max_length=5000)


class JobStatusResponse(BaseModel):
    job_id: str
    task_id: str
    status: str
    attempts: int
    error: Optional[str] = None


class IdeaCreateRequest(BaseModel):
    text: str = Field(..., max_length=1000)
    task_type: TaskType = TaskType.IDEA
    connected_to_priority: bool = False


class IdeaUpdateRequest(BaseModel):
    text: Optional[str] = Field(None, max_length=1000)
    task_type: Optional[TaskType] = None
    connected_to_priority: Optional[bool] = None


class ConvertIdeaRequest(BaseModel):
    quadrant: Quadrant = Quadrant.Q4


class GoalCreateRequest(BaseModel):
    title: str = Field(..., max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    status: GoalStatus = GoalStatus.ACTIVE


class GoalUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    status: Optional[GoalStatus] = None


class TaskSettingsPayload(BaseModel):
    end_of_day_time: Optional[str] = Field(
        None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$"
    )
    auto_archive_delay: Optional[float] = Field(None, ge=0, le=365)
    grace_period: Optional[float] = Field(None, ge=0)
    retain_recurring_tasks: Optional[bool] = None


class PreferencesRequest(BaseModel):
    goal: Optional[str] = Field(None, max_length=1000)
    priority: Optional[str] = Field(None, max_length=1000)
    theme: Optional[Theme] = None
    show_completed_tasks: Optional[bool] = None
    auto_analyze: Optional[bool] = None
    sync_api_key: Optional[bool] = None
    api_key: Optional[str] = None
    license_key: Optional[str] = None
    task_settings: Optional[TaskSettingsPayload] = None


class ProfileRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=320)
    theme: Optional[Theme] = None
    personal_context: Optional[str] = Field(None, max_length=10000)
    license_key: Optional[str] = None


class QuadrantMetricsPayload(BaseModel):
    total: int = 0
    completed: int = 0
    completion_rate: float = 0.0


class ScorecardMetricsPayload(BaseModel):
    date: str
    total_tasks: int
    completed_tasks: int
    completion_rate: float
    quadrant_metrics: Dict[str, QuadrantMetricsPayload]
    high_value_completion_rate: float
    priority_alignment_score: float = Field(..., ge=0, le=10)


class ScorecardTrendsPayload(BaseModel):
    completion_rate_trend: Trend = Trend.STABLE
    high_value_completion_trend: Trend = Trend.STABLE
    priority_alignment_trend: Trend = Trend.STABLE


class ScorecardInsightsPayload(BaseModel):
    analysis: str
    suggestions: List[str] = Field(default_factory=list)


class ScorecardCreateRequest(BaseModel):
    metrics: ScorecardMetricsPayload
    trends: ScorecardTrendsPayload = Field(default_factory=ScorecardTrendsPayload)
    insights: ScorecardInsightsPayload
    notes: Optional[str] = Field(None, max_length=5000)


class ScorecardUpdateRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=5000)
    insights: Optional[ScorecardInsightsPayload] = None


class SubscriptionResponse(BaseModel):
    subscription: Optional[dict] = None
    access_level: str
    features: dict


class CategorizeRequest(BaseModel):
    task: str = Field(..., max_length=1000)
    goal: Optional[str] = None
    priority: Optional[str] = None


class CategorizeResponse(BaseModel):
    category: Quadrant
    reasoning: str
    task_type: Optional[TaskType] = None
    alignment_score: Optional[float] = None
    urgency_score: Optional[float] = None
    importance_score: Optional[float] = None


class AnalyzeReflectionRequest(BaseModel):
    task: str = Field(..., max_length=1000)
    justification: str = Field(..., max_length=5000)
    current_quadrant: Quadrant
    goal: Optional[str] = None
    priority: Optional[str] = None


class GenerateScorecardRequest(BaseModel):
    goal: Optional[str] = None
    priority: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=5000)


class PersonalContextRequest(BaseModel):
    personal_context: str = Field(..., max_length=10000)


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage]
    user_context: Optional[str] = None
