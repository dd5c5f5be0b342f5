"""
AI-assisted task analysis on top of the Gemini helpers.

Each operation is a single provider call. Failures surface as
``AnalysisError`` carrying the HTTP status the API should answer with,
except scorecard insights which fall back to canned advice.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass
from typing import Iterable, Iterator, Optional

from google.genai import errors as genai_errors
from pydantic import BaseModel, Field

from models import gemini, prompts
from shared.types import (
    Quadrant,
    ScorecardInsights,
    ScorecardMetrics,
    Task,
    TaskStatus,
    TaskType,
)

logger = logging.getLogger(__name__)

FALLBACK_INSIGHTS = ScorecardInsights(
    analysis="Unable to analyze your productivity today. Please try again later.",
    suggestions=[
        "Focus on high-priority tasks tomorrow",
        "Try to complete more Q1 and Q2 tasks",
        "Review your goals and priorities to ensure alignment",
    ],
)

INCLUDE_COMPLETED_PHRASES = (
    "show completed",
    "show all",
    "include completed",
    "archived",
)

_QUADRANT_PATTERN = re.compile(r"q[1-4]")
_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$")


class AnalysisError(Exception):
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class CategorizeResult:
    category: Quadrant
    reasoning: str
    task_type: Optional[TaskType] = None
    alignment_score: Optional[float] = None
    urgency_score: Optional[float] = None
    importance_score: Optional[float] = None

    def as_dict(self) -> dict:
        return asdict(self)


class ReflectionAnalysis(BaseModel):
    analysis: str
    suggested_quadrant: Quadrant
    suggestion: Optional[str] = None


class InsightsPayload(BaseModel):
    analysis: str
    suggestions: list[str] = Field(default_factory=list)


class QuadrantGuidance(BaseModel):
    summary: str = ""
    bullet_points: list[str] = Field(default_factory=list)


class PersonalContextAnalysis(BaseModel):
    q1: QuadrantGuidance
    q2: QuadrantGuidance
    q3: QuadrantGuidance
    q4: QuadrantGuidance


def _score(value) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def parse_categorization(raw: Optional[str]) -> CategorizeResult:
    """
    Read the model's JSON answer. Anything unusable lands in q4; a q1-q4
    token in otherwise invalid output is still honored.
    """
    result = CategorizeResult(category=Quadrant.Q4, reasoning="No reasoning provided.")
    if not raw or not raw.strip():
        return result
    text = _FENCE_PATTERN.sub("", raw.strip())
    try:
        parsed = json.loads(text)
    except ValueError:
        match = _QUADRANT_PATTERN.search(text)
        if match:
            result.category = Quadrant(match.group(0))
        result.reasoning = "AI did not return valid JSON. Raw: " + raw
        return result
    if not isinstance(parsed, dict):
        return result

    if parsed.get("category") in {q.value for q in Quadrant}:
        result.category = Quadrant(parsed["category"])
    if isinstance(parsed.get("reasoning"), str) and parsed["reasoning"]:
        result.reasoning = parsed["reasoning"]
    if parsed.get("taskType") in (TaskType.PERSONAL, TaskType.WORK, TaskType.BUSINESS):
        result.task_type = TaskType(parsed["taskType"])
    result.alignment_score = _score(parsed.get("alignmentScore"))
    result.urgency_score = _score(parsed.get("urgencyScore"))
    result.importance_score = _score(parsed.get("importanceScore"))
    return result


def should_include_completed(user_context: Optional[str]) -> bool:
    lowered = (user_context or "").lower()
    return any(phrase in lowered for phrase in INCLUDE_COMPLETED_PHRASES)


def format_chat_tasks(tasks: Iterable[Task], include_completed: bool) -> str:
    lines = [
        f"TASK_{task.id}|{task.text}|{task.status}|"
        f"{task.quadrant or 'unassigned'}|{task.task_type or 'unspecified'}"
        for task in tasks
        if include_completed or task.status == TaskStatus.ACTIVE
    ]
    return "\n".join(lines) or "NO_TASKS"


def build_chat_system_prompt(
    user_context: Optional[str], tasks: Iterable[Task]
) -> str:
    include_completed = should_include_completed(user_context)
    return prompts.make_chat_system_prompt(
        format_chat_tasks(tasks, include_completed), user_context, include_completed
    )


def _task_line(task: Task) -> str:
    mark = "✓" if task.status == TaskStatus.COMPLETED else "○"
    return f"- {mark} [{str(task.quadrant).upper()}] {task.text}"


class TaskAnalyzer:
    """Typed front-end to the text-analysis provider."""

    def __init__(self, api_key: Optional[str], model: Optional[str] = None):
        self.api_key = api_key
        self.model = model

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise AnalysisError("AI provider is not configured", status_code=503)

    def _call(self, fn, *args, **kwargs):
        self._require_configured()
        try:
            return fn(*args, model=self.model, api_key=self.api_key, **kwargs)
        except genai_errors.APIError as e:
            logger.error("AI provider error: %s", e)
            if e.code == 429:
                raise AnalysisError(
                    "Too many requests. Please try again later.", status_code=429
                ) from e
            raise AnalysisError("AI provider request failed") from e
        except gemini.GeminiInvalidResponseException as e:
            raise AnalysisError("AI provider returned an empty response") from e

    def categorize(
        self, task: str, goal: Optional[str] = None, priority: Optional[str] = None
    ) -> CategorizeResult:
        prompt = prompts.make_categorize_prompt(task, goal, priority)
        raw = self._call(
            gemini.call_predict, prompt, temperature=0.3, max_output_tokens=300
        )
        return parse_categorization(raw)

    def analyze_reflection(
        self,
        task: str,
        justification: str,
        goal: Optional[str],
        priority: Optional[str],
        current_quadrant: Quadrant,
    ) -> ReflectionAnalysis:
        prompt = prompts.make_reflection_prompt(
            task, justification, goal, priority, str(current_quadrant)
        )
        result = self._call(
            gemini.call_predict_with_schema,
            prompt,
            ReflectionAnalysis,
            temperature=0.3,
        )
        if result is None:
            raise AnalysisError("Failed to analyze reflection")
        return result

    def generate_insights(
        self,
        metrics: ScorecardMetrics,
        tasks: Iterable[Task],
        goal: Optional[str],
        priority: Optional[str],
    ) -> ScorecardInsights:
        prompt = prompts.make_insights_prompt(
            asdict(metrics), [_task_line(t) for t in tasks], goal, priority
        )
        try:
            result = self._call(
                gemini.call_predict_with_schema,
                prompt,
                InsightsPayload,
                temperature=0.7,
            )
        except AnalysisError as e:
            logger.error("Error generating insights: %s", e.message)
            return FALLBACK_INSIGHTS
        if result is None:
            return FALLBACK_INSIGHTS
        return ScorecardInsights(
            analysis=result.analysis or "Analysis not available",
            suggestions=list(result.suggestions),
        )

    def analyze_personal_context(self, personal_context: str) -> PersonalContextAnalysis:
        prompt = prompts.make_personal_context_prompt(personal_context)
        result = self._call(
            gemini.call_predict_with_schema,
            prompt,
            PersonalContextAnalysis,
            temperature=0.7,
        )
        if result is None:
            raise AnalysisError("Failed to analyze personal context")
        return result

    def stream_chat(
        self,
        messages: list[dict],
        user_context: Optional[str],
        tasks: Iterable[Task],
    ) -> Iterator[str]:
        self._require_configured()
        system_prompt = build_chat_system_prompt(user_context, tasks)
        try:
            yield from gemini.stream_predict(
                messages,
                system_prompt,
                model=self.model,
                api_key=self.api_key,
            )
        except genai_errors.APIError as e:
            logger.error("Streaming error: %s", e)
            if e.code == 429:
                raise AnalysisError(
                    "Too many requests. Please try again later.", status_code=429
                ) from e
            raise AnalysisError("Failed to stream response. Please try again.") from e
