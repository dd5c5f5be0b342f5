import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from gsdapp.analysis import (
    AnalysisError,
    CategorizeResult,
    ReflectionAnalysis,
    TaskAnalyzer,
)
from gsdapp.app import create_app
from gsdapp.db import InMemoryDbClient, NotFoundError, new_id
from gsdapp.dependencies import get_analyzer, get_db_client
from shared.types import (
    Quadrant,
    ScorecardInsights,
    Subscription,
    SubscriptionStatus,
    SubscriptionTier,
    Task,
    TaskType,
    now_iso,
)

USER = {"X-User-Id": "user_1"}
OTHER_USER = {"X-User-Id": "user_2"}


def _fake_analyzer():
    analyzer = MagicMock()
    analyzer.is_configured = True
    analyzer.model = None
    return analyzer


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app()
        self.client = TestClient(self.app)
        self.db = get_db_client()
        if isinstance(self.db, InMemoryDbClient):
            self.db.reset()

    def tearDown(self):
        self.app.dependency_overrides.clear()

    def _create_task(self, text="Write report", headers=USER, **extra):
        response = self.client.post(
            "/api/tasks", json={"text": text, **extra}, headers=headers
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["task"]

    def test_only_domain_lookups_map_to_404(self):
        @self.app.get("/boom/{kind}")
        def boom(kind: str):
            if kind == "missing":
                raise NotFoundError("Widget not found")
            raise KeyError("internal")

        client = TestClient(self.app, raise_server_exceptions=False)
        missing = client.get("/boom/missing")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {"detail": "Widget not found"})
        self.assertEqual(client.get("/boom/bug").status_code, 500)

    def test_requires_user_header(self):
        self.assertEqual(self.client.get("/api/tasks").status_code, 401)
        response = self.client.get("/api/tasks", headers={"X-User-Id": "a b"})
        self.assertEqual(response.status_code, 401)

    def test_create_task_defaults(self):
        task = self._create_task("  Write report  ")
        self.assertEqual(task["text"], "Write report")
        self.assertEqual(task["quadrant"], "q4")
        self.assertEqual(task["task_type"], "personal")
        self.assertEqual(task["status"], "active")
        self.assertEqual(task["order"], 0)

        second = self._create_task("Another")
        self.assertEqual(second["order"], 1)

    def test_create_task_rejects_blank_text(self):
        response = self.client.post("/api/tasks", json={"text": "   "}, headers=USER)
        self.assertEqual(response.status_code, 400)

    def test_create_task_with_analysis_queues_job(self):
        response = self.client.post(
            "/api/tasks", json={"text": "Plan launch", "analyze": True}, headers=USER
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertIsNotNone(payload["job_id"])
        self.assertEqual(payload["task"]["quadrant"], "q4")

        status = self.client.get(
            f"/api/analysis-jobs/{payload['job_id']}", headers=USER
        )
        self.assertEqual(status.status_code, 200)
        self.assertEqual(status.json()["status"], "WAITING")
        self.assertEqual(status.json()["task_id"], payload["task"]["id"])

        other = self.client.get(
            f"/api/analysis-jobs/{payload['job_id']}", headers=OTHER_USER
        )
        self.assertEqual(other.status_code, 404)

    def test_tasks_are_scoped_to_user(self):
        task = self._create_task()
        response = self.client.get(f"/api/tasks/{task['id']}", headers=OTHER_USER)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.client.get("/api/tasks", headers=OTHER_USER).json(), [])

    def test_update_and_delete_task(self):
        task = self._create_task()
        response = self.client.patch(
            f"/api/tasks/{task['id']}",
            json={"text": "Write final report", "task_type": "work"},
            headers=USER,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["text"], "Write final report")
        self.assertEqual(response.json()["task_type"], "work")
        self.assertEqual(response.json()["created_at"], task["created_at"])

        deleted = self.client.delete(f"/api/tasks/{task['id']}", headers=USER)
        self.assertEqual(deleted.status_code, 204)
        missing = self.client.get(f"/api/tasks/{task['id']}", headers=USER)
        self.assertEqual(missing.status_code, 404)

    def test_toggle_task(self):
        task = self._create_task()
        done = self.client.post(f"/api/tasks/{task['id']}/toggle", headers=USER).json()
        self.assertEqual(done["status"], "completed")
        self.assertIsNotNone(done["completed_at"])

        reopened = self.client.post(
            f"/api/tasks/{task['id']}/toggle", headers=USER
        ).json()
        self.assertEqual(reopened["status"], "active")
        self.assertIsNone(reopened["completed_at"])

    def test_move_task_flags_reflection(self):
        task = self._create_task(quadrant="q1")
        moved = self.client.post(
            f"/api/tasks/{task['id']}/move", json={"quadrant": "q3"}, headers=USER
        ).json()
        self.assertEqual(moved["quadrant"], "q3")
        self.assertTrue(moved["needs_reflection"])

        back = self.client.post(
            f"/api/tasks/{task['id']}/move", json={"quadrant": "q2"}, headers=USER
        ).json()
        self.assertFalse(back["needs_reflection"])

    def test_reorder_tasks(self):
        ids = [self._create_task(f"Task {i}", quadrant="q2")["id"] for i in range(3)]
        response = self.client.post(
            "/api/tasks/reorder",
            json={"quadrant": "q2", "source_index": 0, "destination_index": 2},
            headers=USER,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["updated"], 3)

        listed = [t["id"] for t in self.client.get("/api/tasks", headers=USER).json()]
        self.assertEqual(listed, [ids[1], ids[2], ids[0]])

    def test_reorder_tasks_rejects_bad_indices(self):
        self._create_task(quadrant="q2")
        for source, destination in ((-1, 0), (0, 5)):
            response = self.client.post(
                "/api/tasks/reorder",
                json={
                    "quadrant": "q2",
                    "source_index": source,
                    "destination_index": destination,
                },
                headers=USER,
            )
            self.assertEqual(response.status_code, 400)

    def test_task_limit_for_free_tier(self):
        now = now_iso()
        for i in range(100):
            self.db.add_task(
                Task(
                    id=new_id(),
                    user_id="user_1",
                    text=f"Task {i}",
                    quadrant=Quadrant.Q4,
                    created_at=now,
                    updated_at=now,
                )
            )
        response = self.client.post("/api/tasks", json={"text": "One more"}, headers=USER)
        self.assertEqual(response.status_code, 403)

        self.db.upsert_subscription(
            Subscription(
                user_id="user_1",
                status=SubscriptionStatus.ACTIVE,
                tier=SubscriptionTier.PRO,
            )
        )
        response = self.client.post("/api/tasks", json={"text": "One more"}, headers=USER)
        self.assertEqual(response.status_code, 201)

    def test_preferences_cannot_grant_legacy_access(self):
        now = now_iso()
        for i in range(100):
            self.db.add_task(
                Task(
                    id=new_id(),
                    user_id="user_1",
                    text=f"Task {i}",
                    quadrant=Quadrant.Q4,
                    created_at=now,
                    updated_at=now,
                )
            )
        saved = self.client.put(
            "/api/preferences",
            json={"is_legacy_user": True, "has_completed_onboarding": True},
            headers=USER,
        )
        self.assertEqual(saved.status_code, 200)
        self.assertFalse(saved.json()["is_legacy_user"])
        self.assertFalse(saved.json()["has_completed_onboarding"])

        response = self.client.post("/api/tasks", json={"text": "One more"}, headers=USER)
        self.assertEqual(response.status_code, 403)
        subscription = self.client.get("/api/subscription", headers=USER).json()
        self.assertEqual(subscription["access_level"], "free")

    def test_reflection_flow(self):
        analyzer = _fake_analyzer()
        analyzer.analyze_reflection.return_value = ReflectionAnalysis(
            analysis="This supports your goal.",
            suggested_quadrant=Quadrant.Q2,
            suggestion="Schedule it for tomorrow.",
        )
        self.app.dependency_overrides[get_analyzer] = lambda: analyzer

        task = self._create_task(quadrant="q4")
        self.client.post(
            f"/api/tasks/{task['id']}/move", json={"quadrant": "q3"}, headers=USER
        )
        response = self.client.post(
            f"/api/tasks/{task['id']}/reflection",
            json={"justification": "It unblocks the launch"},
            headers=USER,
        )
        self.assertEqual(response.status_code, 200, response.text)
        payload = response.json()
        self.assertEqual(payload["quadrant"], "q2")
        self.assertFalse(payload["needs_reflection"])
        self.assertEqual(payload["reflection"]["final_quadrant"], "q2")
        self.assertEqual(payload["reflection"]["justification"], "It unblocks the launch")
        analyzer.analyze_reflection.assert_called_once()

    def test_reflection_failure_is_reported(self):
        analyzer = _fake_analyzer()
        analyzer.analyze_reflection.side_effect = AnalysisError("Failed to analyze")
        self.app.dependency_overrides[get_analyzer] = lambda: analyzer

        task = self._create_task(quadrant="q3")
        response = self.client.post(
            f"/api/tasks/{task['id']}/reflection",
            json={"justification": "Because"},
            headers=USER,
        )
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["detail"], "Failed to analyze")

    def test_reasoning_log_missing(self):
        task = self._create_task()
        response = self.client.get(f"/api/tasks/{task['id']}/reasoning", headers=USER)
        self.assertEqual(response.status_code, 404)

    def test_ideas_crud_and_convert(self):
        created = self.client.post(
            "/api/ideas", json={"text": "Start a podcast"}, headers=USER
        )
        self.assertEqual(created.status_code, 201)
        idea = created.json()
        self.assertEqual(idea["task_type"], "idea")

        updated = self.client.patch(
            f"/api/ideas/{idea['id']}",
            json={"connected_to_priority": True},
            headers=USER,
        )
        self.assertTrue(updated.json()["connected_to_priority"])

        converted = self.client.post(
            f"/api/ideas/{idea['id']}/convert", json={"quadrant": "q2"}, headers=USER
        )
        self.assertEqual(converted.status_code, 201)
        task = converted.json()
        self.assertEqual(task["text"], "Start a podcast")
        self.assertEqual(task["quadrant"], "q2")
        self.assertEqual(task["task_type"], "personal")
        self.assertEqual(self.client.get("/api/ideas", headers=USER).json(), [])

        missing = self.client.delete(f"/api/ideas/{idea['id']}", headers=USER)
        self.assertEqual(missing.status_code, 404)

    def test_goals_crud(self):
        blank = self.client.post("/api/goals", json={"title": "  "}, headers=USER)
        self.assertEqual(blank.status_code, 400)

        goal = self.client.post(
            "/api/goals", json={"title": "Run a marathon"}, headers=USER
        ).json()
        self.assertEqual(goal["status"], "active")

        achieved = self.client.patch(
            f"/api/goals/{goal['id']}", json={"status": "achieved"}, headers=USER
        ).json()
        self.assertEqual(achieved["status"], "achieved")

        active = self.client.get("/api/goals?status=active", headers=USER).json()
        self.assertEqual(active, [])
        done = self.client.get("/api/goals?status=achieved", headers=USER).json()
        self.assertEqual([g["id"] for g in done], [goal["id"]])

        self.assertEqual(
            self.client.delete(f"/api/goals/{goal['id']}", headers=USER).status_code,
            204,
        )

    def test_preferences_defaults_and_merge(self):
        defaults = self.client.get("/api/preferences", headers=USER).json()
        self.assertEqual(defaults["theme"], "system")
        self.assertTrue(defaults["show_completed_tasks"])
        self.assertEqual(defaults["task_settings"]["end_of_day_time"], "17:00")

        saved = self.client.put(
            "/api/preferences",
            json={
                "goal": "Ship v1",
                "api_key": "secret",
                "task_settings": {"auto_archive_delay": 3},
            },
            headers=USER,
        ).json()
        self.assertEqual(saved["goal"], "Ship v1")
        self.assertIsNone(saved["api_key"])
        self.assertEqual(saved["task_settings"]["auto_archive_delay"], 3)
        self.assertEqual(saved["task_settings"]["end_of_day_time"], "17:00")

        synced = self.client.put(
            "/api/preferences",
            json={"sync_api_key": True, "api_key": "secret"},
            headers=USER,
        ).json()
        self.assertEqual(synced["api_key"], "secret")
        self.assertEqual(synced["goal"], "Ship v1")

    def test_preferences_reject_bad_end_of_day(self):
        response = self.client.put(
            "/api/preferences",
            json={"task_settings": {"end_of_day_time": "25:00"}},
            headers=USER,
        )
        self.assertEqual(response.status_code, 422)

    def test_onboarding_requires_preferences(self):
        response = self.client.post("/api/preferences/onboarding", headers=USER)
        self.assertEqual(response.status_code, 404)

        self.client.put("/api/preferences", json={"goal": "Focus"}, headers=USER)
        response = self.client.post("/api/preferences/onboarding", headers=USER)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["has_completed_onboarding"])

        cleared = self.client.delete("/api/preferences", headers=USER)
        self.assertEqual(cleared.status_code, 204)
        defaults = self.client.get("/api/preferences", headers=USER).json()
        self.assertFalse(defaults["has_completed_onboarding"])

    def test_profile(self):
        profile = self.client.get("/api/profile", headers=USER).json()
        self.assertEqual(profile["license_status"], "inactive")

        saved = self.client.put(
            "/api/profile",
            json={"name": "Sam", "license_key": "LIC-1"},
            headers=USER,
        ).json()
        self.assertEqual(saved["name"], "Sam")
        self.assertEqual(saved["license_status"], "active")

    def test_profile_falls_back_to_preference_theme(self):
        self.client.put("/api/preferences", json={"theme": "dark"}, headers=USER)
        profile = self.client.get("/api/profile", headers=USER).json()
        self.assertEqual(profile["theme"], "dark")

    def test_scorecard_crud(self):
        body = {
            "metrics": {
                "date": "2025-01-01",
                "total_tasks": 2,
                "completed_tasks": 1,
                "completion_rate": 0.5,
                "quadrant_metrics": {
                    "q1": {"total": 2, "completed": 1, "completion_rate": 0.5}
                },
                "high_value_completion_rate": 0.5,
                "priority_alignment_score": 10,
            },
            "insights": {"analysis": "Good day", "suggestions": ["Rest"]},
        }
        created = self.client.post("/api/scorecards", json=body, headers=USER)
        self.assertEqual(created.status_code, 201, created.text)
        card = created.json()
        self.assertEqual(card["trends"]["completion_rate_trend"], "stable")

        updated = self.client.patch(
            f"/api/scorecards/{card['id']}", json={"notes": "Tired"}, headers=USER
        ).json()
        self.assertEqual(updated["notes"], "Tired")
        self.assertEqual(updated["insights"]["analysis"], "Good day")

        listed = self.client.get("/api/scorecards", headers=USER).json()
        self.assertEqual(len(listed), 1)
        self.assertEqual(
            self.client.get(f"/api/scorecards/{card['id']}", headers=OTHER_USER).status_code,
            404,
        )
        self.assertEqual(
            self.client.delete(f"/api/scorecards/{card['id']}", headers=USER).status_code,
            204,
        )

    def test_generate_scorecard(self):
        analyzer = _fake_analyzer()
        analyzer.generate_insights.return_value = ScorecardInsights(
            analysis="Strong focus", suggestions=["Keep going"]
        )
        self.app.dependency_overrides[get_analyzer] = lambda: analyzer

        task = self._create_task(quadrant="q1")
        self.client.post(f"/api/tasks/{task['id']}/toggle", headers=USER)

        response = self.client.post(
            "/api/generate-scorecard", json={"priority": "Launch"}, headers=USER
        )
        self.assertEqual(response.status_code, 201, response.text)
        card = response.json()
        self.assertEqual(card["metrics"]["completed_tasks"], 1)
        self.assertEqual(card["metrics"]["priority_alignment_score"], 10)
        self.assertEqual(card["insights"]["analysis"], "Strong focus")
        self.assertEqual(len(self.client.get("/api/scorecards", headers=USER).json()), 1)

    def test_subscription_defaults_to_free(self):
        payload = self.client.get("/api/subscription", headers=USER).json()
        self.assertIsNone(payload["subscription"])
        self.assertEqual(payload["access_level"], "free")
        self.assertEqual(payload["features"]["max_tasks"], 100)
        self.assertFalse(payload["features"]["ai_enabled"])

    def test_export_tasks_csv(self):
        self._create_task("Buy milk, eggs")
        response = self.client.get("/api/export/tasks.csv", headers=USER)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        lines = response.text.splitlines()
        self.assertEqual(lines[0], "Id,Text,Quadrant,Status,CompletedAt")
        self.assertIn('"Buy milk, eggs",q4,active,', lines[1])

    def test_export_goals_csv(self):
        self.client.put(
            "/api/preferences", json={"goal": "Get fit", "priority": "Gym"}, headers=USER
        )
        response = self.client.get("/api/export/goals.csv", headers=USER)
        lines = response.text.splitlines()
        self.assertEqual(lines[0], "Goal,Priority,Status,LastModified")
        self.assertEqual(lines[1], "Get fit,Gym,active,")

    def test_categorize(self):
        analyzer = _fake_analyzer()
        analyzer.categorize.return_value = CategorizeResult(
            category=Quadrant.Q1, reasoning="Due today", task_type=TaskType.WORK
        )
        self.app.dependency_overrides[get_analyzer] = lambda: analyzer

        response = self.client.post(
            "/api/categorize", json={"task": "File taxes"}, headers=USER
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["category"], "q1")
        self.assertEqual(response.json()["task_type"], "work")

        blank = self.client.post("/api/categorize", json={"task": " "}, headers=USER)
        self.assertEqual(blank.status_code, 400)

    def test_ai_routes_without_provider(self):
        self.app.dependency_overrides[get_analyzer] = lambda: TaskAnalyzer(api_key=None)
        response = self.client.post(
            "/api/categorize", json={"task": "File taxes"}, headers=USER
        )
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["detail"], "AI provider is not configured")

    def test_rate_limited_provider(self):
        analyzer = _fake_analyzer()
        analyzer.analyze_personal_context.side_effect = AnalysisError(
            "Too many requests. Please try again later.", status_code=429
        )
        self.app.dependency_overrides[get_analyzer] = lambda: analyzer
        response = self.client.post(
            "/api/analyze-personal-context",
            json={"personal_context": "I run a bakery"},
            headers=USER,
        )
        self.assertEqual(response.status_code, 429)

    def test_chat_streams_sse(self):
        analyzer = _fake_analyzer()
        analyzer.stream_chat.return_value = iter(["Hello", " there"])
        self.app.dependency_overrides[get_analyzer] = lambda: analyzer

        response = self.client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "What next?"}]},
            headers=USER,
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/event-stream"))
        events = [line for line in response.text.split("\n\n") if line]
        self.assertEqual(
            events[0], 'data: {"choices": [{"delta": {"content": "Hello"}}]}'
        )
        self.assertEqual(events[-1], "data: [DONE]")

    def test_chat_rejects_empty_messages(self):
        self.app.dependency_overrides[get_analyzer] = _fake_analyzer
        response = self.client.post("/api/chat", json={"messages": []}, headers=USER)
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
