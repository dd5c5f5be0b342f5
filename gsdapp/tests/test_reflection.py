import unittest
from unittest.mock import MagicMock

from gsdapp.analysis import AnalysisError, CategorizeResult, ReflectionAnalysis
from gsdapp.db import InMemoryDbClient
from gsdapp.reflection import needs_reflection, submit_reflection
from gsdapp.tasks import NewTask, apply_categorization, create_task
from shared.types import Quadrant

USER = "user_1"


class ReflectionFlowTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.analyzer = MagicMock()
        self.task = create_task(
            self.db,
            USER,
            NewTask(text="Watch a movie", quadrant=Quadrant.Q4, needs_reflection=True),
        )

    def test_ai_categorization_still_needs_reflection(self):
        self.assertTrue(needs_reflection(self.task))
        categorized = apply_categorization(
            self.db,
            USER,
            self.task,
            CategorizeResult(category=Quadrant.Q4, reasoning="Leisure"),
        )
        self.assertTrue(needs_reflection(categorized))

    def test_submit_moves_task_to_suggested_quadrant(self):
        self.analyzer.analyze_reflection.return_value = ReflectionAnalysis(
            analysis="Rest supports your goal",
            suggested_quadrant=Quadrant.Q2,
            suggestion="Schedule it",
        )
        updated = submit_reflection(
            self.db, self.analyzer, USER, self.task.id, "  Recharging  ", "Health"
        )
        self.analyzer.analyze_reflection.assert_called_once_with(
            "Watch a movie", "Recharging", "Health", None, Quadrant.Q4
        )
        self.assertEqual(updated.quadrant, Quadrant.Q2)
        self.assertFalse(updated.needs_reflection)
        self.assertEqual(updated.reflection.content, "Recharging")
        self.assertEqual(updated.reflection.feedback, "Schedule it")
        self.assertFalse(needs_reflection(updated))

    def test_empty_justification(self):
        with self.assertRaises(ValueError):
            submit_reflection(self.db, self.analyzer, USER, self.task.id, "   ")
        self.analyzer.analyze_reflection.assert_not_called()

    def test_missing_task(self):
        with self.assertRaises(LookupError):
            submit_reflection(self.db, self.analyzer, USER, "nope", "Because")

    def test_analyzer_failure_leaves_task_untouched(self):
        self.analyzer.analyze_reflection.side_effect = AnalysisError("down")
        with self.assertRaises(AnalysisError):
            submit_reflection(self.db, self.analyzer, USER, self.task.id, "Because")
        self.assertEqual(self.analyzer.analyze_reflection.call_count, 1)
        self.assertTrue(self.db.get_task(USER, self.task.id).needs_reflection)


if __name__ == "__main__":
    unittest.main()
