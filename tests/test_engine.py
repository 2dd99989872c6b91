import unittest

from grantpilot.engine import InterviewEngine, ScenarioTurn
from grantpilot.state_schema import AgentStatus


def _complete_answers():
    return {
        "Q1-0": "Bistro Aozora",
        "Q1-1": "Restaurant (restaurant, cafe, bar)",
        "Q1-2": "Aoi Tanaka",
        "Q1-3": "Lunch and dinner courses built on local vegetables",
        "Q1-3-multi": "No, this is our only business",
        "Q1-4": 3,
        "Q1-5": "Sole proprietor",
        "Q2-5": "We support the local community with seasonal food made from regional produce.",
        "Q2-7-1": 9_000_000,
        "Q2-7-2": 9_500_000,
        "Q2-7-3": 10_000_000,
        "Q2-8": 500_000,
        "Q2-11": 2_500,
        "Q2-12": "About 300 customers a month",
        "Q3-1": ["30s", "40s"],
        "Q3-1-1": "Office workers in their 30s near the station and local families on weekends",
        "Q3-2": "Quick healthy lunches and relaxed family dinners",
        "Q3-5": "There are 3 shops nearby; we are the only one using organic vegetables",
        "Q3-6": "Customers ask for online booking; weekday evenings are quiet",
        "Q3-7": ["Social media (Instagram, X, Facebook)"],
        "Q5-1": "Launch an Instagram account and a web booking page to attract local office workers in their 30s.",
        "Q5-2": ["Start social media marketing (Instagram etc.)", "Introduce an online booking system"],
        "Q5-3": "Instagram posts three times a week and an online booking page",
        "Q5-4": "Monthly follower count and online reservations",
        "Q5-5": "Month 1: booking page, Month 2: flyers and launch",
        "Q5-6": "Website build: 100,000\nFlyer printing: 150,000\nSignboard: 150,000",
        "Q5-6-1": "Yes, I have confirmed the limits",
        "Q5-7": "More weekday reservations from new local customers",
        "Q5-8": "30 new customers a month, based on 100 enquiries from ads",
        "Q5-9": "12,000,000 yen, based on 30 new customers spending 2,500 yen",
        "Q5-10": "We buy from local farms and host seasonal events",
        "Q5-14": "Before: 300 customers a month. After: 360 customers a month",
    }


class TestInterviewEngine(unittest.TestCase):
    def setUp(self):
        self.engine = InterviewEngine()

    def test_resolve_next_walks_the_catalogue(self):
        self.assertEqual(self.engine.resolve_next({}).id, "Q1-0")
        self.assertIsNone(self.engine.resolve_next(_complete_answers()))

    def test_final_check_passes_for_complete_valid_application(self):
        session = self.engine.start_session("final")
        result = self.engine.final_check(_complete_answers(), session)
        self.assertEqual(result.unanswered_required, [])
        self.assertEqual(result.completeness.overall, 100)
        self.assertTrue(result.validation.is_valid)
        self.assertTrue(result.can_submit)
        self.assertEqual(result.recommendations, [])
        self.assertEqual(result.session.status, AgentStatus.COMPLETE)
        self.assertEqual(session.status, AgentStatus.ANALYZING)

    def test_final_check_blocks_critical_issues(self):
        answers = _complete_answers()
        answers["Q5-9"] = "30,000,000 yen"
        result = self.engine.final_check(answers, self.engine.start_session())
        self.assertFalse(result.can_submit)
        self.assertEqual(result.recommendations[0]["type"], "unrealistic_goal")
        self.assertEqual(result.session.status, AgentStatus.VALIDATING)

    def test_final_check_reports_unanswered_required(self):
        answers = _complete_answers()
        del answers["Q5-14"]
        result = self.engine.final_check(answers, self.engine.start_session())
        self.assertFalse(result.can_submit)
        self.assertEqual(result.unanswered_required, ["Q5-14"])

    def test_efficiency_initiative_adds_required_question(self):
        answers = _complete_answers()
        answers["Q5-2"] = ["Install new equipment"]
        self.assertIn("Q5-15", self.engine.resolver.required_reachable(answers))
        # optional Q2-13 ranks first until it is answered or skipped
        self.assertEqual(self.engine.resolve_next(answers).id, "Q2-13")
        answers = self.engine.skip_question("Q2-13", answers)
        self.assertEqual(self.engine.resolve_next(answers).id, "Q5-15")

    def test_skipped_question_does_not_count_towards_completeness(self):
        answers = self.engine.skip_question("Q2-13", _complete_answers())
        result = self.engine.final_check(answers, self.engine.start_session())
        self.assertTrue(result.can_submit)
        self.assertEqual(result.unanswered_required, [])

    def test_required_question_cannot_be_skipped(self):
        with self.assertRaises(ValueError):
            self.engine.skip_question("Q5-9", _complete_answers())

    def test_inserted_question_can_be_skipped(self):
        answers = self.engine.skip_question("detail-restaurant-type", {"Q1-0": "Bistro"})
        self.assertEqual(self.engine.resolve_next(answers).id, "Q1-1")

    def test_check_progress_on_empty_answers(self):
        progress = self.engine.check_progress({})
        self.assertEqual(progress["completeness"], 0)
        self.assertEqual(progress["overall_status"], "insufficient")
        self.assertFalse(progress["is_complete"])
        self.assertEqual(progress["suggested_questions"], [])
        self.assertTrue(progress["missing_info"])

    def test_go_back_removes_last_answer(self):
        answers, removed = self.engine.go_back({"Q1-0": "Bistro", "Q1-1": "Retail"})
        self.assertEqual(removed, "Q1-1")
        self.assertEqual(self.engine.resolve_next(answers).id, "Q1-1")

    def test_scenario_run_records_each_turn(self):
        turns = [
            ScenarioTurn("Q1-0", "Bistro Aozora"),
            ScenarioTurn("Q1-1", "Restaurant (restaurant, cafe, bar)"),
            ScenarioTurn("Q2-12", "About 300 customers a month"),
            ScenarioTurn("detail-restaurant-type", "French bistro built on local organic vegetables"),
        ]
        run = self.engine.run_scenario(turns)
        self.assertEqual(
            run.actions,
            ["proceed", "proceed", "business_detail_question", "industry_question"],
        )
        self.assertEqual(run.records[2].next_question, "detail-restaurant-type")
        self.assertEqual(run.records[0].next_question, "Q1-1")
        self.assertEqual(run.session.turn_count, 4)
        self.assertEqual(len(run.traversal_snapshot()), 4)
        self.assertGreaterEqual(run.average_latency_ms, 0.0)


if __name__ == "__main__":
    unittest.main()
