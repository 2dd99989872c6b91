import time
import unittest
from unittest.mock import MagicMock

from grantpilot.catalogue import build_default_graph
from grantpilot.llm import ExternalServiceFailure, FollowUpResponse
from grantpilot.orchestrator import OrchestrationPolicy, OrchestratorConfig
from grantpilot.state_schema import AgentSession, AgentStatus, TurnAction

RESTAURANT = "Restaurant (restaurant, cafe, bar)"


def _follow_up_service(question="Which age group visits most often?"):
    service = MagicMock()
    service.generate_follow_up.return_value = FollowUpResponse(
        needed=True,
        question_text=question,
        placeholder_example="e.g. Women in their 30s",
        targeted_missing_element="age_bracket",
    )
    return service


class TestOrchestrationPolicy(unittest.TestCase):
    def _policy(self, service=None, **config):
        return OrchestrationPolicy(build_default_graph(), config=OrchestratorConfig(**config), follow_up_service=service)

    def _decide(self, policy, question_id, answer, answers=None, session=None):
        answers = dict(answers or {})
        answers[question_id] = answer
        return policy.decide(question_id, answer, answers, session or AgentSession.start("s"))

    def test_plain_answer_proceeds(self):
        decision = self._decide(self._policy(), "Q1-0", "Bistro Aozora")
        self.assertEqual(decision.action, TurnAction.PROCEED)
        self.assertIsNone(decision.message)
        self.assertEqual(decision.session.turn_count, 1)
        self.assertEqual(decision.session.status, AgentStatus.ANALYZING)

    def test_caller_session_is_not_mutated(self):
        session = AgentSession.start("s")
        decision = self._decide(self._policy(), "Q1-0", "Bistro Aozora", session=session)
        self.assertEqual(session.turn_count, 0)
        self.assertEqual(session.value_updates, [])
        self.assertIn("turn_count", decision.trace["variables_used"])

    def test_turn_budget_forces_proceed(self):
        session = AgentSession.start("s")
        session.turn_count = 3
        decision = self._decide(
            self._policy(max_questions=3), "Q5-9", 300, answers={"Q2-7-3": 100}, session=session
        )
        self.assertEqual(decision.action, TurnAction.PROCEED)
        self.assertEqual(decision.data, {"reason": "turn_budget_exhausted"})
        self.assertEqual(decision.session.turn_count, 4)

    def test_critical_issue_wins(self):
        decision = self._decide(self._policy(), "Q5-9", "250 yen", answers={"Q2-7-3": 100})
        self.assertEqual(decision.action, TurnAction.FLAG_CRITICAL)
        self.assertTrue(decision.data["requires_correction"])
        self.assertEqual(decision.data["issue"]["recommended_value"], 125)
        self.assertEqual(decision.session.status, AgentStatus.VALIDATING)

    def test_milestone_inserts_detail_then_industry_questions(self):
        policy = self._policy()
        answers = {"Q1-1": RESTAURANT}
        first = self._decide(policy, "Q2-12", "About 300 customers a month", answers=answers)
        self.assertEqual(first.action, TurnAction.BUSINESS_DETAIL)
        self.assertEqual(first.data["question"]["id"], "detail-restaurant-type")
        self.assertTrue(first.requires_answer)

        answers["Q2-12"] = "About 300 customers a month"
        second = self._decide(
            policy, "detail-restaurant-type", "French bistro with local vegetables", answers=answers, session=first.session
        )
        self.assertEqual(second.action, TurnAction.INDUSTRY_QUESTION)
        self.assertEqual(second.data["question"]["id"], "industry-popular-items")

    def test_inserts_happen_once_per_session(self):
        policy = self._policy()
        session = AgentSession.start("s")
        session.inserted_question_ids.update(
            {
                "detail-restaurant-type",
                "industry-popular-items",
                "industry-business-hours",
                "industry-sales-ratio",
                "industry-customer-difference",
                "industry-seasonal-variation",
            }
        )
        decision = self._decide(policy, "Q2-12", "About 300 customers a month", answers={"Q1-1": RESTAURANT}, session=session)
        self.assertEqual(decision.action, TurnAction.PROCEED)

    def test_no_insert_without_business_category(self):
        decision = self._decide(self._policy(), "Q2-12", "About 300 customers a month")
        self.assertEqual(decision.action, TurnAction.PROCEED)

    def test_shallow_free_text_triggers_deep_dive(self):
        service = _follow_up_service()
        decision = self._decide(self._policy(service), "Q3-1-1", "Office workers")
        self.assertEqual(decision.action, TurnAction.DEEP_DIVE)
        question = decision.data["question"]
        self.assertEqual(question["id"], "Q3-1-1-dive-1")
        self.assertEqual(question["parent_question_id"], "Q3-1-1")
        self.assertEqual(decision.data["missing_elements"], ["age_bracket", "geography"])
        self.assertEqual(decision.session.status, AgentStatus.DEEP_DIVING)
        request = service.generate_follow_up.call_args.args[0]
        self.assertEqual(request.parent_question_id, "Q3-1-1")

    def test_deep_dive_answers_count_against_the_root_question(self):
        policy = self._policy(_follow_up_service())
        first = self._decide(policy, "Q3-1-1", "Office workers")
        second = self._decide(policy, "Q3-1-1-dive-1", "30s", answers={"Q3-1-1": "Office workers"}, session=first.session)
        self.assertEqual(second.action, TurnAction.DEEP_DIVE)
        self.assertEqual(second.data["question"]["id"], "Q3-1-1-dive-2")
        self.assertEqual(second.session.deep_dive_count("Q3-1-1"), 2)

    def test_deep_dive_limit_falls_through_to_suggestion(self):
        service = _follow_up_service()
        policy = self._policy(service, max_deep_dive_per_question=1)
        first = self._decide(policy, "Q3-1-1", "Office workers")
        second = self._decide(policy, "Q3-1-1-dive-1", "30s", answers={"Q3-1-1": "Office workers"}, session=first.session)
        self.assertEqual(second.action, TurnAction.SUGGEST_IMPROVEMENT)
        self.assertEqual(second.data["missing_elements"], ["insufficient_detail"])
        self.assertEqual(service.generate_follow_up.call_count, 1)

    def test_service_failure_falls_through(self):
        service = MagicMock()
        service.generate_follow_up.side_effect = ExternalServiceFailure("service unavailable")
        decision = self._decide(self._policy(service), "Q3-1-1", "Office workers")
        self.assertEqual(decision.action, TurnAction.SUGGEST_IMPROVEMENT)
        reasons = [u["reason"] for u in decision.trace["value_updates"]]
        self.assertIn("external_service_failure", reasons)

    def test_service_timeout_falls_through(self):
        service = MagicMock()
        service.generate_follow_up.side_effect = lambda request: time.sleep(0.5)
        decision = self._decide(self._policy(service, follow_up_timeout_s=0.05), "Q3-1-1", "Office workers")
        self.assertEqual(decision.action, TurnAction.SUGGEST_IMPROVEMENT)

    def test_deep_answer_is_not_deep_dived(self):
        service = _follow_up_service()
        answer = (
            "Office workers in their 30s and 40s who work near the station, for example staff from the three "
            "large insurance offices, because they want a quick and healthy lunch. About 120 of them visit each week."
        )
        decision = self._decide(self._policy(service), "Q3-1-1", answer)
        service.generate_follow_up.assert_not_called()
        self.assertEqual(decision.action, TurnAction.PROCEED)

    def test_shallow_answer_without_gaps_skips_deep_dive(self):
        service = _follow_up_service()
        decision = self._decide(self._policy(service), "Q1-3", "Lunch and dinner courses.")
        service.generate_follow_up.assert_not_called()
        self.assertEqual(decision.action, TurnAction.PROCEED)
        self.assertEqual(decision.session.deep_dive_count("Q1-3"), 0)

    def test_closed_question_skips_depth_and_gaps(self):
        service = _follow_up_service()
        decision = self._decide(self._policy(service), "Q3-1", ["30s"])
        service.generate_follow_up.assert_not_called()
        self.assertEqual(decision.action, TurnAction.PROCEED)

    def test_gaps_without_service_produce_suggestion(self):
        decision = self._decide(self._policy(), "Q3-5", "Our food is very good and tasty")
        self.assertEqual(decision.action, TurnAction.SUGGEST_IMPROVEMENT)
        self.assertIn("competitor_count", decision.data["missing_elements"])
        self.assertTrue(decision.data["optional"])
        self.assertEqual(decision.session.status, AgentStatus.SUGGESTING)
        self.assertEqual(len(decision.session.suggestions), 1)

    def test_high_issue_flagged_on_closed_question(self):
        answers = {"Q5-1": "Renovate the interior to work more efficiently."}
        decision = self._decide(self._policy(), "Q5-2", ["Renovate the shop interior"], answers=answers)
        self.assertEqual(decision.action, TurnAction.FLAG_HIGH)
        self.assertEqual(decision.data["issue"]["type"], "missing_sales_connection")


if __name__ == "__main__":
    unittest.main()
