import unittest

from grantpilot.depth import DepthEvaluator
from grantpilot.gaps import GapDetector, improvement_suggestion, profiles_for
from grantpilot.industry import (
    BusinessCategory,
    classify_business_category,
    get_business_detail_question,
    get_industry_questions,
)
from grantpilot.policy_tables import IMPROVEMENT_EXAMPLES, contains_any


class TestDepthEvaluator(unittest.TestCase):
    def setUp(self):
        self.depth = DepthEvaluator().depth

    def test_empty_answer_is_zero(self):
        self.assertEqual(self.depth("   "), 0)
        self.assertEqual(self.depth(None), 0)

    def test_closed_form_answers_are_five(self):
        self.assertEqual(self.depth("30s", "multi_select"), 5)
        self.assertEqual(self.depth("Restaurant", "single_select"), 5)

    def test_length_only_levels(self):
        self.assertEqual(self.depth("short answer"), 1)
        self.assertEqual(self.depth("a" * 50), 2)
        self.assertEqual(self.depth("a" * 100), 3)
        self.assertEqual(self.depth("a" * 160), 3)

    def test_level_four_needs_digit_or_example(self):
        self.assertEqual(self.depth("a" * 160 + " 30"), 4)
        self.assertEqual(self.depth("for example " + "a" * 160), 4)

    def test_level_five_needs_all_markers(self):
        text = "For example we sell 30 lunches a day because office workers nearby want a quick meal. " + "a" * 150
        self.assertEqual(self.depth(text), 5)
        without_reason = "For example we sell 30 lunches a day to office workers nearby. " + "a" * 150
        self.assertEqual(self.depth(without_reason), 4)

    def test_deterministic(self):
        text = "We offer lunch sets for 30 office workers a day, for example curry and pasta. " * 3
        self.assertEqual(self.depth(text), self.depth(text))


class TestGapDetector(unittest.TestCase):
    def setUp(self):
        self.detector = GapDetector()

    def test_short_answer_is_insufficient(self):
        self.assertEqual(self.detector.missing_elements("Q5-1", "web"), ["insufficient_detail"])

    def test_audience_profile(self):
        missing = self.detector.missing_elements("Q3-1-1", "Office workers who like good coffee")
        self.assertEqual(missing, ["age_bracket", "geography"])
        complete = self.detector.missing_elements("Q3-1-1", "Office workers in their 30s near the station")
        self.assertEqual(complete, [])

    def test_numeric_goal_profile(self):
        self.assertEqual(self.detector.missing_elements("Q5-8", "30 new customers a month"), ["justification"])
        self.assertEqual(
            self.detector.missing_elements("Q5-8", "From 20 to 50 groups a month because of ads"),
            ["goal_unrealistic"],
        )
        self.assertEqual(
            self.detector.missing_elements("Q5-8", "More customers than now"), ["numeric_value", "justification"]
        )

    def test_improvement_examples_pass_their_own_checks(self):
        for question_id, example in IMPROVEMENT_EXAMPLES.items():
            self.assertEqual(self.detector.missing_elements(question_id, example), [], question_id)

    def test_competitive_profile(self):
        missing = self.detector.missing_elements(
            "Q3-5", "There are 3 shops nearby, but only we offer a unique organic menu"
        )
        self.assertNotIn("competitor_count", missing)
        self.assertNotIn("differentiation", missing)
        missing = self.detector.missing_elements("Q3-5", "Our food is very good and tasty")
        self.assertIn("competitor_count", missing)
        self.assertIn("differentiation", missing)

    def test_deep_dive_answer_uses_parent_profile(self):
        answer = "About 30 more customers every month"
        self.assertEqual(self.detector.missing_elements("Q5-8-dive-1", answer), [])
        self.assertEqual(
            self.detector.missing_elements("Q5-8-dive-1", answer, {"parent_question_id": "Q5-8"}),
            ["justification"],
        )

    def test_question_without_profile_has_no_gaps(self):
        self.assertEqual(profiles_for("Q1-0"), [])
        self.assertEqual(self.detector.missing_elements("Q1-0", "Bistro Aozora in Sendai"), [])

    def test_improvement_suggestion_includes_example(self):
        text = improvement_suggestion("Q5-8", ["justification"])
        self.assertIn("The basis for the number is unclear", text)
        self.assertIn("[Example]", text)
        self.assertIsNone(improvement_suggestion("Q5-8", []))


class TestKeywordMatching(unittest.TestCase):
    def test_ascii_keywords_match_at_word_start(self):
        self.assertFalse(contains_any("because we implement it", ("use", "men")))
        self.assertTrue(contains_any("We use Instagram", ("use",)))
        self.assertTrue(contains_any("fully automated booking", ("automat",)))

    def test_non_ascii_keywords_match_anywhere(self):
        self.assertTrue(contains_any("駅前の会社員", ("駅",)))


class TestIndustryTemplates(unittest.TestCase):
    def test_classification(self):
        self.assertEqual(classify_business_category("Restaurant (restaurant, cafe, bar)"), BusinessCategory.RESTAURANT)
        self.assertEqual(classify_business_category("Barber shop"), BusinessCategory.BEAUTY)
        self.assertEqual(classify_business_category("Services (cleaning, repair, laundry)"), BusinessCategory.SERVICE)
        self.assertEqual(classify_business_category("Construction / manufacturing"), BusinessCategory.MANUFACTURING)
        self.assertEqual(classify_business_category(None), BusinessCategory.OTHER)

    def test_templates_per_category(self):
        self.assertEqual(get_business_detail_question("Restaurant").id, "restaurant-type")
        self.assertEqual([q.id for q in get_industry_questions("Retail (clothing)")], ["best-sellers", "customer-flow", "purchase-rate"])
        self.assertIsNone(get_business_detail_question("Construction / manufacturing"))
        self.assertEqual(get_industry_questions("Other"), ())


if __name__ == "__main__":
    unittest.main()
