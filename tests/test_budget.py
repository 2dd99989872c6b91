import unittest
from fractions import Fraction

from grantpilot.budget import (
    BudgetRules,
    ExpenseLine,
    SubsidyCalculator,
    parse_amount,
    parse_expense_lines,
    validate_breakdown,
    validate_expenses,
)
from grantpilot.state_schema import Severity


class TestExpenseParsing(unittest.TestCase):
    def test_amounts_with_separators_and_man_unit(self):
        self.assertEqual(parse_amount("300,000 yen"), 300_000)
        self.assertEqual(parse_amount("30万円"), 300_000)
        self.assertEqual(parse_amount(1.5e5), 150_000)
        self.assertIsNone(parse_amount("free"))

    def test_text_lines_are_categorized(self):
        lines = parse_expense_lines(
            "Website build: 300,000\n- Flyer printing: 200,000\n[equipment] Oven: 700,000\nnotes without amount"
        )
        self.assertEqual(
            lines,
            [
                ExpenseLine("web", "Website build", 300_000),
                ExpenseLine("general", "Flyer printing", 200_000),
                ExpenseLine("equipment", "Oven", 700_000),
            ],
        )

    def test_japanese_homepage_line_counts_as_web(self):
        lines = parse_expense_lines("ホームページ制作：30万円")
        self.assertEqual(lines[0].category, "web")
        self.assertEqual(lines[0].amount, 300_000)

    def test_structured_and_mapping_inputs(self):
        structured = parse_expense_lines([{"category": "Website", "name": "Booking page", "amount": "120,000"}])
        self.assertTrue(BudgetRules().is_restricted(structured[0].category))
        mapping = parse_expense_lines({"Signboard": 80_000})
        self.assertEqual(mapping, [ExpenseLine("general", "Signboard", 80_000)])


class TestSubsidyCalculator(unittest.TestCase):
    def test_restricted_grant_boundary_case(self):
        calc = SubsidyCalculator()
        breakdown = calc.calculate(
            [ExpenseLine("general", "Flyers and equipment", 1_074_600), ExpenseLine("web", "Website", 490_000)]
        )
        self.assertEqual(breakdown.total_expense, 1_564_600)
        self.assertEqual(breakdown.non_restricted_grant, 716_400)
        self.assertEqual(breakdown.restricted_grant, 238_800)
        self.assertEqual(breakdown.total_grant, 955_200)
        self.assertTrue(breakdown.restricted_share_ok(Fraction(1, 4)))

        issues = validate_breakdown(breakdown, BudgetRules())
        self.assertEqual([i.type for i in issues], ["subsidy_limit_exceeded"])
        self.assertEqual(issues[0].severity, Severity.HIGH)

    def test_loss_making_rate_applies(self):
        calc = SubsidyCalculator()
        answers = {"Q2-8": "-200,000", "Q5-6": "Flyers: 400,000"}
        breakdown = calc.for_answers(answers)
        self.assertEqual(breakdown.rate, Fraction(3, 4))
        self.assertEqual(breakdown.total_grant, 300_000)

    def test_fixed_cap_limits_restricted_grant(self):
        rules = BudgetRules(fixed_cap=100_000)
        breakdown = SubsidyCalculator(rules).calculate(
            [ExpenseLine("general", "Equipment", 3_000_000), ExpenseLine("web", "Website", 400_000)]
        )
        self.assertEqual(breakdown.restricted_grant, 100_000)

    def test_invalid_ratio_is_rejected(self):
        with self.assertRaises(ValueError):
            BudgetRules(restricted_ratio=Fraction(1))


class TestExpenseValidation(unittest.TestCase):
    def setUp(self):
        self.rules = BudgetRules()

    def test_web_share_over_quarter_is_critical(self):
        lines = [ExpenseLine("general", "Flyers", 600_000), ExpenseLine("web", "Website", 400_000)]
        issues = validate_expenses(lines, self.rules)
        self.assertEqual([i.type for i in issues], ["web_cost_exceeded"])
        self.assertEqual(issues[0].recommended_value, 250_000)
        self.assertEqual(issues[0].severity, Severity.CRITICAL)

    def test_web_cost_over_fixed_cap(self):
        lines = [ExpenseLine("general", "Renovation", 2_400_000), ExpenseLine("web", "Website", 600_000)]
        issues = validate_expenses(lines, self.rules)
        self.assertEqual([i.type for i in issues], ["web_cost_limit"])
        self.assertEqual(issues[0].recommended_value, 500_000)

    def test_web_only_application_is_rejected(self):
        issues = validate_expenses([ExpenseLine("web", "Website", 100_000)], self.rules)
        self.assertIn("web_only_application", [i.type for i in issues])

    def test_no_web_lines_means_no_expense_issues(self):
        self.assertEqual(validate_expenses([ExpenseLine("general", "Flyers", 100_000)], self.rules), [])


if __name__ == "__main__":
    unittest.main()
