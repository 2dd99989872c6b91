"""Cross-answer validation: numeric realism, budget rules and consistency.

Pure and synchronous. Issues are returned as data and rebuilt from scratch on
every call; nothing here raises for a bad answer set.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Mapping

from .answers import answer_text, first_number
from .budget import BudgetRules, SubsidyCalculator, parse_expense_lines, validate_breakdown, validate_expenses
from .policy_tables import Lexicon, contains_any
from .rubric import round_half_up
from .state_schema import Severity, ValidationIssue

CRITICAL_GROWTH_RATIO = Fraction(2)
AMBITIOUS_GROWTH_RATIO = Fraction(3, 2)
RECOMMENDED_GROWTH = Fraction(5, 4)
RECOMMENDED_CUSTOMER_SHARE = Fraction(3, 10)


@dataclass(frozen=True, slots=True)
class ValidationFields:
    baseline_sales: str = "Q2-7-3"
    target_sales: str = "Q5-9"
    current_customers: str = "Q2-12"
    target_new_customers: str = "Q5-8"
    philosophy: str = "Q2-5"
    plan: str = "Q5-1"
    efficiency_plan: str = "Q5-15"
    target_age: str = "Q3-1"
    initiatives: str = "Q5-2"


@dataclass(slots=True)
class ValidationReport:
    issues: list[ValidationIssue] = field(default_factory=list)

    def by_severity(self) -> dict[str, list[ValidationIssue]]:
        grouped: dict[str, list[ValidationIssue]] = {s.value: [] for s in Severity}
        for issue in self.issues:
            grouped[issue.severity.value].append(issue)
        return grouped

    @property
    def is_valid(self) -> bool:
        return not any(i.severity in (Severity.CRITICAL, Severity.HIGH) for i in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(i.severity in (Severity.MEDIUM, Severity.LOW) for i in self.issues)

    def first(self, severity: Severity) -> ValidationIssue | None:
        return next((i for i in self.issues if i.severity == severity), None)

    def summary(self) -> str:
        if not self.issues:
            return "No problems were found."
        grouped = self.by_severity()
        headings = {
            "critical": "Must fix",
            "high": "Should fix",
            "medium": "Worth reviewing",
            "low": "For reference",
        }
        lines = [f"{len(self.issues)} issue(s) found."]
        for severity, heading in headings.items():
            items = grouped[severity]
            if not items:
                continue
            lines += ["", f"[{heading}]"]
            for issue in items:
                lines.append(f"- {issue.message}")
                lines.append(f"  -> {issue.suggestion}")
        return "\n".join(lines)

    def as_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "has_warnings": self.has_warnings,
            "issues": {k: [i.as_dict() for i in v] for k, v in self.by_severity().items()},
            "total_issues": len(self.issues),
        }


class ValidationEngine:
    def __init__(
        self,
        fields: ValidationFields | None = None,
        budget_rules: BudgetRules | None = None,
        lexicon: Lexicon | None = None,
    ):
        self.fields = fields or ValidationFields()
        self.budget_rules = budget_rules or BudgetRules()
        self.lexicon = lexicon or Lexicon.default()
        self.calculator = SubsidyCalculator(self.budget_rules)

    def validate(self, answers: Mapping[str, Any]) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        issues += self.check_numeric_goals(answers)
        issues += self.check_budget(answers)
        issues += self.check_consistency(answers)
        issues += self.check_sales_connection(answers)
        return issues

    def report(self, answers: Mapping[str, Any]) -> ValidationReport:
        return ValidationReport(issues=self.validate(answers))

    def check_numeric_goals(self, answers: Mapping[str, Any]) -> list[ValidationIssue]:
        f = self.fields
        issues: list[ValidationIssue] = []

        baseline = first_number(answers.get(f.baseline_sales))
        target = first_number(answers.get(f.target_sales))
        if baseline and target and baseline > 0 and target > 0:
            ratio = Fraction(target) / Fraction(baseline)
            if ratio > CRITICAL_GROWTH_RATIO:
                low = round_half_up(Fraction(baseline) * Fraction(6, 5))
                high = round_half_up(Fraction(baseline) * Fraction(13, 10))
                issues.append(
                    ValidationIssue(
                        type="unrealistic_goal",
                        severity=Severity.CRITICAL,
                        field=f.target_sales,
                        message=f"The sales target is unrealistic ({float(ratio):.1f}x the latest result)",
                        suggestion=f"1.2 to 1.3 times the latest result ({low:,} to {high:,}) is realistic",
                        current_value=target,
                        recommended_value=round_half_up(Fraction(baseline) * RECOMMENDED_GROWTH),
                    )
                )
            elif ratio > AMBITIOUS_GROWTH_RATIO:
                issues.append(
                    ValidationIssue(
                        type="ambitious_goal",
                        severity=Severity.MEDIUM,
                        field=f.target_sales,
                        message=f"The sales target is on the high side ({float(ratio):.1f}x the latest result)",
                        suggestion="State clearly why the target is achievable",
                        current_value=target,
                    )
                )

        current = first_number(answers.get(f.current_customers))
        target_new = first_number(answers.get(f.target_new_customers))
        if current and target_new and current > 0 and target_new > current:
            issues.append(
                ValidationIssue(
                    type="unrealistic_customer_goal",
                    severity=Severity.MEDIUM,
                    field=f.target_new_customers,
                    message="The new-customer target exceeds the current number of customers",
                    suggestion="Set a realistic monthly increase",
                    current_value=target_new,
                    recommended_value=round_half_up(Fraction(current) * RECOMMENDED_CUSTOMER_SHARE),
                )
            )
        return issues

    def check_budget(self, answers: Mapping[str, Any]) -> list[ValidationIssue]:
        rules = self.budget_rules
        lines = parse_expense_lines(answers.get(rules.expense_field), rules)
        if not lines:
            return []
        issues = validate_expenses(lines, rules)
        breakdown = self.calculator.calculate(lines, loss_making=rules.is_loss_making(answers))
        issues += validate_breakdown(breakdown, rules)
        return issues

    def _themes(self, text: str) -> set[str]:
        return {theme for theme, keywords in self.lexicon.theme_keywords.items() if contains_any(text, keywords)}

    def check_consistency(self, answers: Mapping[str, Any]) -> list[ValidationIssue]:
        f = self.fields
        lex = self.lexicon
        issues: list[ValidationIssue] = []

        philosophy = answer_text(answers.get(f.philosophy)).strip()
        plan = answer_text(answers.get(f.plan)).strip()
        if philosophy and plan and not (self._themes(philosophy) & self._themes(plan)):
            issues.append(
                ValidationIssue(
                    type="inconsistent_philosophy_plan",
                    severity=Severity.MEDIUM,
                    field=f.plan,
                    message="The link between the business philosophy and the project plan is unclear",
                    suggestion="Explain how the values stated in the philosophy are reflected in the plan",
                )
            )

        target_age = answer_text(answers.get(f.target_age))
        initiatives = answer_text(answers.get(f.initiatives))
        if contains_any(target_age, lex.senior_keywords) and contains_any(initiatives, lex.social_media_keywords):
            issues.append(
                ValidationIssue(
                    type="target_initiative_mismatch",
                    severity=Severity.LOW,
                    field=f.initiatives,
                    message="Explaining why social media suits a senior audience makes the plan more convincing",
                    suggestion="Show that the target group uses social media, or how word spreads through their families",
                )
            )
        return issues

    def check_sales_connection(self, answers: Mapping[str, Any]) -> list[ValidationIssue]:
        f = self.fields
        lex = self.lexicon
        combined = "\n".join(
            (answer_text(answers.get(f.plan)), answer_text(answers.get(f.efficiency_plan)))
        )
        if contains_any(combined, lex.efficiency_keywords) and not contains_any(combined, lex.sales_keywords):
            return [
                ValidationIssue(
                    type="missing_sales_connection",
                    severity=Severity.HIGH,
                    field=f.plan,
                    message="It is unclear how the efficiency measures lead to new sales channels",
                    suggestion=(
                        "State how the time or cost saved will be used to win new customers or increase sales"
                    ),
                )
            ]
        return []
