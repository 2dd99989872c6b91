"""Expense parsing, subsidy arithmetic and budget-category rules.

All amounts are integer yen. Rates and ratios are ``Fraction`` values so the
floors and the restricted-share invariant are computed exactly.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Iterable, Mapping

from .answers import first_number
from .state_schema import Severity, ValidationIssue

_AMOUNT_RE = re.compile(r"(-?\d[\d,]*(?:\.\d+)?)\s*(万)?")
_CATEGORY_TAG_RE = re.compile(r"^\s*[\[【]([^\]】]+)[\]】]\s*")


@dataclass(frozen=True, slots=True)
class ExpenseLine:
    category: str
    description: str
    amount: int


@dataclass(frozen=True, slots=True)
class BudgetRules:
    restricted_category: str = "web"
    restricted_aliases: tuple[str, ...] = ("web", "website", "homepage", "ec site", "hp", "ウェブサイト", "ホームページ", "ecサイト")
    restricted_ratio: Fraction = Fraction(1, 4)
    fixed_cap: int = 500_000
    standard_rate: Fraction = Fraction(2, 3)
    loss_making_rate: Fraction = Fraction(3, 4)
    subsidy_limit: int = 500_000
    expense_field: str = "Q5-6"
    loss_field: str = "Q2-8"

    def __post_init__(self) -> None:
        if not (0 < self.restricted_ratio < 1):
            raise ValueError(f"restricted_ratio must be between 0 and 1, got {self.restricted_ratio}")
        if self.fixed_cap < 0 or self.subsidy_limit < 0:
            raise ValueError("caps must be non-negative")

    def is_restricted(self, category: str) -> bool:
        label = category.strip().lower()
        return label == self.restricted_category.lower() or label in {a.lower() for a in self.restricted_aliases}

    def mentions_restricted(self, text: str) -> bool:
        lowered = text.lower()
        return any(re.search(rf"(?<![a-z]){re.escape(a.lower())}(?![a-z])", lowered) for a in self.restricted_aliases)

    def is_loss_making(self, answers: Mapping[str, Any]) -> bool:
        profit = first_number(answers.get(self.loss_field))
        return profit is not None and profit < 0

    def rate_for(self, loss_making: bool) -> Fraction:
        return self.loss_making_rate if loss_making else self.standard_rate

    def max_restricted_cost(self, total: int) -> int:
        return math.floor(total * self.restricted_ratio)


def parse_amount(value: Any) -> int | None:
    """Yen amount from a number or text such as "300,000円" or "30万円"."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _AMOUNT_RE.search(str(value))
    if not match:
        return None
    amount = Fraction(match.group(1).replace(",", ""))
    if match.group(2):
        amount *= 10_000
    return math.floor(amount)


def _line_from_text(raw: str, rules: BudgetRules) -> ExpenseLine | None:
    text = raw.strip().lstrip("-・*").strip()
    if not text:
        return None
    category = None
    tag = _CATEGORY_TAG_RE.match(text)
    if tag:
        category = tag.group(1).strip()
        text = text[tag.end():]
    if ":" in text or "：" in text:
        description, _, amount_text = text.replace("：", ":").rpartition(":")
    else:
        description, amount_text = text, text
    amount = parse_amount(amount_text)
    if amount is None:
        return None
    description = description.strip() or text
    if category is None:
        category = rules.restricted_category if rules.mentions_restricted(description) else "general"
    return ExpenseLine(category=category, description=description, amount=amount)


def parse_expense_lines(value: Any, rules: BudgetRules | None = None) -> list[ExpenseLine]:
    """Accepts structured line items, a ``{label: amount}`` mapping or free text (one item per line)."""
    rules = rules or BudgetRules()
    if value is None:
        return []
    if isinstance(value, ExpenseLine):
        return [value]
    if isinstance(value, Mapping):
        if "amount" in value:
            return parse_expense_lines([value], rules)
        return [
            line
            for label, amount in value.items()
            if (line := _line_from_text(f"{label}: {amount}", rules)) is not None
        ]
    if isinstance(value, str):
        return [line for raw in value.splitlines() if (line := _line_from_text(raw, rules)) is not None]

    lines: list[ExpenseLine] = []
    for item in value:
        if isinstance(item, ExpenseLine):
            lines.append(item)
        elif isinstance(item, Mapping):
            amount = parse_amount(item.get("amount"))
            if amount is None:
                continue
            description = str(item.get("description") or item.get("name") or "").strip()
            category = str(item.get("category") or "").strip()
            if not category:
                category = rules.restricted_category if rules.mentions_restricted(description) else "general"
            lines.append(ExpenseLine(category=category, description=description, amount=amount))
        elif isinstance(item, str):
            line = _line_from_text(item, rules)
            if line is not None:
                lines.append(line)
    return lines


@dataclass(frozen=True, slots=True)
class SubsidyBreakdown:
    rate: Fraction
    non_restricted_total: int
    non_restricted_grant: int
    restricted_total: int
    restricted_grant: int
    total_expense: int
    total_grant: int

    def restricted_share_ok(self, ratio: Fraction) -> bool:
        return self.restricted_grant <= self.total_grant * ratio

    def as_dict(self) -> dict[str, Any]:
        return {
            "rate": str(self.rate),
            "non_restricted_total": self.non_restricted_total,
            "non_restricted_grant": self.non_restricted_grant,
            "restricted_total": self.restricted_total,
            "restricted_grant": self.restricted_grant,
            "total_expense": self.total_expense,
            "total_grant": self.total_grant,
        }


class SubsidyCalculator:
    def __init__(self, rules: BudgetRules | None = None):
        self.rules = rules or BudgetRules()

    def calculate(self, lines: Iterable[ExpenseLine], *, loss_making: bool = False) -> SubsidyBreakdown:
        rules = self.rules
        lines = list(lines)
        rate = rules.rate_for(loss_making)
        restricted_total = sum(l.amount for l in lines if rules.is_restricted(l.category))
        non_restricted_total = sum(l.amount for l in lines if not rules.is_restricted(l.category))
        non_restricted_grant = math.floor(non_restricted_total * rate)
        # restricted <= ratio * (non_restricted + restricted)  <=>  restricted <= non_restricted * ratio / (1 - ratio)
        share_cap = math.floor(non_restricted_grant * rules.restricted_ratio / (1 - rules.restricted_ratio))
        restricted_grant = min(math.floor(restricted_total * rate), share_cap, rules.fixed_cap)
        return SubsidyBreakdown(
            rate=rate,
            non_restricted_total=non_restricted_total,
            non_restricted_grant=non_restricted_grant,
            restricted_total=restricted_total,
            restricted_grant=restricted_grant,
            total_expense=non_restricted_total + restricted_total,
            total_grant=non_restricted_grant + restricted_grant,
        )

    def for_answers(self, answers: Mapping[str, Any]) -> SubsidyBreakdown:
        lines = parse_expense_lines(answers.get(self.rules.expense_field), self.rules)
        return self.calculate(lines, loss_making=self.rules.is_loss_making(answers))


def validate_expenses(lines: list[ExpenseLine], rules: BudgetRules, field: str | None = None) -> list[ValidationIssue]:
    field = field or rules.expense_field
    issues: list[ValidationIssue] = []
    restricted = [l for l in lines if rules.is_restricted(l.category)]
    if not restricted:
        return issues

    total = sum(l.amount for l in lines)
    web_cost = sum(l.amount for l in restricted)
    max_allowed = rules.max_restricted_cost(total)
    if web_cost > max_allowed:
        issues.append(
            ValidationIssue(
                type="web_cost_exceeded",
                severity=Severity.CRITICAL,
                field=field,
                message=f"Website-related costs exceed {rules.restricted_ratio} of the total ({web_cost:,} / {total:,} yen)",
                suggestion=f"Keep website-related costs at or below {max_allowed:,} yen",
                current_value=web_cost,
                recommended_value=max_allowed,
            )
        )
    if web_cost > rules.fixed_cap:
        issues.append(
            ValidationIssue(
                type="web_cost_limit",
                severity=Severity.CRITICAL,
                field=field,
                message=f"Website-related costs exceed the {rules.fixed_cap:,} yen cap ({web_cost:,} yen)",
                suggestion=f"Website-related costs can be at most {rules.fixed_cap:,} yen",
                current_value=web_cost,
                recommended_value=rules.fixed_cap,
            )
        )
    if len(restricted) == len(lines):
        issues.append(
            ValidationIssue(
                type="web_only_application",
                severity=Severity.CRITICAL,
                field=field,
                message="An application consisting only of website-related costs is not accepted",
                suggestion="Combine it with other expenses such as advertising or equipment",
                current_value=web_cost,
            )
        )
    return issues


def validate_breakdown(breakdown: SubsidyBreakdown, rules: BudgetRules, field: str | None = None) -> list[ValidationIssue]:
    field = field or rules.expense_field
    issues: list[ValidationIssue] = []
    if not breakdown.restricted_share_ok(rules.restricted_ratio):
        issues.append(
            ValidationIssue(
                type="restricted_grant_share_exceeded",
                severity=Severity.CRITICAL,
                field=field,
                message=(
                    f"The website-related grant ({breakdown.restricted_grant:,} yen) exceeds "
                    f"{rules.restricted_ratio} of the total grant ({breakdown.total_grant:,} yen)"
                ),
                suggestion="Reduce website-related costs or add other eligible expenses",
                current_value=breakdown.restricted_grant,
                recommended_value=math.floor(breakdown.total_grant * rules.restricted_ratio),
            )
        )
    if breakdown.total_grant > rules.subsidy_limit:
        issues.append(
            ValidationIssue(
                type="subsidy_limit_exceeded",
                severity=Severity.HIGH,
                field=field,
                message=f"The requested grant ({breakdown.total_grant:,} yen) exceeds the {rules.subsidy_limit:,} yen limit",
                suggestion=f"The grant will be capped at {rules.subsidy_limit:,} yen; adjust the expense plan accordingly",
                current_value=breakdown.total_grant,
                recommended_value=rules.subsidy_limit,
            )
        )
    return issues
