"""Weighted completeness rubric.

Each criterion lists the answer fields it needs; a criterion scores the share
of those fields that are satisfied, and the overall score is the
weight-normalized mean. Rounding is half-up: 12.5 becomes 13.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Iterable, Mapping

from .answers import is_satisfied

GAP_THRESHOLD = 80


def round_half_up(value: Fraction | float | int) -> int:
    return math.floor(Fraction(value) + Fraction(1, 2))


@dataclass(frozen=True, slots=True)
class CriterionDefinition:
    id: str
    name: str
    weight: int
    required_fields: tuple[str, ...]
    description: str = ""


@dataclass(frozen=True, slots=True)
class RubricConfig:
    criteria: tuple[CriterionDefinition, ...]

    def __post_init__(self) -> None:
        if not self.criteria:
            raise ValueError("rubric needs at least one criterion")
        seen: set[str] = set()
        for c in self.criteria:
            if c.id in seen:
                raise ValueError(f"duplicate criterion id: {c.id}")
            seen.add(c.id)
            if c.weight <= 0:
                raise ValueError(f"criterion {c.id} must have a positive weight")
            if not c.required_fields:
                raise ValueError(f"criterion {c.id} lists no required fields")

    @property
    def total_weight(self) -> int:
        return sum(c.weight for c in self.criteria)

    def all_fields(self) -> list[str]:
        out: list[str] = []
        for c in self.criteria:
            out.extend(f for f in c.required_fields if f not in out)
        return out

    @classmethod
    def default(cls) -> "RubricConfig":
        return cls(criteria=tuple(CriterionDefinition(**row) for row in DEFAULT_RUBRIC_TABLE))


DEFAULT_RUBRIC_TABLE = [
    {
        "id": "aligned_with_criteria",
        "name": "Written along the review criteria",
        "weight": 10,
        "required_fields": ("Q2-5", "Q3-5", "Q5-1"),
        "description": "Covers what the reviewers look for",
    },
    {
        "id": "clear_expression",
        "name": "Easy-to-understand wording",
        "weight": 8,
        "required_fields": ("Q2-5", "Q5-1"),
    },
    {
        "id": "specific_target",
        "name": "Specific target customers",
        "weight": 15,
        "required_fields": ("Q3-1", "Q3-1-1", "Q3-2"),
    },
    {
        "id": "logical_structure",
        "name": "Logical structure",
        "weight": 15,
        "required_fields": ("Q3-5", "Q5-1", "Q5-7", "Q5-8", "Q5-9"),
        "description": "Current state, problem, initiative and effect connect",
    },
    {
        "id": "numerical_evidence",
        "name": "Backed by numbers",
        "weight": 15,
        "required_fields": ("Q2-7-1", "Q2-7-2", "Q2-7-3", "Q2-11", "Q2-12", "Q5-8", "Q5-9"),
    },
    {
        "id": "before_after",
        "name": "Clear before and after",
        "weight": 12,
        "required_fields": ("Q5-8", "Q5-9", "Q5-14"),
    },
    {
        "id": "swot_analysis",
        "name": "Strengths, weaknesses and market needs",
        "weight": 10,
        "required_fields": ("Q3-5", "Q3-6"),
    },
    {
        "id": "consistency",
        "name": "Consistency of management policy and project",
        "weight": 10,
        "required_fields": ("Q2-5", "Q5-1", "Q5-10"),
    },
    {
        "id": "digital_utilization",
        "name": "Use of digital technology",
        "weight": 10,
        "required_fields": ("Q3-7", "Q5-2", "Q5-3", "Q5-4"),
    },
    {
        "id": "cost_transparency",
        "name": "Transparent and appropriate costs",
        "weight": 8,
        "required_fields": ("Q5-6", "Q5-6-1"),
    },
    {
        "id": "organized_info",
        "name": "Well-organized information",
        "weight": 7,
        "required_fields": ("Q5-5", "Q5-6"),
    },
]


@dataclass(frozen=True, slots=True)
class CriterionScore:
    id: str
    name: str
    weight: int
    score: int
    status: str
    satisfied_fields: tuple[str, ...]
    missing_fields: tuple[str, ...]

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "weight": self.weight,
            "score": self.score,
            "status": self.status,
            "satisfied_fields": list(self.satisfied_fields),
            "missing_fields": list(self.missing_fields),
        }


@dataclass(frozen=True, slots=True)
class CompletenessReport:
    overall: int
    overall_status: str
    per_criterion: dict[str, CriterionScore]
    critical_gaps: list[CriterionScore] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for c in self.per_criterion.values() if c.status == status)

    def as_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall,
            "overall_status": self.overall_status,
            "per_criterion": {k: v.as_dict() for k, v in self.per_criterion.items()},
            "critical_gaps": [g.as_dict() for g in self.critical_gaps],
            "complete_criteria": self.count("complete"),
            "partial_criteria": self.count("partial"),
            "missing_criteria": self.count("missing"),
        }


def criterion_status(score: int) -> str:
    if score == 100:
        return "complete"
    if score >= 50:
        return "partial"
    return "missing"


def overall_status(score: int) -> str:
    if score >= 95:
        return "excellent"
    if score >= 80:
        return "good"
    if score >= 60:
        return "acceptable"
    return "insufficient"


class CompletenessScorer:
    def __init__(self, rubric: RubricConfig | None = None):
        self.rubric = rubric or RubricConfig.default()

    def score_criterion(self, criterion: CriterionDefinition, answers: Mapping[str, Any]) -> CriterionScore:
        satisfied = tuple(f for f in criterion.required_fields if is_satisfied(answers.get(f)))
        missing = tuple(f for f in criterion.required_fields if f not in satisfied)
        score = round_half_up(Fraction(len(satisfied) * 100, len(criterion.required_fields)))
        return CriterionScore(
            id=criterion.id,
            name=criterion.name,
            weight=criterion.weight,
            score=score,
            status=criterion_status(score),
            satisfied_fields=satisfied,
            missing_fields=missing,
        )

    def score(self, answers: Mapping[str, Any]) -> CompletenessReport:
        per_criterion = {c.id: self.score_criterion(c, answers) for c in self.rubric.criteria}
        weighted = sum(s.score * s.weight for s in per_criterion.values())
        overall = round_half_up(Fraction(weighted) / Fraction(self.rubric.total_weight))
        gaps = sorted((s for s in per_criterion.values() if s.score < GAP_THRESHOLD), key=lambda s: s.score)
        return CompletenessReport(
            overall=overall,
            overall_status=overall_status(overall),
            per_criterion=per_criterion,
            critical_gaps=gaps,
        )


_STATUS_LINES = {
    "excellent": "Excellent. The application meets the review criteria at a high level.",
    "good": "Good. A little more and the application will be complete.",
    "acceptable": "The basics are in place, but more detail will raise the chance of approval.",
    "insufficient": "Important information is missing. Focus on the points below.",
}


def progress_summary(report: CompletenessReport) -> str:
    lines = [
        f"[Application completeness: {report.overall}%]",
        "",
        _STATUS_LINES[report.overall_status],
        "",
        f"Complete: {report.count('complete')}",
        f"Partial: {report.count('partial')}",
        f"Missing: {report.count('missing')}",
    ]
    if report.critical_gaps:
        lines += ["", "[Top priorities]"]
        for index, gap in enumerate(report.critical_gaps[:3], start=1):
            lines.append(f"{index}. {gap.name} ({gap.score}%)")
    return "\n".join(lines)


def missing_info_report(report: CompletenessReport) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for gap in report.critical_gaps:
        for field_id in gap.missing_fields:
            out.append(
                {
                    "criterion_id": gap.id,
                    "criterion_name": gap.name,
                    "field_id": field_id,
                    "priority": "high" if gap.score < 50 else "medium",
                    "impact": f"Without this, '{gap.name}' stays at {gap.score}%",
                }
            )
    return out


def suggest_next_questions(report: CompletenessReport, available_ids: Iterable[str]) -> list[str]:
    """Available question ids ordered by the weakest criterion they would improve."""
    available = set(available_ids)
    ordered: list[str] = []
    for gap in report.critical_gaps:
        for field_id in gap.missing_fields:
            if field_id in available and field_id not in ordered:
                ordered.append(field_id)
    return ordered


def check_progress_and_suggest_next_focus(report: CompletenessReport, available_ids: Iterable[str]) -> dict[str, Any]:
    summary = progress_summary(report)
    if report.overall >= 95:
        return {"is_complete": True, "message": "The application is in excellent shape.", "summary": summary}
    if not report.critical_gaps:
        return {"is_complete": False, "message": "Progress is on track.", "summary": summary}
    top = report.critical_gaps[0]
    available = set(available_ids)
    recommended = next((f for f in top.missing_fields if f in available), None)
    return {
        "is_complete": False,
        "message": f"Next, strengthen '{top.name}'.",
        "summary": summary,
        "recommended_question": recommended,
        "focus_area": top.name,
    }
