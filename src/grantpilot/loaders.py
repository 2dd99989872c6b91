"""Workbook-backed configuration: rubric, question catalogue and budget rules."""
from __future__ import annotations

import dataclasses
from fractions import Fraction
from pathlib import Path
from typing import Any

from .budget import BudgetRules
from .ingestion import (
    BUDGET_RULES_CONTRACT,
    QUESTION_CONTRACT,
    RUBRIC_CONTRACT,
    ContractError,
    ingest_sheet_with_contract,
)
from .question_graph import QuestionGraph, ResolverRegistry
from .rubric import CriterionDefinition, RubricConfig

_QUESTION_COLUMN_KEYS = {
    "Question ID": "id",
    "Priority": "priority",
    "Type": "type",
    "Dependencies": "dependencies",
    "Text": "text",
    "Text Resolver": "text_resolver",
    "Options": "options",
    "Options Resolver": "options_resolver",
    "Condition": "condition",
    "Required": "required",
    "Help Text": "help_text",
    "Help Resolver": "help_resolver",
    "Placeholder": "placeholder",
    "Placeholder Resolver": "placeholder_resolver",
}


def _split(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    text = str(value).replace("\n", ",").replace(";", ",")
    return tuple(part.strip() for part in text.split(",") if part.strip())


def load_rubric(workbook_path: Path | str) -> RubricConfig:
    records, _ = ingest_sheet_with_contract(workbook_path, RUBRIC_CONTRACT)
    criteria = []
    for record in records:
        criterion_id = str(record["Criterion ID"]).strip()
        try:
            weight = int(record["Weight"])
        except (TypeError, ValueError):
            raise ContractError(f"Criterion {criterion_id} has a non-numeric weight: {record['Weight']!r}") from None
        criteria.append(
            CriterionDefinition(
                id=criterion_id,
                name=str(record.get("Name") or criterion_id).strip(),
                weight=weight,
                required_fields=_split(record["Required Fields"]),
                description=str(record.get("Description") or "").strip(),
            )
        )
    try:
        return RubricConfig(criteria=tuple(criteria))
    except ValueError as e:
        raise ContractError(f"Invalid rubric: {e}") from e


def load_question_records(workbook_path: Path | str) -> list[dict[str, Any]]:
    records, _ = ingest_sheet_with_contract(workbook_path, QUESTION_CONTRACT)
    return [
        {_QUESTION_COLUMN_KEYS[col]: value for col, value in record.items() if col in _QUESTION_COLUMN_KEYS}
        for record in records
    ]


def load_question_graph(workbook_path: Path | str, registry: ResolverRegistry | None = None) -> QuestionGraph:
    """Raises ``GraphConfigurationError`` for cycles, unknown dependencies or resolvers."""
    return QuestionGraph.from_records(load_question_records(workbook_path), registry=registry)


def _as_fraction(value: object) -> Fraction:
    if isinstance(value, float):
        return Fraction(value).limit_denominator(1000)
    return Fraction(str(value).strip())


_BUDGET_SETTING_PARSERS = {
    "restricted_category": lambda v: str(v).strip(),
    "restricted_aliases": _split,
    "restricted_ratio": _as_fraction,
    "fixed_cap": lambda v: int(v),
    "standard_rate": _as_fraction,
    "loss_making_rate": _as_fraction,
    "subsidy_limit": lambda v: int(v),
    "expense_field": lambda v: str(v).strip(),
    "loss_field": lambda v: str(v).strip(),
}


def load_budget_rules(workbook_path: Path | str, base: BudgetRules | None = None) -> BudgetRules:
    records, _ = ingest_sheet_with_contract(workbook_path, BUDGET_RULES_CONTRACT)
    overrides: dict[str, Any] = {}
    for record in records:
        setting = str(record["Setting"]).strip().lower().replace(" ", "_")
        parser = _BUDGET_SETTING_PARSERS.get(setting)
        if parser is None:
            raise ContractError(f"Unknown budget setting: {record['Setting']}")
        try:
            overrides[setting] = parser(record["Value"])
        except (TypeError, ValueError, ZeroDivisionError):
            raise ContractError(f"Invalid value for {setting}: {record['Value']!r}") from None
    try:
        return dataclasses.replace(base or BudgetRules(), **overrides)
    except ValueError as e:
        raise ContractError(f"Invalid budget rules: {e}") from e
