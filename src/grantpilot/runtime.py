from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .budget import BudgetRules
from .catalogue import build_default_graph, build_default_registry
from .engine import InterviewEngine
from .loaders import load_budget_rules, load_question_graph, load_rubric
from .orchestrator import OrchestratorConfig
from .question_graph import QuestionGraph
from .rubric import RubricConfig


@dataclass(frozen=True, slots=True)
class RuntimeAssets:
    question_count: int
    criterion_count: int
    rubric_field_count: int
    budget_rules: BudgetRules


@dataclass(frozen=True, slots=True)
class RuntimeConfiguration:
    questions: QuestionGraph
    rubric: RubricConfig
    budget_rules: BudgetRules


def load_runtime_configuration(
    *,
    questions_path: Path | str | None = None,
    rubric_path: Path | str | None = None,
    budget_rules_path: Path | str | None = None,
) -> tuple[RuntimeConfiguration, RuntimeAssets]:
    """Workbook paths left as ``None`` fall back to the built-in catalogue, rubric and rules."""
    budget_rules = load_budget_rules(budget_rules_path) if budget_rules_path else BudgetRules()
    if questions_path:
        questions = load_question_graph(questions_path, registry=build_default_registry(budget_rules))
    else:
        questions = build_default_graph(budget_rules)
    rubric = load_rubric(rubric_path) if rubric_path else RubricConfig.default()

    configuration = RuntimeConfiguration(questions=questions, rubric=rubric, budget_rules=budget_rules)
    assets = RuntimeAssets(
        question_count=len(questions),
        criterion_count=len(rubric.criteria),
        rubric_field_count=len(rubric.all_fields()),
        budget_rules=budget_rules,
    )
    return configuration, assets


def build_engine_from_excels(
    *,
    questions_path: Path | str | None = None,
    rubric_path: Path | str | None = None,
    budget_rules_path: Path | str | None = None,
    config: OrchestratorConfig | None = None,
    follow_up_service: Any | None = None,
) -> tuple[InterviewEngine, RuntimeAssets]:
    configuration, assets = load_runtime_configuration(
        questions_path=questions_path,
        rubric_path=rubric_path,
        budget_rules_path=budget_rules_path,
    )
    engine = InterviewEngine(
        configuration.questions,
        config=config,
        rubric=configuration.rubric,
        budget_rules=configuration.budget_rules,
        follow_up_service=follow_up_service,
    )
    return engine, assets
