from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .budget import BudgetRules
from .runtime import load_runtime_configuration


@dataclass(frozen=True, slots=True)
class ReadinessGateResult:
    gate: str
    passed: bool
    details: str


@dataclass(frozen=True, slots=True)
class ReadinessReport:
    passed: bool
    gates: list[ReadinessGateResult]

    def gate(self, name: str) -> ReadinessGateResult | None:
        return next((g for g in self.gates if g.gate == name), None)


def _budget_rule_problems(rules: BudgetRules) -> list[str]:
    problems = []
    for name in ("standard_rate", "loss_making_rate"):
        rate = getattr(rules, name)
        if not (0 < rate <= 1):
            problems.append(f"{name}={rate}")
    if rules.loss_making_rate < rules.standard_rate:
        problems.append("loss_making_rate<standard_rate")
    if rules.fixed_cap > rules.subsidy_limit:
        problems.append("fixed_cap>subsidy_limit")
    return problems


def run_readiness_review(
    *,
    executed_test_count: int,
    minimum_test_count: int = 25,
    questions_path: Path | str | None = None,
    rubric_path: Path | str | None = None,
    budget_rules_path: Path | str | None = None,
) -> ReadinessReport:
    gates: list[ReadinessGateResult] = []

    try:
        configuration, assets = load_runtime_configuration(
            questions_path=questions_path,
            rubric_path=rubric_path,
            budget_rules_path=budget_rules_path,
        )
    except Exception as exc:  # noqa: BLE001
        configuration = None
        gates.append(
            ReadinessGateResult(
                gate="runtime_assets_loaded",
                passed=False,
                details=f"error:{type(exc).__name__}:{exc}",
            )
        )
    else:
        gates.append(
            ReadinessGateResult(
                gate="runtime_assets_loaded",
                passed=assets.question_count > 0 and assets.criterion_count > 0,
                details=f"questions={assets.question_count},criteria={assets.criterion_count}",
            )
        )

    if configuration is not None:
        unknown = [f for f in configuration.rubric.all_fields() if f not in configuration.questions]
        gates.append(
            ReadinessGateResult(
                gate="rubric_fields_known",
                passed=not unknown,
                details="ok" if not unknown else "unknown:" + ",".join(unknown),
            )
        )
        problems = _budget_rule_problems(configuration.budget_rules)
        gates.append(
            ReadinessGateResult(
                gate="budget_rules_consistent",
                passed=not problems,
                details="ok" if not problems else ";".join(problems),
            )
        )

    tests_ok = executed_test_count >= minimum_test_count
    gates.append(
        ReadinessGateResult(
            gate="test_coverage_threshold",
            passed=tests_ok,
            details=f"executed={executed_test_count},minimum={minimum_test_count}",
        )
    )

    return ReadinessReport(passed=all(g.passed for g in gates), gates=gates)
