from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Mapping

from .answers import AnswerSet, go_back, record_answer, skip_answer
from .budget import BudgetRules
from .catalogue import build_default_graph
from .depth import DepthEvaluator
from .gaps import GapDetector
from .orchestrator import OrchestrationPolicy, OrchestratorConfig, TurnDecision
from .policy_tables import Lexicon
from .question_graph import QuestionGraph, ResolvedQuestion
from .resolver import QuestionResolver
from .rubric import (
    CompletenessReport,
    CompletenessScorer,
    RubricConfig,
    check_progress_and_suggest_next_focus,
    missing_info_report,
    progress_summary,
    suggest_next_questions,
)
from .state_schema import AgentSession, AgentStatus, Severity
from .validation import ValidationEngine, ValidationFields, ValidationReport

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 5


@dataclass(slots=True, frozen=True)
class ScenarioTurn:
    question_id: str
    answer: Any


@dataclass(slots=True)
class TurnRecord:
    turn_index: int
    question_id: str
    action: str
    status: str
    next_question: str | None
    completeness: int | None
    latency_ms: float


@dataclass(slots=True)
class ConversationRun:
    session_id: str
    records: list[TurnRecord]
    answers: AnswerSet = field(default_factory=dict)
    session: AgentSession | None = None

    @property
    def average_latency_ms(self) -> float:
        if not self.records:
            return 0.0
        return sum(r.latency_ms for r in self.records) / len(self.records)

    @property
    def actions(self) -> list[str]:
        return [r.action for r in self.records]

    def traversal_snapshot(self) -> list[dict]:
        return [
            {
                "turn_index": r.turn_index,
                "question_id": r.question_id,
                "action": r.action,
                "status": r.status,
                "next_question": r.next_question,
            }
            for r in self.records
        ]


@dataclass(slots=True)
class FinalCheckResult:
    can_submit: bool
    completeness: CompletenessReport
    validation: ValidationReport
    recommendations: list[dict[str, Any]]
    message: str
    session: AgentSession
    unanswered_required: list[str] = field(default_factory=list)


class InterviewEngine:
    """UI-facing entry point: next question, per-turn decision, progress and final check."""

    def __init__(
        self,
        questions: QuestionGraph | None = None,
        *,
        config: OrchestratorConfig | None = None,
        rubric: RubricConfig | None = None,
        budget_rules: BudgetRules | None = None,
        validation_fields: ValidationFields | None = None,
        lexicon: Lexicon | None = None,
        follow_up_service: Any | None = None,
    ):
        self.budget_rules = budget_rules or BudgetRules()
        self.questions = questions or build_default_graph(self.budget_rules)
        self.config = config or OrchestratorConfig()
        self.resolver = QuestionResolver(self.questions)
        self.scorer = CompletenessScorer(rubric)
        self.validator = ValidationEngine(validation_fields, self.budget_rules, lexicon)
        self.policy = OrchestrationPolicy(
            self.questions,
            config=self.config,
            validator=self.validator,
            depth_evaluator=DepthEvaluator(lexicon),
            gap_detector=GapDetector(lexicon),
            scorer=self.scorer,
            follow_up_service=follow_up_service,
        )

    def start_session(self, session_id: str | None = None) -> AgentSession:
        return AgentSession.start(session_id or uuid.uuid4().hex)

    def resolve_next(self, answers: Mapping[str, Any]) -> ResolvedQuestion | None:
        return self.resolver.next(answers)

    def evaluate_turn(
        self,
        question_id: str,
        answer: Any,
        answers: Mapping[str, Any],
        session: AgentSession,
    ) -> TurnDecision:
        updated = record_answer(answers, question_id, answer)
        decision = self.policy.decide(question_id, answer, updated, session)
        logger.debug("Turn %d on %s -> %s", decision.session.turn_count, question_id, decision.action.value)
        return decision

    def go_back(self, answers: Mapping[str, Any]) -> tuple[AnswerSet, str | None]:
        return go_back(answers)

    def skip_question(self, question_id: str, answers: Mapping[str, Any]) -> AnswerSet:
        """Records an explicit skip. Only optional catalogue questions can be skipped."""
        if question_id in self.questions and self.questions.get(question_id).required:
            raise ValueError(f"Question {question_id} is required and cannot be skipped")
        return skip_answer(answers, question_id)

    def check_progress(self, answers: Mapping[str, Any]) -> dict[str, Any]:
        report = self.scorer.score(answers)
        available = self.resolver.available_question_ids(answers)
        progress = check_progress_and_suggest_next_focus(report, available)
        progress["completeness"] = report.overall
        progress["overall_status"] = report.overall_status
        progress["suggested_questions"] = suggest_next_questions(report, available)
        progress["missing_info"] = missing_info_report(report)
        return progress

    def final_check(self, answers: Mapping[str, Any], session: AgentSession) -> FinalCheckResult:
        session = session.fork()
        session.set_status(AgentStatus.VALIDATING, "final_check")

        completeness = self.scorer.score(answers)
        validation = self.validator.report(answers)
        session.last_completeness = completeness.overall
        unanswered = self.resolver.required_reachable(answers)

        can_submit = (
            not unanswered
            and completeness.overall >= self.config.submit_threshold
            and validation.is_valid
        )
        grouped = validation.by_severity()
        recommendations = [
            i.as_dict() for i in grouped[Severity.CRITICAL.value] + grouped[Severity.HIGH.value]
        ][:MAX_RECOMMENDATIONS]

        lines = ["[Final check]", "", progress_summary(completeness), "", validation.summary(), ""]
        if can_submit:
            lines.append("The application is ready to submit.")
            session.set_status(AgentStatus.COMPLETE, "final_check_passed")
        else:
            if unanswered:
                lines.append(f"{len(unanswered)} required question(s) are still unanswered.")
            lines.append("Please address the points above before submitting.")

        return FinalCheckResult(
            can_submit=can_submit,
            completeness=completeness,
            validation=validation,
            recommendations=recommendations,
            message="\n".join(lines),
            session=session,
            unanswered_required=unanswered,
        )

    def run_scenario(
        self,
        turns: list[ScenarioTurn],
        *,
        session: AgentSession | None = None,
        answers: Mapping[str, Any] | None = None,
    ) -> ConversationRun:
        session = session or self.start_session()
        current: AnswerSet = dict(answers or {})
        records: list[TurnRecord] = []
        for idx, turn in enumerate(turns, start=1):
            start = perf_counter()
            decision = self.evaluate_turn(turn.question_id, turn.answer, current, session)
            current = record_answer(current, turn.question_id, turn.answer)
            session = decision.session
            if decision.data and "question" in decision.data:
                next_question = decision.data["question"]["id"]
            else:
                resolved = self.resolve_next(current)
                next_question = resolved.id if resolved else None
            latency_ms = round((perf_counter() - start) * 1000, 3)
            records.append(
                TurnRecord(
                    turn_index=idx,
                    question_id=turn.question_id,
                    action=decision.action.value,
                    status=session.status.value,
                    next_question=next_question,
                    completeness=session.last_completeness,
                    latency_ms=latency_ms,
                )
            )
        return ConversationRun(session_id=session.session_id, records=records, answers=current, session=session)
