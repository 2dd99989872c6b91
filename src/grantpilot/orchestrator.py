"""Per-turn decision policy.

Each answered question runs through a fixed chain of checks; the first
check that produces a decision ends the turn:

  guard -> assess -> flag_critical -> structured_insert -> deep_dive
        -> suggest -> flag_high -> proceed

The chain is a LangGraph state graph over a plain dict. The session inside
the state is a fork of the caller's value, so the caller only sees changes
through the returned ``TurnDecision``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from langgraph.graph import END, StateGraph

from .answers import answer_text, is_answered
from .depth import DepthEvaluator
from .gaps import GapDetector, describe_elements, improvement_suggestion
from .industry import get_business_detail_question, get_industry_questions
from .llm import FollowUpFailure, FollowUpProduced, FollowUpRequest, NoFollowUp, request_follow_up
from .question_graph import FREE_TEXT_TYPES, QuestionGraph, ResolvedQuestion
from .rubric import CompletenessScorer
from .state_schema import AgentSession, AgentStatus, SessionGuardExceeded, Severity, TurnAction
from .trace import build_turn_trace
from .validation import ValidationEngine

logger = logging.getLogger(__name__)

DETAIL_PREFIX = "detail-"
INDUSTRY_PREFIX = "industry-"


@dataclass(frozen=True, slots=True)
class OrchestratorConfig:
    max_questions: int = 50
    max_deep_dive_per_question: int = 5
    deep_dive_min_depth: int = 4
    follow_up_timeout_s: float = 15.0
    milestone_question_ids: tuple[str, ...] = ("Q2-13", "Q2-12")
    business_category_field: str = "Q1-1"
    submit_threshold: int = 80


@dataclass(frozen=True, slots=True)
class TurnDecision:
    action: TurnAction
    message: str | None
    data: dict[str, Any] | None
    session: AgentSession
    trace: dict = field(default_factory=dict)

    @property
    def requires_answer(self) -> bool:
        return self.action in (TurnAction.BUSINESS_DETAIL, TurnAction.INDUSTRY_QUESTION, TurnAction.DEEP_DIVE)

    def as_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "message": self.message,
            "data": self.data,
            "status": self.session.status.value,
            "trace": self.trace,
        }


class OrchestrationPolicy:
    def __init__(
        self,
        questions: QuestionGraph,
        config: OrchestratorConfig | None = None,
        validator: ValidationEngine | None = None,
        depth_evaluator: DepthEvaluator | None = None,
        gap_detector: GapDetector | None = None,
        scorer: CompletenessScorer | None = None,
        follow_up_service: Any | None = None,
    ):
        self.questions = questions
        self.config = config or OrchestratorConfig()
        self.validator = validator or ValidationEngine()
        self.depth_evaluator = depth_evaluator or DepthEvaluator()
        self.gap_detector = gap_detector or GapDetector()
        self.scorer = scorer or CompletenessScorer()
        self.follow_up_service = follow_up_service
        self.flow = self._build_flow()

    def _build_flow(self) -> Any:
        builder = StateGraph(dict)

        chain: list[tuple[str, Callable[[dict], dict]]] = [
            ("guard", self._node_guard),
            ("assess", self._node_assess),
            ("flag_critical", self._node_flag_critical),
            ("structured_insert", self._node_structured_insert),
            ("deep_dive", self._node_deep_dive),
            ("suggest", self._node_suggest),
            ("flag_high", self._node_flag_high),
            ("proceed", self._node_proceed),
        ]
        for name, fn in chain:
            builder.add_node(name, fn)

        builder.set_entry_point("guard")
        for (name, _), (next_name, _) in zip(chain, chain[1:]):
            builder.add_conditional_edges(
                name,
                self._route_after,
                {"decided": END, "continue": next_name},
            )
        builder.add_edge("proceed", END)
        return builder.compile()

    @staticmethod
    def _route_after(state: dict) -> str:
        return "decided" if state.get("decision") else "continue"

    @staticmethod
    def _decide(state: dict, action: TurnAction, message: str | None, data: dict[str, Any] | None) -> dict:
        state["decision"] = {"action": action, "message": message, "data": data}
        return state

    # ------------------------------------------------------------------
    # Question lookup
    # ------------------------------------------------------------------

    def question_info(self, question_id: str, answers: Mapping[str, Any], session: AgentSession) -> tuple[str, str]:
        """(question_type, text) for catalogue, inserted and deep-dive questions alike."""
        issued = session.issued_questions.get(question_id)
        if issued is not None:
            return issued.get("type") or "textarea", issued.get("text") or ""
        node = self.questions.get(question_id)
        if node is not None:
            resolved = self.questions.resolve(node, answers)
            return resolved.question_type, resolved.text
        return "textarea", ""

    def _missing_elements(self, state: dict) -> list[str]:
        if "missing_elements" not in state:
            session: AgentSession = state["session"]
            root = session.root_parent(state["question_id"])
            state["missing_elements"] = self.gap_detector.missing_elements(
                state["question_id"],
                state["answer"],
                {"parent_question_id": root, "answers": state["answers"]},
            )
        return state["missing_elements"]

    def _context_snapshot(self, answers: Mapping[str, Any]) -> dict[str, Any]:
        recent = list(answers.items())[-8:]
        return {
            "business_category": answers.get(self.config.business_category_field),
            "answered_count": len(answers),
            "recent_answers": {k: answer_text(v)[:300] for k, v in recent},
        }

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def _node_guard(self, state: dict) -> dict:
        session: AgentSession = state["session"]
        exhausted: SessionGuardExceeded | None = None
        try:
            session.ensure_turn_budget(self.config.max_questions)
        except SessionGuardExceeded as e:
            exhausted = e

        old = session.turn_count
        session.turn_count += 1
        session.log_update("turn_count", old, session.turn_count, "answer_received")

        if exhausted is not None:
            logger.info("Session %s: %s, forcing proceed", session.session_id, exhausted)
            session.log_update("turn_guard", exhausted.turn_count, exhausted.limit, "session_guard_exceeded")
            return self._decide(
                state,
                TurnAction.PROCEED,
                "Enough information has been collected. Let's move on to the next step.",
                {"reason": "turn_budget_exhausted"},
            )
        return state

    def _node_assess(self, state: dict) -> dict:
        session: AgentSession = state["session"]
        answers = state["answers"]

        issues = self.validator.validate(answers)
        state["issues"] = issues
        fresh = session.remember_issues(issues)
        if fresh:
            session.log_update("issues_seen", None, [list(i.key) for i in fresh], "validation")

        report = self.scorer.score(answers)
        state["completeness"] = report
        old = session.last_completeness
        session.last_completeness = report.overall
        if old != report.overall:
            session.log_update("completeness", old, report.overall, "rubric_score")
        return state

    def _node_flag_critical(self, state: dict) -> dict:
        critical = [i for i in state["issues"] if i.severity == Severity.CRITICAL]
        if not critical:
            return state
        session: AgentSession = state["session"]
        session.set_status(AgentStatus.VALIDATING, "critical_issue")
        issue = critical[0]
        return self._decide(
            state,
            TurnAction.FLAG_CRITICAL,
            f"Critical issue detected\n\n{issue.message}\n\n{issue.suggestion}",
            {
                "issue": issue.as_dict(),
                "critical_issues": [i.as_dict() for i in critical],
                "requires_correction": True,
            },
        )

    def _pending_insert(
        self, question_id: str, answers: Mapping[str, Any], session: AgentSession
    ) -> tuple[TurnAction, ResolvedQuestion] | None:
        category = answers.get(self.config.business_category_field)
        if not category:
            return None
        triggered = (
            question_id in self.config.milestone_question_ids
            or question_id.startswith(DETAIL_PREFIX)
            or question_id.startswith(INDUSTRY_PREFIX)
        )
        if not triggered:
            return None

        def fresh(qid: str) -> bool:
            return qid not in session.inserted_question_ids and not is_answered(answers, qid)

        detail = get_business_detail_question(category)
        if detail is not None and fresh(DETAIL_PREFIX + detail.id):
            return TurnAction.BUSINESS_DETAIL, ResolvedQuestion(
                id=DETAIL_PREFIX + detail.id,
                text=detail.question,
                placeholder=detail.placeholder,
                help_text=detail.help_text,
                kind="business_detail",
            )
        for template in get_industry_questions(category):
            if fresh(INDUSTRY_PREFIX + template.id):
                return TurnAction.INDUSTRY_QUESTION, ResolvedQuestion(
                    id=INDUSTRY_PREFIX + template.id,
                    text=template.question,
                    placeholder=template.placeholder,
                    help_text=template.help_text,
                    kind="industry",
                )
        return None

    def _node_structured_insert(self, state: dict) -> dict:
        session: AgentSession = state["session"]
        pending = self._pending_insert(state["question_id"], state["answers"], session)
        if pending is None:
            return state
        action, question = pending
        session.inserted_question_ids.add(question.id)
        session.issue_question(question.as_dict(), action.value)
        if action == TurnAction.BUSINESS_DETAIL:
            message = "Please tell us a little more about what makes your business distinctive."
        else:
            message = "A few questions tailored to your industry."
        return self._decide(state, action, message, {"question": question.as_dict()})

    def _node_deep_dive(self, state: dict) -> dict:
        session: AgentSession = state["session"]
        question_id = state["question_id"]
        question_type, question_text = self.question_info(question_id, state["answers"], session)
        state["question_type"] = question_type
        if question_type not in FREE_TEXT_TYPES:
            return state

        depth = self.depth_evaluator.depth(state["answer"], question_type)
        state["depth"] = depth
        session.log_update("answer_depth", None, depth, question_id)
        if depth >= self.config.deep_dive_min_depth:
            return state

        root = session.root_parent(question_id)
        count = session.deep_dive_count(root)
        if count >= self.config.max_deep_dive_per_question:
            session.log_update("deep_dive_guard", count, self.config.max_deep_dive_per_question, root)
            return state
        if self.follow_up_service is None:
            return state

        missing = self._missing_elements(state)
        if not missing:
            session.log_update("follow_up", None, "no_missing_elements", question_id)
            return state
        request = FollowUpRequest(
            parent_question_id=root,
            parent_question_text=question_text,
            user_answer=answer_text(state["answer"]),
            missing_elements=tuple(missing),
            context_snapshot=self._context_snapshot(state["answers"]),
        )
        result = request_follow_up(self.follow_up_service, request, self.config.follow_up_timeout_s)
        if isinstance(result, FollowUpFailure):
            session.log_update("follow_up", None, result.error, "external_service_failure")
            return state
        if isinstance(result, NoFollowUp):
            session.log_update("follow_up", None, result.reason, "no_follow_up")
            return state
        if not isinstance(result, FollowUpProduced):
            raise TypeError(f"Unsupported follow-up result: {type(result).__name__}")

        response = result.response
        question = ResolvedQuestion(
            id=f"{root}-dive-{count + 1}",
            text=response.question_text,
            placeholder=response.placeholder_example or None,
            kind="deep_dive",
            parent_question_id=root,
            focus_element=response.targeted_missing_element,
        )
        session.record_deep_dive(root, question.id)
        session.issue_question(question.as_dict(), "deep_dive")
        session.set_status(AgentStatus.DEEP_DIVING, "deep_dive_issued")
        return self._decide(
            state,
            TurnAction.DEEP_DIVE,
            "Let's make this answer more concrete.",
            {"question": question.as_dict(), "missing_elements": missing, "depth": depth},
        )

    def _node_suggest(self, state: dict) -> dict:
        if state.get("question_type") not in FREE_TEXT_TYPES:
            return state
        missing = self._missing_elements(state)
        if not missing:
            return state
        session: AgentSession = state["session"]
        root = session.root_parent(state["question_id"])
        suggestion = improvement_suggestion(root, missing)
        session.suggestions.append({"question_id": state["question_id"], "suggestion": suggestion})
        session.set_status(AgentStatus.SUGGESTING, "gaps_detected")
        return self._decide(
            state,
            TurnAction.SUGGEST_IMPROVEMENT,
            suggestion,
            {
                "question_id": state["question_id"],
                "missing_elements": missing,
                "labels": describe_elements(missing),
                "optional": True,
            },
        )

    def _node_flag_high(self, state: dict) -> dict:
        high = [i for i in state["issues"] if i.severity == Severity.HIGH]
        if not high:
            return state
        issue = high[0]
        return self._decide(
            state,
            TurnAction.FLAG_HIGH,
            f"Recommended improvement\n\n{issue.message}\n\n{issue.suggestion}",
            {"issue": issue.as_dict(), "optional": False},
        )

    def _node_proceed(self, state: dict) -> dict:
        session: AgentSession = state["session"]
        if session.status != AgentStatus.COMPLETE:
            session.set_status(AgentStatus.ANALYZING, "proceed")
        return self._decide(state, TurnAction.PROCEED, None, None)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def decide(
        self,
        question_id: str,
        answer: Any,
        answers: Mapping[str, Any],
        session: AgentSession,
    ) -> TurnDecision:
        """``answers`` must already contain ``answer`` under ``question_id``."""
        working = session.fork()
        mark = len(working.value_updates)
        result = self.flow.invoke(
            {
                "question_id": question_id,
                "answer": answer,
                "answers": dict(answers),
                "session": working,
            }
        )
        working = result["session"]
        decision = result["decision"]
        action: TurnAction = decision["action"]
        trace = build_turn_trace(
            working,
            routing_decision=action.value,
            next_question_reason="awaiting_inserted_answer" if decision["data"] and "question" in decision["data"] else "resolver",
            since=mark,
        )
        return TurnDecision(
            action=action,
            message=decision["message"],
            data=decision["data"],
            session=working,
            trace=trace,
        )
