from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AgentStatus(str, Enum):
    ANALYZING = "analyzing"
    DEEP_DIVING = "deep_diving"
    VALIDATING = "validating"
    SUGGESTING = "suggesting"
    COMPLETE = "complete"


class TurnAction(str, Enum):
    PROCEED = "proceed"
    FLAG_CRITICAL = "flag_critical_issue"
    BUSINESS_DETAIL = "business_detail_question"
    INDUSTRY_QUESTION = "industry_question"
    DEEP_DIVE = "deep_dive"
    SUGGEST_IMPROVEMENT = "suggest_improvement"
    FLAG_HIGH = "flag_high_priority_issue"


class SessionGuardExceeded(RuntimeError):
    """Turn budget for the interview is used up; the policy forces ``proceed``."""

    def __init__(self, turn_count: int, limit: int):
        self.turn_count = turn_count
        self.limit = limit
        super().__init__(f"turn budget exhausted ({turn_count}/{limit})")


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    type: str
    severity: Severity
    field: str
    message: str
    suggestion: str
    current_value: Any = None
    recommended_value: Any = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, self.field)

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity.value,
            "field": self.field,
            "message": self.message,
            "suggestion": self.suggestion,
            "current_value": self.current_value,
            "recommended_value": self.recommended_value,
        }


@dataclass(slots=True)
class AgentSession:
    session_id: str
    status: AgentStatus = AgentStatus.ANALYZING
    turn_count: int = 0
    deep_dive_count_by_parent: dict[str, int] = field(default_factory=dict)
    deep_dive_parents: dict[str, str] = field(default_factory=dict)
    deep_dive_history: list[dict[str, Any]] = field(default_factory=list)
    inserted_question_ids: set[str] = field(default_factory=set)
    issued_questions: dict[str, dict[str, Any]] = field(default_factory=dict)
    suggestions: list[dict[str, Any]] = field(default_factory=list)
    issues_seen: list[ValidationIssue] = field(default_factory=list)
    last_completeness: int | None = None
    variables_used: list[str] = field(default_factory=list)
    value_updates: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def start(cls, session_id: str) -> "AgentSession":
        return cls(session_id=session_id)

    def fork(self) -> "AgentSession":
        """Independent copy; a turn never mutates the caller's session value."""
        return copy.deepcopy(self)

    def ensure_turn_budget(self, max_questions: int) -> None:
        if self.turn_count >= max_questions:
            raise SessionGuardExceeded(self.turn_count, max_questions)

    def root_parent(self, question_id: str) -> str:
        """Deep-dive answers count against the question that started the chain."""
        parent = question_id
        seen: set[str] = set()
        while parent in self.deep_dive_parents and parent not in seen:
            seen.add(parent)
            parent = self.deep_dive_parents[parent]
        return parent

    def deep_dive_count(self, question_id: str) -> int:
        return self.deep_dive_count_by_parent.get(self.root_parent(question_id), 0)

    def record_deep_dive(self, parent_id: str, deep_dive_id: str) -> None:
        root = self.root_parent(parent_id)
        old = self.deep_dive_count_by_parent.get(root, 0)
        self.deep_dive_count_by_parent[root] = old + 1
        self.deep_dive_parents[deep_dive_id] = root
        self.deep_dive_history.append({"parent_question_id": root, "deep_dive_question_id": deep_dive_id})
        self.log_update("deep_dive_count_by_parent", f"{root}:{old}", f"{root}:{old + 1}", "deep_dive_issued")

    def issue_question(self, question: dict[str, Any], reason: str) -> None:
        """Remembers a question served outside the catalogue (insert or deep-dive)."""
        self.issued_questions[question["id"]] = dict(question)
        self.log_update("issued_questions", None, question["id"], reason)

    def remember_issues(self, issues: list[ValidationIssue]) -> list[ValidationIssue]:
        """Adds unseen issues (by type and field) and returns the newly added ones."""
        known = {i.key for i in self.issues_seen}
        fresh = [i for i in issues if i.key not in known]
        self.issues_seen.extend(fresh)
        return fresh

    def set_status(self, status: AgentStatus, reason: str) -> None:
        if status == self.status:
            return
        old = self.status
        self.status = status
        self.log_update("status", old.value, status.value, reason)

    def statistics(self) -> dict[str, Any]:
        return {
            "question_count": self.turn_count,
            "deep_dive_count": len(self.deep_dive_history),
            "suggestion_count": len(self.suggestions),
            "current_status": self.status.value,
            "completeness": self.last_completeness or 0,
        }

    def log_update(self, variable: str, old_value: Any, new_value: Any, reason: str) -> None:
        self.variables_used.append(variable)
        self.value_updates.append(
            {
                "variable": variable,
                "old_value": old_value,
                "new_value": new_value,
                "reason": reason,
            }
        )
