"""Helpers over the answer set (question id -> answer value).

Answer sets are plain dicts owned by the caller. The helpers here never
mutate their input; they return new dicts so a turn can be replayed or
rolled back by the surrounding service.
"""
from __future__ import annotations

import re
from typing import Any, Mapping

AnswerSet = dict[str, Any]

_NUMBER_RE = re.compile(r"(?<!\d)-?\d[\d,]*(?:\.\d+)?")

MIN_SATISFIED_TEXT_LENGTH = 5


class _Skipped:
    """Marker stored for an optional question the user chose not to answer."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "SKIPPED"


SKIPPED = _Skipped()


def is_answered(answers: Mapping[str, Any], question_id: str) -> bool:
    """Key present with a non-empty value. A skip counts as answered."""
    if question_id not in answers:
        return False
    value = answers[question_id]
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def is_satisfied(value: Any) -> bool:
    """Stricter check used by the completeness rubric."""
    if value is None or value is SKIPPED:
        return False
    if isinstance(value, str):
        return len(value.strip()) >= MIN_SATISFIED_TEXT_LENGTH
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def record_answer(answers: Mapping[str, Any], question_id: str, value: Any) -> AnswerSet:
    updated = {k: v for k, v in answers.items() if k != question_id}
    updated[question_id] = value
    return updated


def is_skipped(answers: Mapping[str, Any], question_id: str) -> bool:
    return answers.get(question_id) is SKIPPED


def skip_answer(answers: Mapping[str, Any], question_id: str) -> AnswerSet:
    return record_answer(answers, question_id, SKIPPED)


def go_back(answers: Mapping[str, Any]) -> tuple[AnswerSet, str | None]:
    """Drops the most recently recorded key."""
    if not answers:
        return {}, None
    keys = list(answers.keys())
    last = keys[-1]
    return {k: answers[k] for k in keys[:-1]}, last


def answer_text(value: Any) -> str:
    if value is None or value is SKIPPED:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, set)):
        return "\n".join(answer_text(v) for v in value)
    if isinstance(value, dict):
        return "\n".join(f"{k}: {answer_text(v)}" for k, v in value.items())
    return str(value)


def numbers_in(value: Any) -> list[float]:
    if isinstance(value, bool):
        return []
    if isinstance(value, (int, float)):
        return [float(value)]
    out: list[float] = []
    for match in _NUMBER_RE.findall(answer_text(value)):
        try:
            out.append(float(match.replace(",", "")))
        except ValueError:
            continue
    return out


def first_number(value: Any) -> float | None:
    found = numbers_in(value)
    return found[0] if found else None
