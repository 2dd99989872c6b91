from __future__ import annotations

import re
from typing import Any, Mapping

from .answers import answer_text, numbers_in
from .policy_tables import ELEMENT_LABELS, GAP_PROFILE_TABLE, IMPROVEMENT_EXAMPLES, Lexicon, contains_any

MIN_ASSESSABLE_LENGTH = 10
UNREALISTIC_RATIO = 2.0


def profiles_for(question_id: str, table: Mapping[str, Mapping[str, tuple[str, ...]]] = GAP_PROFILE_TABLE) -> list[str]:
    out = []
    for name, rule in table.items():
        if question_id in rule.get("ids", ()) or any(question_id.startswith(p) for p in rule.get("prefixes", ())):
            out.append(name)
    return out


class GapDetector:
    """Structural keyword checks that name what an answer is missing.

    Deep-dive answers are checked with the profile of the question that
    started the chain (pass ``parent_question_id`` in ``context``).
    """

    def __init__(self, lexicon: Lexicon | None = None, profiles: Mapping[str, Mapping[str, tuple[str, ...]]] | None = None):
        self.lexicon = lexicon or Lexicon.default()
        self.profiles = profiles or GAP_PROFILE_TABLE
        self._age_re = re.compile(self.lexicon.age_pattern, re.IGNORECASE)
        self._competitor_re = re.compile(self.lexicon.competitor_count_pattern, re.IGNORECASE)

    def missing_elements(self, question_id: str, answer: Any, context: Mapping[str, Any] | None = None) -> list[str]:
        text = answer_text(answer).strip()
        if len(text) < MIN_ASSESSABLE_LENGTH:
            return ["insufficient_detail"]

        profile_id = (context or {}).get("parent_question_id") or question_id
        lex = self.lexicon
        missing: list[str] = []
        for profile in profiles_for(profile_id, self.profiles):
            if profile == "audience":
                if not self._age_re.search(text):
                    missing.append("age_bracket")
                if not contains_any(text, lex.geography_keywords):
                    missing.append("geography")
                if not contains_any(text, lex.audience_keywords):
                    missing.append("audience_attribute")
            elif profile == "numeric_goal":
                numbers = numbers_in(text)
                if not numbers:
                    missing.append("numeric_value")
                if not contains_any(text, lex.justification_keywords):
                    missing.append("justification")
                if len(numbers) >= 2 and numbers[0] > 0 and numbers[1] / numbers[0] >= UNREALISTIC_RATIO:
                    missing.append("goal_unrealistic")
            elif profile == "plan":
                if not contains_any(text, lex.action_keywords):
                    missing.append("action_verb")
                if not contains_any(text, lex.outcome_keywords):
                    missing.append("outcome_linkage")
                if not contains_any(text, lex.digital_keywords):
                    missing.append("digital_channel")
            elif profile == "competitive":
                if not self._competitor_re.search(text):
                    missing.append("competitor_count")
                if not contains_any(text, lex.differentiation_keywords):
                    missing.append("differentiation")
        return missing


def describe_elements(elements: list[str]) -> list[str]:
    return [ELEMENT_LABELS.get(e, e) for e in elements]


def improvement_suggestion(question_id: str, elements: list[str]) -> str | None:
    if not elements:
        return None
    lines = ["To strengthen this answer, consider adding:", ""]
    lines += [f"{i}. {label}" for i, label in enumerate(describe_elements(elements), start=1)]
    example = IMPROVEMENT_EXAMPLES.get(question_id)
    if example:
        lines += ["", "[Example]", example]
    return "\n".join(lines)
