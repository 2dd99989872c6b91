from __future__ import annotations

import re
from typing import Any

from .answers import answer_text
from .policy_tables import Lexicon, contains_any
from .question_graph import FREE_TEXT_TYPES

_DIGIT_RE = re.compile(r"\d")


class DepthEvaluator:
    """Scores how elaborated an answer is on a 0..5 scale.

    0: empty. 5: closed-form question types (nothing to elaborate).
    Free text starts at 1 and climbs with length, numbers, examples and reasons.
    """

    def __init__(self, lexicon: Lexicon | None = None):
        self.lexicon = lexicon or Lexicon.default()

    def depth(self, answer: Any, question_type: str = "textarea") -> int:
        text = answer_text(answer).strip()
        if not text:
            return 0
        if question_type not in FREE_TEXT_TYPES:
            return 5

        length = len(text)
        has_digit = _DIGIT_RE.search(text) is not None
        has_example = contains_any(text, self.lexicon.exemplar_markers)
        has_reason = contains_any(text, self.lexicon.causal_markers)

        depth = 1
        if length >= 50:
            depth = 2
        if length >= 100:
            depth = 3
        if length >= 150 and (has_digit or has_example):
            depth = 4
        if length >= 200 and has_digit and has_example and has_reason:
            depth = 5
        return depth
