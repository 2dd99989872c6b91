"""Follow-up question generation through the Anthropic API.

The orchestration core only ever sees a typed ``FollowUpResult``: the call
is bounded by a timeout, and errors or malformed output never escape as
exceptions.
"""
from __future__ import annotations

import json
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any

from anthropic import Anthropic

from .policy_tables import ELEMENT_LABELS

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class ExternalServiceFailure(RuntimeError):
    """The completion service errored or did not answer in time."""


# ---------------------------------------------------------------------------
# Request / response / result models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FollowUpRequest:
    parent_question_id: str
    parent_question_text: str
    user_answer: str
    missing_elements: tuple[str, ...] = ()
    context_snapshot: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FollowUpResponse:
    needed: bool
    question_text: str = ""
    placeholder_example: str = ""
    targeted_missing_element: str | None = None
    reasoning: str = ""


@dataclass(frozen=True, slots=True)
class FollowUpProduced:
    response: FollowUpResponse


@dataclass(frozen=True, slots=True)
class NoFollowUp:
    reason: str = "not_needed"


@dataclass(frozen=True, slots=True)
class FollowUpFailure:
    error: str


FollowUpResult = FollowUpProduced | NoFollowUp | FollowUpFailure


# ---------------------------------------------------------------------------
# Anthropic-backed service
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = """You help small-business owners write a sales-channel grant application.
You review one interview answer and decide whether ONE short follow-up question would make it
concrete enough for a grant reviewer. Ask about the most important missing element only.
Keep the question friendly and under 200 characters, and give a realistic example answer.

Return ONLY valid JSON:
{"needDeepDive": true, "question": "...", "placeholder": "e.g. ...", "focusElement": "element_code", "reasoning": "..."}
or {"needDeepDive": false, "reasoning": "..."}"""


class FollowUpClient:
    """Wrapper around Anthropic Claude for deep-dive question generation."""

    def __init__(self, api_key: str | None = None, model: str = DEFAULT_MODEL, timeout_s: float = 15.0):
        key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if not key or key == "your-key-here":
            raise ValueError(
                "ANTHROPIC_API_KEY not set. Please set it in .env or as an environment variable."
            )
        # single attempt; retry policy lives with the caller
        self.client = Anthropic(api_key=key, timeout=timeout_s, max_retries=0)
        self.model = model

    def _user_prompt(self, request: FollowUpRequest) -> str:
        missing = "\n".join(
            f"- {code}: {ELEMENT_LABELS.get(code, code)}" for code in request.missing_elements
        ) or "- (no structural gaps detected; judge the level of detail)"
        context = json.dumps(request.context_snapshot, ensure_ascii=False, default=str)
        return (
            f"Question ({request.parent_question_id}): {request.parent_question_text}\n"
            f"Answer: {request.user_answer}\n\n"
            f"Missing elements:\n{missing}\n\n"
            f"Other answers so far: {context}"
        )

    def generate_follow_up(self, request: FollowUpRequest) -> FollowUpResponse:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=512,
                system=_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": self._user_prompt(request)}],
            )
            raw = response.content[0].text.strip()
        except Exception as e:
            raise ExternalServiceFailure(f"follow-up generation failed: {e}") from e
        return _parse_follow_up_response(raw, request.missing_elements)


def _parse_follow_up_response(raw: str, missing_elements: tuple[str, ...] = ()) -> FollowUpResponse:
    """Malformed output reads as "no follow-up needed"."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```(?:json)?\n?", "", cleaned)
        cleaned = re.sub(r"\n?```$", "", cleaned)
    try:
        data = json.loads(cleaned.strip())
    except json.JSONDecodeError:
        return FollowUpResponse(needed=False, reasoning="unparseable response")
    if not isinstance(data, dict):
        return FollowUpResponse(needed=False, reasoning="unexpected response shape")

    question = str(data.get("question") or "").strip()
    needed = bool(data.get("needDeepDive", False)) and bool(question)
    focus = data.get("focusElement") or (missing_elements[0] if missing_elements else None)
    return FollowUpResponse(
        needed=needed,
        question_text=question if needed else "",
        placeholder_example=str(data.get("placeholder") or "").strip() if needed else "",
        targeted_missing_element=str(focus) if needed and focus else None,
        reasoning=str(data.get("reasoning") or ""),
    )


# ---------------------------------------------------------------------------
# Bounded call
# ---------------------------------------------------------------------------

def request_follow_up(service: Any, request: FollowUpRequest, timeout_s: float) -> FollowUpResult:
    """Runs ``service.generate_follow_up`` with a deadline and folds every outcome into a result value.

    A timed-out worker is abandoned, not killed; services bound their own call
    (``FollowUpClient`` takes ``timeout_s``) so it ends no later than the deadline.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="follow-up")
    future = executor.submit(service.generate_follow_up, request)
    try:
        response = future.result(timeout=timeout_s)
    except FutureTimeout:
        logger.warning("Follow-up for %s timed out after %.1fs", request.parent_question_id, timeout_s)
        return FollowUpFailure(error=f"timeout after {timeout_s}s")
    except ExternalServiceFailure as e:
        logger.warning("Follow-up for %s failed: %s", request.parent_question_id, e)
        return FollowUpFailure(error=str(e))
    except Exception as e:
        logger.exception("Follow-up service raised for %s", request.parent_question_id)
        return FollowUpFailure(error=f"{type(e).__name__}: {e}")
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if not isinstance(response, FollowUpResponse):
        logger.warning("Follow-up service returned %r; treating as no follow-up", type(response).__name__)
        return NoFollowUp(reason="malformed_response")
    if not response.needed or not response.question_text.strip():
        return NoFollowUp(reason="not_needed")
    return FollowUpProduced(response=response)
