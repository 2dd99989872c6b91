from __future__ import annotations

from .state_schema import AgentSession


def build_turn_trace(
    session: AgentSession,
    *,
    routing_decision: str,
    next_question_reason: str,
    since: int = 0,
) -> dict:
    """Build trace strictly from session artifacts; ``since`` skips updates logged by earlier turns."""
    return {
        "session_id": session.session_id,
        "turn_count": session.turn_count,
        "status": session.status.value,
        "variables_used": list(session.variables_used[since:]),
        "value_updates": list(session.value_updates[since:]),
        "routing_decision": routing_decision,
        "next_question_reason": next_question_reason,
    }
