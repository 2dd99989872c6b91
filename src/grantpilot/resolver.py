from __future__ import annotations

import logging
from typing import Any, Mapping

from .answers import is_answered, is_skipped
from .question_graph import QuestionGraph, QuestionNode, ResolvedQuestion

logger = logging.getLogger(__name__)


class QuestionResolver:
    """Picks the next catalogue question for an answer snapshot.

    A node is reachable when it is already answered, or when its condition
    holds and all of its dependencies are reachable. Once every reachable
    required node is answered the interview is over and ``next`` returns
    ``None``, even if optional questions were never asked.
    """

    def __init__(self, graph: QuestionGraph):
        self.graph = graph

    def _reachable(self, answers: Mapping[str, Any]) -> dict[str, bool]:
        reachable: dict[str, bool] = {}
        for qid in self.graph.build_order:
            node = self.graph.get(qid)
            if is_skipped(answers, qid):
                # skipped questions never unlock their dependents
                reachable[qid] = False
                continue
            if is_answered(answers, qid):
                reachable[qid] = True
                continue
            reachable[qid] = all(reachable[d] for d in node.dependencies) and self.graph.condition_holds(node, answers)
        return reachable

    def required_reachable(self, answers: Mapping[str, Any]) -> list[str]:
        """Reachable required question ids still unanswered, in catalogue order."""
        reachable = self._reachable(answers)
        return [
            n.id
            for n in self.graph.nodes
            if n.required and reachable[n.id] and not is_answered(answers, n.id)
        ]

    def is_complete(self, answers: Mapping[str, Any]) -> bool:
        return not self.required_reachable(answers)

    def _eligible(self, answers: Mapping[str, Any]) -> list[QuestionNode]:
        nodes = [n for n in self.graph.nodes if self.graph.is_eligible(n, answers)]
        return sorted(nodes, key=lambda n: (n.priority, self.graph.position(n.id)))

    def available_question_ids(self, answers: Mapping[str, Any]) -> list[str]:
        return [n.id for n in self._eligible(answers)]

    def next(self, answers: Mapping[str, Any]) -> ResolvedQuestion | None:
        if self.is_complete(answers):
            return None
        eligible = self._eligible(answers)
        if not eligible:
            # reachable required nodes always have an eligible ancestor
            logger.warning("No eligible question although required questions remain")
            return None
        return self.graph.resolve(eligible[0], answers)
