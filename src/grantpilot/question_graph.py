"""Static question catalogue with load-time dependency checks.

Dynamic parts of a question (text, options, help text, placeholder and the
eligibility condition) are stored as data: either a ``LiteralValue`` or a
``Computed`` reference naming a pure function in a ``ResolverRegistry``.
Nothing is evaluated until a question is about to be shown, so the catalogue
stays serializable and testable without the resolver functions themselves.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from .answers import is_answered, is_skipped

logger = logging.getLogger(__name__)

FREE_TEXT_TYPES = frozenset({"text", "textarea"})

Resolver = Callable[[Mapping[str, Any]], Any]


class GraphConfigurationError(ValueError):
    """Malformed catalogue: duplicate ids, unknown references or cycles."""

    def __init__(self, message: str, node_ids: Iterable[str] = ()):
        self.node_ids = list(node_ids)
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class LiteralValue:
    value: Any


@dataclass(frozen=True, slots=True)
class Computed:
    resolver: str


DynamicField = LiteralValue | Computed


class ResolverRegistry:
    """Name -> pure function over the answer set."""

    def __init__(self, resolvers: Mapping[str, Resolver] | None = None):
        self._resolvers: dict[str, Resolver] = dict(resolvers or {})

    def register(self, name: str) -> Callable[[Resolver], Resolver]:
        def decorator(fn: Resolver) -> Resolver:
            if name in self._resolvers:
                raise GraphConfigurationError(f"Resolver registered twice: {name}", [name])
            self._resolvers[name] = fn
            return fn

        return decorator

    def __contains__(self, name: object) -> bool:
        return name in self._resolvers

    @property
    def names(self) -> list[str]:
        return sorted(self._resolvers)

    def call(self, name: str, answers: Mapping[str, Any]) -> Any:
        try:
            fn = self._resolvers[name]
        except KeyError:
            raise GraphConfigurationError(f"Unknown resolver: {name}", [name]) from None
        return fn(answers)


def evaluate_field(value: DynamicField | None, answers: Mapping[str, Any], registry: ResolverRegistry) -> Any:
    if value is None:
        return None
    if isinstance(value, LiteralValue):
        return value.value
    if isinstance(value, Computed):
        return registry.call(value.resolver, answers)
    raise TypeError(f"Unsupported question field variant: {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class QuestionNode:
    id: str
    priority: float
    text: DynamicField
    question_type: str = "text"
    dependencies: tuple[str, ...] = ()
    condition: DynamicField | None = None
    options: DynamicField | None = None
    help_text: DynamicField | None = None
    placeholder: DynamicField | None = None
    required: bool = True

    @property
    def is_free_text(self) -> bool:
        return self.question_type in FREE_TEXT_TYPES

    def computed_refs(self) -> list[str]:
        fields = (self.text, self.condition, self.options, self.help_text, self.placeholder)
        return [f.resolver for f in fields if isinstance(f, Computed)]


@dataclass(frozen=True, slots=True)
class ResolvedQuestion:
    """A question with every dynamic field evaluated against one answer snapshot."""
    id: str
    text: str
    question_type: str = "textarea"
    options: list[str] | None = None
    help_text: str | None = None
    placeholder: str | None = None
    required: bool = False
    priority: float = 0.0
    kind: str = "catalogue"  # catalogue, business_detail, industry, deep_dive
    parent_question_id: str | None = None
    focus_element: str | None = None

    @property
    def is_free_text(self) -> bool:
        return self.question_type in FREE_TEXT_TYPES

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "type": self.question_type,
            "options": list(self.options) if self.options is not None else None,
            "help_text": self.help_text,
            "placeholder": self.placeholder,
            "required": self.required,
            "kind": self.kind,
            "parent_question_id": self.parent_question_id,
            "focus_element": self.focus_element,
        }


@dataclass(slots=True)
class _Edges:
    dependencies: set[str] = field(default_factory=set)
    dependents: set[str] = field(default_factory=set)


class QuestionGraph:
    """Immutable catalogue of questions, validated once when constructed."""

    def __init__(self, nodes: Iterable[QuestionNode], registry: ResolverRegistry | None = None):
        self.registry = registry or ResolverRegistry()
        self._nodes: dict[str, QuestionNode] = {}
        self._position: dict[str, int] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise GraphConfigurationError(f"Duplicate question id: {node.id}", [node.id])
            self._position[node.id] = len(self._nodes)
            self._nodes[node.id] = node
        self._check_references()
        self.build_order = self._topological_order()
        logger.debug("Question graph loaded with %d nodes", len(self._nodes))

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> list[QuestionNode]:
        return list(self._nodes.values())

    def get(self, question_id: str) -> QuestionNode | None:
        return self._nodes.get(question_id)

    def position(self, question_id: str) -> int:
        return self._position[question_id]

    def _check_references(self) -> None:
        for node in self._nodes.values():
            for dep in node.dependencies:
                if dep == node.id:
                    raise GraphConfigurationError(f"Question {node.id} depends on itself", [node.id])
                if dep not in self._nodes:
                    raise GraphConfigurationError(
                        f"Question {node.id} depends on unknown question {dep}", [node.id, dep]
                    )
            for ref in node.computed_refs():
                if ref not in self.registry:
                    raise GraphConfigurationError(
                        f"Question {node.id} references unknown resolver {ref}", [node.id]
                    )

    def _topological_order(self) -> list[str]:
        # Kahn's algorithm; catalogue position breaks ties so the order is stable
        edges: dict[str, _Edges] = defaultdict(_Edges)
        for node in self._nodes.values():
            edges[node.id].dependencies.update(node.dependencies)
            for dep in node.dependencies:
                edges[dep].dependents.add(node.id)

        in_degree = {qid: len(edges[qid].dependencies) for qid in self._nodes}
        ready = sorted((q for q, d in in_degree.items() if d == 0), key=self._position.__getitem__)
        order: list[str] = []
        while ready:
            current = ready.pop(0)
            order.append(current)
            for dependent in sorted(edges[current].dependents, key=self._position.__getitem__):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    ready.append(dependent)

        if len(order) != len(self._nodes):
            stuck = [q for q in self._nodes if q not in set(order)]
            cycle = self._find_cycle(stuck)
            logger.error("Cyclic question dependencies: %s", " -> ".join(cycle))
            raise GraphConfigurationError(f"Cyclic dependency detected: {' -> '.join(cycle)}", cycle)
        return order

    def _find_cycle(self, candidates: list[str]) -> list[str]:
        for start in candidates:
            path: list[str] = []
            visiting: set[str] = set()
            current = start
            while current not in visiting:
                visiting.add(current)
                path.append(current)
                nxt = next((d for d in self._nodes[current].dependencies if d in candidates), None)
                if nxt is None:
                    break
                current = nxt
            else:
                return path[path.index(current):] + [current]
        return candidates

    def condition_holds(self, node: QuestionNode, answers: Mapping[str, Any]) -> bool:
        if node.condition is None:
            return True
        return bool(evaluate_field(node.condition, answers, self.registry))

    def dependencies_met(self, node: QuestionNode, answers: Mapping[str, Any]) -> bool:
        return all(is_answered(answers, dep) and not is_skipped(answers, dep) for dep in node.dependencies)

    def is_eligible(self, node: QuestionNode, answers: Mapping[str, Any]) -> bool:
        if is_answered(answers, node.id):
            return False
        if not self.dependencies_met(node, answers):
            return False
        return self.condition_holds(node, answers)

    def resolve(self, node: QuestionNode, answers: Mapping[str, Any]) -> ResolvedQuestion:
        options = evaluate_field(node.options, answers, self.registry)
        return ResolvedQuestion(
            id=node.id,
            text=str(evaluate_field(node.text, answers, self.registry)),
            question_type=node.question_type,
            options=list(options) if options is not None else None,
            help_text=evaluate_field(node.help_text, answers, self.registry),
            placeholder=evaluate_field(node.placeholder, answers, self.registry),
            required=node.required,
            priority=node.priority,
        )

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], registry: ResolverRegistry | None = None) -> "QuestionGraph":
        return cls([node_from_record(r) for r in records], registry=registry)


def _split_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip() for v in value if str(v).strip())
    text = str(value).replace("\n", ",").replace(";", ",")
    return tuple(part.strip() for part in text.split(",") if part.strip())


def _dynamic(record: Mapping[str, Any], literal_key: str, resolver_key: str) -> DynamicField | None:
    resolver = record.get(resolver_key)
    if resolver not in (None, ""):
        return Computed(str(resolver).strip())
    value = record.get(literal_key)
    if value in (None, ""):
        return None
    return LiteralValue(value)


def _as_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "required"}


def node_from_record(record: Mapping[str, Any]) -> QuestionNode:
    question_id = str(record.get("id") or "").strip()
    if not question_id:
        raise GraphConfigurationError("Question record without an id")
    text = _dynamic(record, "text", "text_resolver")
    if text is None:
        raise GraphConfigurationError(f"Question {question_id} has no text", [question_id])
    try:
        priority = float(record.get("priority"))
    except (TypeError, ValueError):
        raise GraphConfigurationError(f"Question {question_id} has no numeric priority", [question_id]) from None

    options = _dynamic(record, "options", "options_resolver")
    if isinstance(options, LiteralValue):
        options = LiteralValue(list(_split_list(options.value)))

    condition = record.get("condition")
    return QuestionNode(
        id=question_id,
        priority=priority,
        text=text,
        question_type=str(record.get("type") or "text").strip(),
        dependencies=_split_list(record.get("dependencies")),
        condition=Computed(str(condition).strip()) if condition not in (None, "") else None,
        options=options,
        help_text=_dynamic(record, "help_text", "help_resolver"),
        placeholder=_dynamic(record, "placeholder", "placeholder_resolver"),
        required=_as_bool(record.get("required"), True),
    )
