import unittest

from grantpilot.answers import skip_answer
from grantpilot.catalogue import OTHER_BUSINESS_YES, build_default_graph
from grantpilot.question_graph import (
    Computed,
    GraphConfigurationError,
    LiteralValue,
    QuestionGraph,
    QuestionNode,
    ResolverRegistry,
    node_from_record,
)
from grantpilot.resolver import QuestionResolver


def _node(qid, priority, deps=(), **kwargs):
    return QuestionNode(id=qid, priority=priority, text=LiteralValue(f"Question {qid}?"), dependencies=tuple(deps), **kwargs)


class TestQuestionGraphLoading(unittest.TestCase):
    def test_cycle_is_rejected_with_offending_nodes(self):
        with self.assertRaises(GraphConfigurationError) as ctx:
            QuestionGraph([_node("A", 1, ["C"]), _node("B", 2, ["A"]), _node("C", 3, ["B"])])
        self.assertEqual(set(ctx.exception.node_ids), {"A", "B", "C"})
        self.assertIn("Cyclic", str(ctx.exception))

    def test_unknown_dependency_is_rejected(self):
        with self.assertRaises(GraphConfigurationError) as ctx:
            QuestionGraph([_node("A", 1, ["missing"])])
        self.assertIn("missing", ctx.exception.node_ids)

    def test_unknown_resolver_is_rejected(self):
        with self.assertRaises(GraphConfigurationError):
            QuestionGraph([QuestionNode(id="A", priority=1, text=Computed("nope"))])

    def test_duplicate_ids_are_rejected(self):
        with self.assertRaises(GraphConfigurationError):
            QuestionGraph([_node("A", 1), _node("A", 2)])

    def test_build_order_puts_dependencies_first(self):
        graph = QuestionGraph([_node("C", 1, ["B"]), _node("B", 2, ["A"]), _node("A", 3)])
        self.assertEqual(graph.build_order, ["A", "B", "C"])

    def test_default_catalogue_loads(self):
        graph = build_default_graph()
        self.assertIn("Q5-15", graph)
        self.assertEqual(graph.build_order[0], "Q1-0")

    def test_computed_text_is_evaluated_against_answers(self):
        registry = ResolverRegistry()

        @registry.register("greeting")
        def greeting(answers):
            return f"Hello {answers.get('name', 'there')}"

        graph = QuestionGraph([QuestionNode(id="A", priority=1, text=Computed("greeting"))], registry=registry)
        resolved = graph.resolve(graph.get("A"), {"name": "Aoi"})
        self.assertEqual(resolved.text, "Hello Aoi")

    def test_registering_a_resolver_twice_fails(self):
        registry = ResolverRegistry()
        registry.register("x")(lambda answers: 1)
        with self.assertRaises(GraphConfigurationError):
            registry.register("x")(lambda answers: 2)

    def test_node_from_record_parses_lists_and_flags(self):
        node = node_from_record(
            {
                "id": "Q9",
                "priority": "7",
                "type": "multi_select",
                "text": "Pick some",
                "options": "a, b; c",
                "dependencies": "Q1, Q2",
                "required": "no",
            }
        )
        self.assertEqual(node.priority, 7.0)
        self.assertEqual(node.options, LiteralValue(["a", "b", "c"]))
        self.assertEqual(node.dependencies, ("Q1", "Q2"))
        self.assertFalse(node.required)

    def test_record_without_text_is_rejected(self):
        with self.assertRaises(GraphConfigurationError):
            node_from_record({"id": "Q9", "priority": 1})


class TestQuestionResolver(unittest.TestCase):
    def setUp(self):
        self.resolver = QuestionResolver(build_default_graph())

    def test_first_question_on_empty_answers(self):
        self.assertEqual(self.resolver.next({}).id, "Q1-0")

    def test_lower_priority_value_wins_among_eligible(self):
        answers = {"Q1-0": "Bistro", "Q1-1": "Restaurant (restaurant, cafe, bar)", "Q1-2": "Aoi", "Q1-3": "Lunch courses"}
        self.assertEqual(self.resolver.available_question_ids(answers)[:2], ["Q1-3-multi", "Q1-4"])
        self.assertEqual(self.resolver.next(answers).id, "Q1-3-multi")

    def test_condition_controls_reachability(self):
        base = {"Q1-0": "Bistro", "Q1-1": "Retail", "Q1-2": "Aoi", "Q1-3": "Bread"}
        without = dict(base, **{"Q1-3-multi": "No, this is our only business"})
        with_other = dict(base, **{"Q1-3-multi": OTHER_BUSINESS_YES})
        self.assertNotIn("Q1-3-other", self.resolver.required_reachable(without))
        self.assertIn("Q1-3-other", self.resolver.required_reachable(with_other))
        self.assertEqual(self.resolver.next(with_other).id, "Q1-3-other")

    def test_next_is_none_exactly_when_required_questions_are_done(self):
        graph = QuestionGraph([_node("A", 1), _node("B", 2, ["A"]), _node("C", 3, ["A"], required=False)])
        resolver = QuestionResolver(graph)
        self.assertIsNotNone(resolver.next({"A": "first"}))
        self.assertFalse(resolver.is_complete({"A": "first"}))
        self.assertIsNone(resolver.next({"A": "first", "B": "second"}))
        self.assertTrue(resolver.is_complete({"A": "first", "B": "second"}))

    def test_skipped_optional_question_is_passed_over(self):
        graph = QuestionGraph(
            [_node("A", 1), _node("B", 2, ["A"], required=False), _node("C", 3, ["B"]), _node("D", 4, ["A"])]
        )
        resolver = QuestionResolver(graph)
        answers = {"A": "first"}
        self.assertEqual(resolver.next(answers).id, "B")
        answers = skip_answer(answers, "B")
        self.assertEqual(resolver.next(answers).id, "D")
        self.assertNotIn("C", resolver.required_reachable(answers))
        self.assertNotIn("C", resolver.available_question_ids(answers))
        self.assertIsNone(resolver.next(dict(answers, D="fourth")))


if __name__ == "__main__":
    unittest.main()
