"""Built-in reference interview: question nodes plus the resolvers they name."""
from __future__ import annotations

from typing import Any, Mapping

from .answers import answer_text, first_number
from .budget import BudgetRules, parse_expense_lines
from .industry import BusinessCategory, classify_business_category
from .policy_tables import contains_any
from .question_graph import Computed, LiteralValue, QuestionGraph, QuestionNode, ResolverRegistry

BUSINESS_CATEGORY_OPTIONS = [
    "Restaurant (restaurant, cafe, bar)",
    "Retail (clothing, goods, food sales)",
    "Beauty salon (hair, esthetics, nail)",
    "Services (cleaning, repair, laundry)",
    "Construction / manufacturing",
    "Other",
]

OTHER_BUSINESS_YES = "Yes, we run other businesses"

AGE_BRACKET_OPTIONS = ["Teens", "20s", "30s", "40s", "50s", "60s", "70s and over"]

DIGITAL_STATUS_OPTIONS = [
    "Own website",
    "Social media (Instagram, X, Facebook)",
    "Google business profile",
    "Online booking",
    "Online shop",
    "None yet",
]

INITIATIVE_OPTIONS = [
    "Build or renew a website",
    "Start social media marketing (Instagram etc.)",
    "Introduce an online booking system",
    "Launch an online shop",
    "Print flyers or posters",
    "Renovate the shop interior",
    "Install new equipment",
    "Introduce a smart lock or self check-in",
    "Develop a new product or menu",
]

EFFICIENCY_INITIATIVES = (
    "Renovate the shop interior",
    "Install new equipment",
    "Introduce a smart lock or self check-in",
)


def build_default_registry(budget_rules: BudgetRules | None = None) -> ResolverRegistry:
    rules = budget_rules or BudgetRules()
    registry = ResolverRegistry()

    @registry.register("has_other_business")
    def has_other_business(answers: Mapping[str, Any]) -> bool:
        return answers.get("Q1-3-multi") == OTHER_BUSINESS_YES

    @registry.register("employee_limit_help")
    def employee_limit_help(answers: Mapping[str, Any]) -> str:
        category = classify_business_category(answers.get("Q1-1"))
        limit = 20 if category == BusinessCategory.MANUFACTURING else 5
        return (
            f"Count full-time staff only. Businesses in this category qualify with up to {limit} employees; "
            "the owner and family members working in the business are not counted."
        )

    @registry.register("customer_question_text")
    def customer_question_text(answers: Mapping[str, Any]) -> str:
        category = classify_business_category(answers.get("Q1-1"))
        if category == BusinessCategory.MANUFACTURING:
            return "Who are your main clients, and why do they choose to work with you?"
        if category == BusinessCategory.RESTAURANT:
            return "Why do guests come to your restaurant (occasion, purpose of the visit)?"
        return "Why do customers choose your business, and what do they use it for?"

    @registry.register("sales_goal_text")
    def sales_goal_text(answers: Mapping[str, Any]) -> str:
        latest = first_number(answers.get("Q2-7-3"))
        if latest is None:
            return "What annual sales do you aim for after the project (yen)? Please state the basis."
        return (
            f"Your latest annual sales were {latest:,.0f} yen. What annual sales do you aim for after the "
            "project, and what is the basis for that number?"
        )

    @registry.register("expense_rules_help")
    def expense_rules_help(answers: Mapping[str, Any]) -> str:
        return (
            "List one expense per line as 'item: amount'. Website-related costs may be at most "
            f"{rules.restricted_ratio} of the total and no more than {rules.fixed_cap:,} yen, "
            "and cannot be the only expense."
        )

    @registry.register("expense_constraint_text")
    def expense_constraint_text(answers: Mapping[str, Any]) -> str:
        lines = parse_expense_lines(answers.get(rules.expense_field), rules)
        total = sum(l.amount for l in lines)
        cap = min(rules.max_restricted_cost(total), rules.fixed_cap)
        return (
            f"Your expenses total {total:,} yen, so website-related costs can be at most {cap:,} yen. "
            "Have you confirmed the expense limits?"
        )

    @registry.register("efficiency_initiative_selected")
    def efficiency_initiative_selected(answers: Mapping[str, Any]) -> bool:
        chosen = answers.get("Q5-2") or []
        if isinstance(chosen, str):
            chosen = [chosen]
        return any(item in EFFICIENCY_INITIATIVES for item in chosen) or contains_any(
            answer_text(answers.get("Q5-1")), ("renovat", "equipment", "smart lock", "内装", "改装", "設備")
        )

    return registry


def _node(qid: str, priority: float, text: Any, **kwargs: Any) -> QuestionNode:
    for key in ("options", "help_text", "placeholder"):
        if key in kwargs and not isinstance(kwargs[key], (LiteralValue, Computed)):
            kwargs[key] = LiteralValue(kwargs[key])
    if "dependencies" in kwargs:
        kwargs["dependencies"] = tuple(kwargs["dependencies"])
    if not isinstance(text, Computed):
        text = LiteralValue(text)
    return QuestionNode(id=qid, priority=priority, text=text, **kwargs)


def default_question_nodes() -> list[QuestionNode]:
    return [
        # basic profile
        _node("Q1-0", 1, "What is the name of your business?", placeholder="e.g. Bistro Aozora"),
        _node(
            "Q1-1", 2, "Which category best describes your business?",
            question_type="single_select", dependencies=["Q1-0"], options=BUSINESS_CATEGORY_OPTIONS,
        ),
        _node("Q1-2", 3, "What is the representative's name?", dependencies=["Q1-1"]),
        _node(
            "Q1-3", 4, "What products or services do you offer?",
            question_type="textarea", dependencies=["Q1-2"],
            placeholder="e.g. Lunch and dinner courses built on local vegetables",
        ),
        _node(
            "Q1-3-multi", 4.5, "Do you run any other businesses besides this one?",
            question_type="single_select", dependencies=["Q1-3"],
            options=[OTHER_BUSINESS_YES, "No, this is our only business"],
        ),
        _node(
            "Q1-3-other", 4.6, "Please describe your other businesses.",
            question_type="textarea", dependencies=["Q1-3-multi"], condition=Computed("has_other_business"),
            placeholder="e.g. Catering for local offices, online sales of sauces",
        ),
        _node(
            "Q1-4", 5, "How many employees do you have?",
            question_type="number", dependencies=["Q1-3"], help_text=Computed("employee_limit_help"),
        ),
        _node(
            "Q1-5", 6, "What is your legal form?",
            question_type="single_select", dependencies=["Q1-4"],
            options=["Sole proprietor", "Corporation", "Other"],
        ),
        # business history
        _node(
            "Q2-5", 10, "What is your business philosophy, and what do you value most?",
            question_type="textarea", dependencies=["Q1-5"],
            placeholder="e.g. Contributing to the local community with quality food made from regional produce",
        ),
        _node("Q2-7-1", 11, "What were your annual sales two fiscal years ago (yen)?", question_type="number", dependencies=["Q2-5"]),
        _node("Q2-7-2", 12, "What were your annual sales in the previous fiscal year (yen)?", question_type="number", dependencies=["Q2-7-1"]),
        _node("Q2-7-3", 13, "What were your annual sales in the latest fiscal year (yen)?", question_type="number", dependencies=["Q2-7-2"]),
        _node(
            "Q2-8", 14, "What was your operating profit in the latest fiscal year (yen)?",
            question_type="number", dependencies=["Q2-7-3"],
            help_text="Enter a negative number for a loss. Loss-making businesses receive a higher subsidy rate.",
        ),
        _node("Q2-11", 15, "What is the average spend per customer (yen)?", question_type="number", dependencies=["Q2-8"]),
        _node(
            "Q2-12", 16, "How many customers do you serve per month?",
            dependencies=["Q2-11"], placeholder="e.g. About 300 a month",
        ),
        _node(
            "Q2-13", 17, "What do customers say about you (reviews, repeat comments)?",
            question_type="textarea", dependencies=["Q2-12"], required=False,
            help_text="Points praised in online reviews make the application more convincing.",
        ),
        # market and customers
        _node(
            "Q3-1", 20, "Which age groups are your main customers?",
            question_type="multi_select", dependencies=["Q2-12"], options=AGE_BRACKET_OPTIONS,
        ),
        _node(
            "Q3-1-1", 21, "Describe your main customers (area, occupation, household, lifestyle).",
            question_type="textarea", dependencies=["Q3-1"],
            placeholder="e.g. Office workers in their 30s and 40s working near the station, and local families on weekends",
        ),
        _node("Q3-2", 22, Computed("customer_question_text"), question_type="textarea", dependencies=["Q3-1-1"]),
        _node(
            "Q3-5", 23, "Who are your competitors, and how are you different from them?",
            question_type="textarea", dependencies=["Q3-2"],
            placeholder="e.g. 3 similar shops within 500 m; we are the only one using local organic vegetables",
        ),
        _node(
            "Q3-6", 24, "What do customers ask for or complain about, and what weaknesses do you see?",
            question_type="textarea", dependencies=["Q3-5"],
        ),
        _node(
            "Q3-7", 25, "Which digital channels do you currently use?",
            question_type="multi_select", dependencies=["Q3-6"], options=DIGITAL_STATUS_OPTIONS,
        ),
        # project plan
        _node(
            "Q5-1", 30, "What will you do with the subsidy to reach new customers?",
            question_type="textarea", dependencies=["Q3-7"],
            placeholder="e.g. Launch an Instagram account and a booking site to reach office workers near the station",
        ),
        _node(
            "Q5-2", 31, "Which initiatives does the project include?",
            question_type="multi_select", dependencies=["Q5-1"], options=INITIATIVE_OPTIONS,
        ),
        _node(
            "Q5-3", 32, "Which digital tools or services will you use, and how?",
            question_type="textarea", dependencies=["Q5-2"],
        ),
        _node(
            "Q5-4", 33, "How will you measure the results of the digital channels?",
            question_type="textarea", dependencies=["Q5-3"],
            placeholder="e.g. Monthly follower count, booking-site reservations and coupon redemptions",
        ),
        _node(
            "Q5-5", 34, "What is the schedule for the project?",
            question_type="textarea", dependencies=["Q5-4"],
            placeholder="e.g. Month 1: website build, Month 2: launch and flyer distribution",
        ),
        _node(
            "Q5-6", 35, "List the project expenses with amounts.",
            question_type="expense_table", dependencies=["Q5-5"], help_text=Computed("expense_rules_help"),
            placeholder="e.g.\nWebsite build: 300,000\nFlyer printing: 200,000\nSignboard: 700,000",
        ),
        _node(
            "Q5-6-1", 36, Computed("expense_constraint_text"),
            question_type="single_select", dependencies=["Q5-6"],
            options=["Yes, I have confirmed the limits", "No, please explain them"],
        ),
        _node(
            "Q5-7", 37, "What effects do you expect from the project?",
            question_type="textarea", dependencies=["Q5-6-1"],
        ),
        _node(
            "Q5-8", 38, "How many new customers per month do you aim to gain, and why is that realistic?",
            dependencies=["Q5-7"], placeholder="e.g. 30 new customers a month, because...",
        ),
        _node("Q5-9", 39, Computed("sales_goal_text"), dependencies=["Q5-8"]),
        _node(
            "Q5-10", 40, "How will the project contribute to your local community?",
            question_type="textarea", dependencies=["Q5-9"],
        ),
        _node(
            "Q5-14", 41, "Compare the situation before and after the project.",
            question_type="textarea", dependencies=["Q5-10"],
            placeholder="e.g. Before: 300 customers a month, no online presence. After: 360 customers a month, 40% via Instagram",
        ),
        _node(
            "Q5-15", 42, "How will the time or cost saved by the efficiency measures be used to win new customers or sales?",
            question_type="textarea", dependencies=["Q5-14"], condition=Computed("efficiency_initiative_selected"),
        ),
    ]


def build_default_graph(budget_rules: BudgetRules | None = None) -> QuestionGraph:
    return QuestionGraph(default_question_nodes(), registry=build_default_registry(budget_rules))
