"""Adaptive questionnaire orchestration and validation for grant applications."""

from .answers import SKIPPED, AnswerSet, go_back, is_answered, is_satisfied, record_answer, skip_answer
from .budget import BudgetRules, ExpenseLine, SubsidyBreakdown, SubsidyCalculator, parse_expense_lines
from .catalogue import build_default_graph, build_default_registry, default_question_nodes
from .depth import DepthEvaluator
from .engine import ConversationRun, FinalCheckResult, InterviewEngine, ScenarioTurn, TurnRecord
from .gaps import GapDetector, improvement_suggestion
from .industry import BusinessCategory, classify_business_category, get_business_detail_question, get_industry_questions
from .ingestion import ContractError, IngestionReport, SheetContract, ingest_sheet_with_contract
from .llm import (
    ExternalServiceFailure,
    FollowUpClient,
    FollowUpFailure,
    FollowUpProduced,
    FollowUpRequest,
    FollowUpResponse,
    NoFollowUp,
    request_follow_up,
)
from .loaders import load_budget_rules, load_question_graph, load_rubric
from .orchestrator import OrchestrationPolicy, OrchestratorConfig, TurnDecision
from .policy_tables import Lexicon
from .question_graph import (
    Computed,
    GraphConfigurationError,
    LiteralValue,
    QuestionGraph,
    QuestionNode,
    ResolvedQuestion,
    ResolverRegistry,
)
from .readiness import ReadinessGateResult, ReadinessReport, run_readiness_review
from .resolver import QuestionResolver
from .rubric import CompletenessReport, CompletenessScorer, CriterionDefinition, RubricConfig
from .runtime import RuntimeAssets, build_engine_from_excels, load_runtime_configuration
from .state_schema import AgentSession, AgentStatus, SessionGuardExceeded, Severity, TurnAction, ValidationIssue
from .validation import ValidationEngine, ValidationFields, ValidationReport

__all__ = [
    "SKIPPED",
    "AnswerSet",
    "go_back",
    "is_answered",
    "is_satisfied",
    "skip_answer",
    "record_answer",
    "BudgetRules",
    "ExpenseLine",
    "SubsidyBreakdown",
    "SubsidyCalculator",
    "parse_expense_lines",
    "build_default_graph",
    "build_default_registry",
    "default_question_nodes",
    "DepthEvaluator",
    "ConversationRun",
    "FinalCheckResult",
    "InterviewEngine",
    "ScenarioTurn",
    "TurnRecord",
    "GapDetector",
    "improvement_suggestion",
    "BusinessCategory",
    "classify_business_category",
    "get_business_detail_question",
    "get_industry_questions",
    "ContractError",
    "IngestionReport",
    "SheetContract",
    "ingest_sheet_with_contract",
    "ExternalServiceFailure",
    "FollowUpClient",
    "FollowUpFailure",
    "FollowUpProduced",
    "FollowUpRequest",
    "FollowUpResponse",
    "NoFollowUp",
    "request_follow_up",
    "load_budget_rules",
    "load_question_graph",
    "load_rubric",
    "OrchestrationPolicy",
    "OrchestratorConfig",
    "TurnDecision",
    "Lexicon",
    "Computed",
    "GraphConfigurationError",
    "LiteralValue",
    "QuestionGraph",
    "QuestionNode",
    "ResolvedQuestion",
    "ResolverRegistry",
    "ReadinessGateResult",
    "ReadinessReport",
    "run_readiness_review",
    "QuestionResolver",
    "CompletenessReport",
    "CompletenessScorer",
    "CriterionDefinition",
    "RubricConfig",
    "RuntimeAssets",
    "build_engine_from_excels",
    "load_runtime_configuration",
    "AgentSession",
    "AgentStatus",
    "SessionGuardExceeded",
    "Severity",
    "TurnAction",
    "ValidationIssue",
    "ValidationEngine",
    "ValidationFields",
    "ValidationReport",
]
