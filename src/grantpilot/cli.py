"""CLI interview for trying out the grant application assistant.

Usage:
    python -m grantpilot.cli
    python -m grantpilot.cli --model claude-sonnet-4-20250514
    python -m grantpilot.cli --offline --no-trace
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .answers import first_number, record_answer


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Grant application interview CLI")
    parser.add_argument("--model", default="claude-sonnet-4-20250514", help="Anthropic model to use for deep-dives")
    parser.add_argument("--offline", action="store_true", help="Run without the follow-up question service")
    parser.add_argument("--no-trace", action="store_true", help="Hide per-turn trace output")
    parser.add_argument("--questions", default=None, help="Path to a question catalogue workbook")
    parser.add_argument("--rubric", default=None, help="Path to a rubric workbook")
    parser.add_argument("--budget-rules", default=None, help="Path to a budget rules workbook")
    parser.add_argument("--max-questions", type=int, default=50, help="Turn budget per session")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    project_root = Path(__file__).resolve().parent.parent.parent
    load_dotenv(project_root / ".env")

    for label, path in (("Question catalogue", args.questions), ("Rubric", args.rubric), ("Budget rules", args.budget_rules)):
        if path and not Path(path).exists():
            print(f"\n[ERROR] {label} file not found: {path}")
            sys.exit(1)

    # Import here to avoid import errors if dependencies missing
    from .orchestrator import OrchestratorConfig
    from .runtime import build_engine_from_excels

    config = OrchestratorConfig(max_questions=args.max_questions)
    follow_up_service = None
    if not args.offline:
        api_key = os.environ.get("ANTHROPIC_API_KEY", "")
        if not api_key or api_key == "your-key-here":
            print("\n[ERROR] ANTHROPIC_API_KEY not set.")
            print("Please set it in .env file or export it:")
            print("  export ANTHROPIC_API_KEY=sk-ant-...")
            print("  OR run with --offline to skip deep-dive questions")
            sys.exit(1)
        follow_up_service = _follow_up_client(api_key, args.model, config)

    try:
        engine, assets = build_engine_from_excels(
            questions_path=args.questions,
            rubric_path=args.rubric,
            budget_rules_path=args.budget_rules,
            config=config,
            follow_up_service=follow_up_service,
        )
    except Exception as e:
        print(f"\n[ERROR] Failed to load configuration: {e}")
        sys.exit(1)

    print("\n" + "=" * 60)
    print("  Grant Application Interview")
    print("=" * 60)
    print(f"  Questions: {assets.question_count}  Criteria: {assets.criterion_count}")
    print(f"  Deep-dives: {'off' if follow_up_service is None else args.model}")
    print("  Commands: 'quit', 'back', 'skip', 'progress', 'check', 'trace'")
    print("=" * 60)

    session = engine.start_session()
    answers: dict[str, Any] = {}
    pending: dict | None = None
    show_trace = not args.no_trace

    while True:
        if pending is None:
            resolved = engine.resolve_next(answers)
            if resolved is None:
                print("\n  All required questions are answered.")
                break
            pending = resolved.as_dict()

        _print_question(pending)
        try:
            user_input = input("\n  You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\n\n  Session ended by user.")
            break

        command = user_input.lower()
        if command in ("quit", "exit"):
            print("\n  Session ended.")
            break
        if command == "trace":
            show_trace = not show_trace
            print(f"  [Trace display: {'ON' if show_trace else 'OFF'}]")
            continue
        if command == "progress":
            _print_progress(engine.check_progress(answers))
            continue
        if command == "check":
            print("\n" + engine.final_check(answers, session).message)
            continue
        if command == "back":
            answers, removed = engine.go_back(answers)
            print(f"  [Removed answer to {removed}]" if removed else "  [Nothing to go back to]")
            pending = None
            continue
        if command == "skip":
            answers, skipped = _skip_pending(engine, pending, answers)
            if skipped:
                pending = None
            continue
        if not user_input:
            continue

        answer = _coerce_answer(pending, user_input)
        decision = engine.evaluate_turn(pending["id"], answer, answers, session)
        answers = record_answer(answers, pending["id"], answer)
        session = decision.session

        if decision.message:
            _print_bot(decision.message)
        if show_trace:
            _print_trace(decision.as_dict())

        if decision.requires_answer and decision.data and "question" in decision.data:
            pending = decision.data["question"]
        else:
            pending = None

        if decision.data and decision.data.get("reason") == "turn_budget_exhausted":
            print("\n  Turn budget reached.")
            break

    result = engine.final_check(answers, session)
    print("\n" + "=" * 60)
    print(result.message)
    print("-" * 60)
    stats = result.session.statistics()
    print("  Session Statistics:")
    for key, value in stats.items():
        print(f"    {key}: {value}")
    print("=" * 60 + "\n")


def _follow_up_client(api_key: str, model: str, config):
    from .llm import FollowUpClient

    # SDK timeout never exceeds the turn deadline
    return FollowUpClient(api_key=api_key, model=model, timeout_s=config.follow_up_timeout_s)


def _skip_pending(engine, question: dict, answers: dict[str, Any]) -> tuple[dict[str, Any], bool]:
    try:
        updated = engine.skip_question(question["id"], answers)
    except ValueError:
        print(f"  [{question['id']} is required and cannot be skipped]")
        return answers, False
    print(f"  [Skipped {question['id']}]")
    return updated, True


def _coerce_answer(question: dict, raw: str) -> Any:
    options = question.get("options") or []
    qtype = question.get("type")
    if qtype == "number":
        number = first_number(raw)
        return raw if number is None else number
    if qtype == "multi_select":
        return [_pick_option(options, part.strip()) for part in raw.split(",") if part.strip()]
    if qtype == "single_select":
        return _pick_option(options, raw)
    return raw


def _pick_option(options: list[str], raw: str) -> str:
    if raw.isdigit() and 1 <= int(raw) <= len(options):
        return options[int(raw) - 1]
    return raw


def _print_question(question: dict):
    print()
    print(f"  [{question['id']}] {question['text']}")
    for idx, option in enumerate(question.get("options") or [], start=1):
        print(f"     {idx}. {option}")
    if question.get("help_text"):
        print(f"     ({question['help_text']})")
    if question.get("placeholder"):
        print(f"     {question['placeholder']}")


def _print_bot(message: str):
    """Print assistant message with formatting."""
    print()
    print("  " + "-" * 40)
    for line in message.split("\n"):
        while len(line) > 70:
            split_at = line[:70].rfind(" ")
            if split_at == -1:
                split_at = 70
            print(f"  Bot: {line[:split_at]}")
            line = line[split_at:].lstrip()
        print(f"  Bot: {line}")
    print("  " + "-" * 40)


def _print_trace(decision: dict):
    trace = decision.get("trace") or {}
    print("\n  [TRACE]")
    print(f"    Action: {decision.get('action')}  Status: {decision.get('status')}")
    print(f"    Turn: {trace.get('turn_count', '?')}  Routing: {trace.get('routing_decision', '?')}")
    updates = trace.get("value_updates", [])
    if updates:
        print(f"    Updates: {json.dumps(updates[-3:], ensure_ascii=False, default=str)}")
    print("  [/TRACE]")


def _print_progress(progress: dict):
    print("\n  === PROGRESS ===")
    print(f"    Completeness: {progress.get('completeness')}% ({progress.get('overall_status')})")
    if progress.get("message"):
        print(f"    {progress['message']}")
    suggested = progress.get("suggested_questions") or []
    if suggested:
        print(f"    Suggested next: {', '.join(suggested)}")
    print("  ================")


if __name__ == "__main__":
    main()
