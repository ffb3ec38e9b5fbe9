#!/usr/bin/env python3
"""Command line entry point for Decivue.

Usage:
    # Create tables
    decivue init-db

    # Load a scenario (constraints, assumptions, decisions, conflicts)
    decivue seed scripts/scenarios/vendor_selection.json

    # Re-evaluate decisions
    decivue evaluate 6f1c...            # one or more ids
    decivue evaluate --pending          # everything flagged for re-evaluation
    decivue evaluate --all

    # Run pairwise conflict detection
    decivue detect-conflicts

    # Start the API server
    decivue serve --port 8000

    # Forward notable events to a webhook
    decivue listen --webhook https://hooks.example.com/decivue
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from uuid import UUID

from pydantic import ValidationError

from decivue.core.database import close_database, get_session_factory, init_database
from decivue.core.schemas.evaluation import BatchEvaluationResult
from decivue.core.services import ConflictService, EvaluationService
from decivue.listener import DEFAULT_API_URL, DEFAULT_STATE_FILE, run as run_listener
from decivue.logging import configure_logging
from decivue.seed import ScenarioSeeder, load_scenario
from decivue.utils.config import get_settings


def _print_batch(batch: BatchEvaluationResult) -> None:
    for result in batch.results:
        marker = "*" if result.changed else " "
        print(
            f"{marker} {result.decision_id}  health {result.old_health_signal:>3} -> "
            f"{result.new_health_signal:>3}  {result.old_lifecycle.value} -> "
            f"{result.new_lifecycle.value}  [{result.rule}]"
        )
    for decision_id, error in batch.errors.items():
        print(f"! {decision_id}  {error}", file=sys.stderr)
    print(f"\nEvaluated {batch.evaluated}, failed {batch.failed}", file=sys.stderr)


async def cmd_init_db(args: argparse.Namespace) -> int:
    await init_database()
    print("Database initialized")
    return 0


async def cmd_seed(args: argparse.Namespace) -> int:
    try:
        scenario = load_scenario(args.scenario)
    except ValidationError as e:
        print(f"Invalid scenario {args.scenario}:", file=sys.stderr)
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"]) or "scenario"
            print(f"  {location}: {error['msg']}", file=sys.stderr)
        return 2
    except (OSError, json.JSONDecodeError) as e:
        print(f"Cannot read scenario {args.scenario}: {e}", file=sys.stderr)
        return 2
    if args.no_evaluate:
        scenario.evaluate = False
    await init_database()
    async with get_session_factory()() as session:
        result = await ScenarioSeeder(session).seed(scenario)
    print(
        f"\nSeeded {len(result.decisions)} decisions, {len(result.assumptions)} assumptions, "
        f"{len(result.constraints)} constraints, {result.conflicts} conflicts",
        file=sys.stderr,
    )
    return 0


async def cmd_evaluate(args: argparse.Namespace) -> int:
    async with get_session_factory()() as session:
        service = EvaluationService.from_session(session)
        if args.all:
            batch = await service.evaluate_all()
        elif args.pending:
            batch = await service.evaluate_pending()
        else:
            batch = await service.evaluate_batch(args.decision_ids, triggered_by="cli")
    _print_batch(batch)
    return 1 if batch.failed else 0


async def cmd_detect_conflicts(args: argparse.Namespace) -> int:
    async with get_session_factory()() as session:
        service = ConflictService.from_session(session)
        reports = {}
        if args.kind in ("assumptions", "all"):
            reports["assumption"] = await service.detect_assumption_conflicts()
        if args.kind in ("decisions", "all"):
            reports["decision"] = await service.detect_decision_conflicts()

    for kind, report in reports.items():
        print(f"{kind}: compared {report.compared} pairs, {report.detected} new conflict(s)")
        for conflict in report.conflicts:
            print(
                f"  {conflict['a']} <-> {conflict['b']}  {conflict['conflict_type']} "
                f"({conflict['confidence_score']:.2f}): {conflict['explanation']}"
            )
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "decivue.main:app",
        host=args.host or settings.api.host,
        port=args.port or settings.api.port,
        reload=args.reload or settings.api.reload,
    )
    return 0


def cmd_listen(args: argparse.Namespace) -> int:
    settings = get_settings()
    asyncio.run(
        run_listener(
            api_url=args.api_url,
            poll_interval=args.poll_interval,
            webhook_url=args.webhook,
            api_key=settings.security.api_key,
            state_file=Path(args.state_file) if args.state_file else DEFAULT_STATE_FILE,
            once=args.once,
        )
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="decivue",
        description="Track decision health against assumptions, constraints and conflicts",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--plain-logs", action="store_true", help="Plain text logs instead of JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    seed = sub.add_parser("seed", help="Load a JSON scenario")
    seed.add_argument("scenario", help="Path to the scenario file")
    seed.add_argument("--no-evaluate", action="store_true", help="Skip evaluation after seeding")

    evaluate = sub.add_parser("evaluate", help="Re-evaluate decisions")
    evaluate.add_argument("decision_ids", nargs="*", type=UUID)
    target = evaluate.add_mutually_exclusive_group()
    target.add_argument("--pending", action="store_true", help="Only decisions flagged for evaluation")
    target.add_argument("--all", action="store_true", help="Every decision")

    detect = sub.add_parser("detect-conflicts", help="Run pairwise conflict detection")
    detect.add_argument("--kind", choices=["assumptions", "decisions", "all"], default="all")

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--reload", action="store_true")

    listen = sub.add_parser("listen", help="Poll the events API and forward notable events")
    listen.add_argument("--api-url", default=DEFAULT_API_URL)
    listen.add_argument("--poll-interval", type=int, default=15, help="Seconds between polls")
    listen.add_argument("--webhook", default=None, help="POST each event to this URL")
    listen.add_argument("--state-file", default=None)
    listen.add_argument("--once", action="store_true", help="Poll a single time and exit")

    return parser


_ASYNC_COMMANDS = {
    "init-db": cmd_init_db,
    "seed": cmd_seed,
    "evaluate": cmd_evaluate,
    "detect-conflicts": cmd_detect_conflicts,
}


async def _run(handler, args: argparse.Namespace) -> int:
    try:
        return await handler(args)
    finally:
        await close_database()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(
        args.log_level or settings.logging.level,
        json_output=settings.logging.json_output and not args.plain_logs,
    )

    if args.command == "evaluate" and not (args.decision_ids or args.pending or args.all):
        parser.error("evaluate needs decision ids, --pending or --all")

    if args.command == "serve":
        return cmd_serve(args)
    if args.command == "listen":
        return cmd_listen(args)
    return asyncio.run(_run(_ASYNC_COMMANDS[args.command], args))


if __name__ == "__main__":
    sys.exit(main())
