"""
soulycore.cli - Command-Line Interface

Inspect and exercise the memory core from a shell.

Usage:
    python -m soulycore init-db
    python -m soulycore runs list [--type MemoryExtraction] [--limit 20]
    python -m soulycore runs show <run-id>
    python -m soulycore context --query "What does Alice do?" [--contact Alice]
    python -m soulycore extract "Alice works at Acme Corp."
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, Any
from uuid import UUID

from soulycore.models.pipeline import PipelineRun, PipelineRunType
from soulycore.settings import configure_logging, get_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from soulycore.services.memory_core import MemoryCore

logger = logging.getLogger(__name__)


def _get_session_factory() -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create a DB session factory for CLI operations.

    Returns:
        Tuple of (async_sessionmaker, AsyncEngine).
    """
    from soulycore.models.database import get_engine, get_sessionmaker

    engine = get_engine()
    return get_sessionmaker(engine), engine


def _build_core(
    session_factory: async_sessionmaker[AsyncSession], with_llm: bool = False
) -> MemoryCore:
    from soulycore.services.memory_core import build_memory_core

    settings = get_settings()
    llm_service = None
    if with_llm or settings.embedding_backend == "llm":
        if not settings.has_llm_credentials():
            raise SystemExit("No LLM credentials configured (set OPENAI_API_KEY, ...)")
        from soulycore.llm import LLMService

        llm_service = LLMService(settings.build_llm_config())
    return build_memory_core(settings, session_factory, llm_service=llm_service)


def _run_to_dict(run: PipelineRun, with_steps: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": str(run.id),
        "type": run.run_type,
        "status": run.status,
        "start_time": run.start_time,
        "end_time": run.end_time,
        "duration_ms": run.duration_ms,
        "final_output": run.final_output,
        "error_message": run.error_message,
    }
    if with_steps:
        data["steps"] = [
            {
                "order": step.step_order,
                "name": step.step_name,
                "status": step.status,
                "duration_ms": step.duration_ms,
                "input": step.input_payload,
                "output": step.output_payload,
                "error": step.error_message,
            }
            for step in run.steps
        ]
    return data


async def _init_db(_args: argparse.Namespace) -> None:
    """Create every table (development only; use alembic in production)."""
    from soulycore.models.database import init_db

    await init_db()
    print("Database initialized.")


async def _list_runs(args: argparse.Namespace) -> None:
    """List recent pipeline runs."""
    from soulycore.core.pipelines import RunLogger

    session_factory, engine = _get_session_factory()
    try:
        runs = await RunLogger(session_factory).list_runs(run_type=args.type, limit=args.limit)
        if not runs:
            print("No pipeline runs.")
            return
        for run in runs:
            print(
                f"  {run.id}  type={run.run_type}  status={run.status}  "
                f"duration_ms={run.duration_ms}  started={run.start_time:%Y-%m-%d %H:%M:%S}"
            )
    finally:
        await engine.dispose()


async def _show_run(args: argparse.Namespace) -> None:
    """Show one run with its steps."""
    from soulycore.core.pipelines import RunLogger

    session_factory, engine = _get_session_factory()
    try:
        run = await RunLogger(session_factory).get_run(args.run_id)
        if run is None:
            print(json.dumps({"error": f"Run {args.run_id} not found"}, indent=2))
            return
        print(json.dumps(_run_to_dict(run, with_steps=True), indent=2, default=str))
    finally:
        await engine.dispose()


async def _assemble_context(args: argparse.Namespace) -> None:
    """Print the context block that would be sent for a query."""
    from soulycore.core.memory import StructuredFilter

    session_factory, engine = _get_session_factory()
    try:
        core = _build_core(session_factory)

        contacts = []
        for name in args.contact or []:
            matches = await core.structured.query(StructuredFilter(kind="contact", name=name))
            if not matches:
                logger.warning(f"No contact matching {name!r}")
            contacts.extend(matches)

        assembled = await core.context_pipeline.assemble(
            args.conversation_id, args.query, mentioned_contacts=contacts
        )
        if assembled.degraded_sources:
            print(f"(degraded: {', '.join(assembled.degraded_sources)})", file=sys.stderr)
        print(assembled.text or "(empty context)")
    finally:
        await engine.dispose()


async def _extract(args: argparse.Namespace) -> None:
    """Run memory extraction on a piece of text and print the summary."""
    session_factory, engine = _get_session_factory()
    try:
        core = _build_core(session_factory, with_llm=True)
        if core.extraction_pipeline is None:
            raise SystemExit("Memory extraction is not configured (no extractor available)")
        summary = await core.extraction_pipeline.run(args.text)
        print(json.dumps(summary.model_dump(), indent=2, default=str))
        print(summary.final_output)
        if core.llm_service is not None:
            cost = core.llm_service.get_cost_summary()
            print(
                f"LLM cost: ${cost['total_cost']:.6f} over {cost['requests_count']} request(s)",
                file=sys.stderr,
            )
    finally:
        await engine.dispose()


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="soulycore",
        description="soulycore - memory orchestration for conversational assistants",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override SOULY_LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ── init-db ──
    init_p = subparsers.add_parser("init-db", help="Create all tables")
    init_p.set_defaults(func=_init_db)

    # ── runs command group ──
    runs_parser = subparsers.add_parser("runs", help="Inspect pipeline runs")
    runs_sub = runs_parser.add_subparsers(dest="action", help="Run actions")

    list_p = runs_sub.add_parser("list", help="List recent runs")
    list_p.add_argument(
        "--type", choices=[t.value for t in PipelineRunType], help="Filter by pipeline"
    )
    list_p.add_argument("--limit", type=int, default=20, help="Max runs to show (default: 20)")
    list_p.set_defaults(func=_list_runs)

    show_p = runs_sub.add_parser("show", help="Show a run and its steps")
    show_p.add_argument("run_id", type=UUID, help="Run UUID")
    show_p.set_defaults(func=_show_run)

    # ── context ──
    context_p = subparsers.add_parser("context", help="Assemble context for a query")
    context_p.add_argument("--query", required=True, help="User message")
    context_p.add_argument("--conversation-id", type=UUID, default=None, help="Conversation UUID")
    context_p.add_argument(
        "--contact", action="append", help="Mentioned contact name (repeatable)"
    )
    context_p.set_defaults(func=_assemble_context)

    # ── extract ──
    extract_p = subparsers.add_parser("extract", help="Extract and store memory from text")
    extract_p.add_argument("text", help="Text to analyze")
    extract_p.set_defaults(func=_extract)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level})
    configure_logging(settings)

    asyncio.run(args.func(args))


if __name__ == "__main__":
    main()
