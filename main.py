"""CLI entry point for the benchmark workbench."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx

from workbench.api.base import BenchmarkBackend
from workbench.api.client import BenchmarkApiClient
from workbench.core.config import Settings
from workbench.core.errors import WorkbenchError
from workbench.core.schemas import (
    PROMPT_VERSIONS,
    BenchmarkJob,
    CreatePromptRequest,
    ModelConfig,
    PromptTemplate,
    PromptType,
    UpdatePromptRequest,
)
from workbench.pipeline.orchestrator import (
    AggregatedView,
    BenchmarkOrchestrator,
    export_view_json,
)
from workbench.pipeline.prompts import active_prompt, group_by_type

DEFAULT_PROVIDER = "openai"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark workbench - run LLM question benchmarks and compare models",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML file (default: built-in defaults)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- run ---
    run_parser = subparsers.add_parser("run", help="Submit a benchmark and wait for it")
    run_parser.add_argument("--purchase-id", required=True, help="Purchase whose resume is used")
    run_parser.add_argument(
        "--model",
        action="append",
        dest="models",
        default=[],
        help="Model as provider:name (repeatable, e.g. openai:gpt-4o)",
    )
    run_parser.add_argument("--questions", type=int, default=3, help="Questions per model (default: 3)")
    run_parser.add_argument(
        "--prompt-version",
        default="v1",
        choices=list(PROMPT_VERSIONS),
        help="Prompt version (default: v1)",
    )
    run_parser.add_argument("--temperature", type=float, default=0.7, help="Sampling temperature")
    run_parser.add_argument("--export", choices=["json"], help="Export the aggregated view (json)")

    # --- watch ---
    watch_parser = subparsers.add_parser("watch", help="Follow an already submitted job")
    watch_parser.add_argument("job_id", help="Job id returned by the start call")
    watch_parser.add_argument("--export", choices=["json"], help="Export the aggregated view (json)")

    # --- history ---
    history_parser = subparsers.add_parser("history", help="List past benchmark runs")
    history_parser.add_argument("--page", type=int, default=0, help="Page number (default: 0)")
    history_parser.add_argument("--size", type=int, default=None, help="Page size")

    # --- compare ---
    compare_parser = subparsers.add_parser("compare", help="Compare models over recent runs")
    compare_parser.add_argument("--days", type=int, default=None, help="Trailing window in days")
    compare_parser.add_argument(
        "--local",
        action="store_true",
        help="Aggregate history rows client-side instead of using /compare",
    )

    # --- prompts ---
    prompts_parser = subparsers.add_parser("prompts", help="Manage prompt templates")
    prompt_actions = prompts_parser.add_subparsers(dest="action", required=True)
    prompt_actions.add_parser("list", help="List templates grouped by type")
    create_parser = prompt_actions.add_parser("create", help="Store a new template version")
    create_parser.add_argument(
        "--type",
        dest="prompt_type",
        default=PromptType.QUESTION_GENERATION.value,
        choices=[t.value for t in PromptType],
        help="Prompt type (default: QUESTION_GENERATION)",
    )
    create_parser.add_argument("--name", default=None, help="Template name")
    create_parser.add_argument("--description", default=None, help="Short description")
    create_parser.add_argument("--file", required=True, help="File holding the prompt content")
    update_parser = prompt_actions.add_parser("update", help="Edit a template")
    update_parser.add_argument("prompt_id", type=int, help="Template id")
    update_parser.add_argument("--name", default=None, help="New name")
    update_parser.add_argument("--description", default=None, help="New description")
    update_parser.add_argument("--file", default=None, help="File holding the new content")
    for action in ("activate", "delete"):
        action_parser = prompt_actions.add_parser(action, help=f"{action.capitalize()} a template")
        action_parser.add_argument("prompt_id", type=int, help="Template id")

    # --- rag ---
    rag_parser = subparsers.add_parser("rag", help="Check a resume's embeddings and search them")
    rag_parser.add_argument("resume_id", help="Resume id")
    rag_parser.add_argument("--query", default=None, help="Search the resume chunks for this text")

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_model(value: str, temperature: float) -> ModelConfig:
    """Parse 'provider:name' (or a bare name) into a ModelConfig."""
    provider, sep, name = value.partition(":")
    if not sep:
        provider, name = DEFAULT_PROVIDER, value
    if not provider.strip() or not name.strip():
        msg = f"Invalid model '{value}', expected provider:name"
        raise ValueError(msg)
    return ModelConfig(provider=provider.strip(), name=name.strip(), temperature=temperature)


def print_progress(job: BenchmarkJob) -> None:
    print(
        f"[{job.status.value}] {job.progress_percentage:5.1f}% "
        f"models {job.completed_models}/{job.total_models}, "
        f"questions {job.completed_questions}/{job.total_questions_per_model} "
        f"- {job.progress_message}"
    )


def print_view(view: AggregatedView) -> None:
    print(f"\nBenchmark complete for purchase {view.purchase_info.purchase_id}:")
    for report in view.summaries:
        if report.failed:
            print(f"  {report.model.label}: ERROR {report.error}")
            continue
        s = report.summary
        score = f"{s.avg_total_score:.1f}" if s.avg_total_score is not None else "-"
        latency = f"{s.avg_latency_ms / 1000:.1f}s" if s.avg_latency_ms is not None else "-"
        print(
            f"  {report.model.label}: score {score}, latency {latency}, "
            f"cost ${s.total_cost_usd:.4f}, {s.success_count} ok / {s.failure_count} failed"
        )
        flagged = [q for q in report.questions if q.duplicate.has_duplicate]
        if flagged:
            numbers = ", ".join(f"Q{q.question.question_number}" for q in flagged)
            print(f"    duplicates: {numbers}")

    print("\nRanking:")
    for i, row in enumerate(view.ranking, start=1):
        score = f"{row.avg_total_score:.1f}" if row.avg_total_score is not None else "-"
        print(f"  {i}. {row.provider}/{row.model_name} ({score})")


async def cmd_run(args: argparse.Namespace, settings: Settings) -> None:
    models = [parse_model(m, args.temperature) for m in args.models]
    async with BenchmarkApiClient(settings.api) as client:
        orchestrator = BenchmarkOrchestrator(client, settings)
        view = await orchestrator.run(
            args.purchase_id,
            models,
            args.questions,
            args.prompt_version,
            on_progress=print_progress,
        )
    print_view(view)
    if args.export == "json":
        print(f"\n{export_view_json(view)}")


async def cmd_watch(args: argparse.Namespace, settings: Settings) -> None:
    async with BenchmarkApiClient(settings.api) as client:
        orchestrator = BenchmarkOrchestrator(client, settings)
        views: list[AggregatedView] = []
        errors: list[WorkbenchError] = []
        handle = orchestrator.observe(args.job_id, print_progress, views.append, errors.append)
        await handle.wait()
    if errors:
        raise errors[0]
    for view in views:
        print_view(view)
        if args.export == "json":
            print(f"\n{export_view_json(view)}")


async def cmd_history(args: argparse.Namespace, settings: Settings) -> None:
    size = args.size or settings.history.page_size
    async with BenchmarkApiClient(settings.api) as client:
        page = await client.get_history(args.page, size)

    print(f"Page {page.number + 1}/{max(page.total_pages, 1)} ({page.total_elements} runs)")
    for job in page.content:
        score = f"{job.avg_total_score:.1f}" if job.avg_total_score is not None else "-"
        print(
            f"  {job.job_id[:8]}  {job.created_at:%Y-%m-%d %H:%M}  "
            f"{', '.join(job.model_names)}  {job.total_questions} questions  "
            f"score {score}  ${job.total_cost_usd:.4f}"
        )


async def cmd_compare(args: argparse.Namespace, settings: Settings) -> None:
    days = args.days or settings.history.window_days
    async with BenchmarkApiClient(settings.api) as client:
        if args.local:
            stats = await BenchmarkOrchestrator(client, settings).compare_recent(days)
        else:
            stats = await client.get_model_comparison(days)

    print(f"Model comparison (last {days} days):")
    if not stats:
        print("  No benchmark data yet.")
    for s in stats:
        score = f"{s.avg_total_score:.1f}" if s.avg_total_score is not None else "-"
        latency = f"{s.avg_latency_ms / 1000:.1f}s" if s.avg_latency_ms is not None else "-"
        print(
            f"  {s.model_provider}/{s.model_name}: score {score}, latency {latency}, "
            f"{s.total_questions} questions, "
            f"{s.total_input_tokens + s.total_output_tokens} tokens, ${s.total_cost_usd:.4f}"
        )


def print_prompts(templates: list[PromptTemplate]) -> None:
    for prompt_type, group in group_by_type(templates).items():
        active = active_prompt(templates, prompt_type)
        heading = f"active v{active.version}" if active else "no active version"
        print(f"{prompt_type.value} ({heading}):")
        if not group:
            print("  (none)")
        for t in group:
            marker = "*" if active is not None and t.id == active.id else " "
            print(f"  {marker} v{t.version}  id {t.id}  {t.name or '-'}  {t.description}")


async def prompt_action(backend: BenchmarkBackend, args: argparse.Namespace) -> None:
    """Run one ``prompts`` action against the backend."""
    if args.action == "list":
        print_prompts(await backend.get_prompts())
    elif args.action == "create":
        request = CreatePromptRequest(
            prompt_type=PromptType(args.prompt_type),
            name=args.name,
            content=Path(args.file).read_text(),
            description=args.description,
        )
        prompt = await backend.create_prompt(request)
        print(f"Created {prompt.prompt_type.value} prompt v{prompt.version} (id {prompt.id})")
    elif args.action == "update":
        content = Path(args.file).read_text() if args.file else None
        if args.name is None and args.description is None and content is None:
            msg = "Nothing to update: pass --name, --description or --file"
            raise ValueError(msg)
        request = UpdatePromptRequest(name=args.name, content=content, description=args.description)
        prompt = await backend.update_prompt(args.prompt_id, request)
        print(f"Updated prompt {prompt.id} ({prompt.prompt_type.value} v{prompt.version})")
    elif args.action == "activate":
        await backend.activate_prompt(args.prompt_id)
        print(f"Activated prompt {args.prompt_id}")
    elif args.action == "delete":
        await backend.delete_prompt(args.prompt_id)
        print(f"Deleted prompt {args.prompt_id}")


async def rag_lookup(backend: BenchmarkBackend, resume_id: str, query: str | None) -> None:
    """Report a resume's embedding status and, if it is embedded, search it."""
    status = await backend.check_embedding(resume_id)
    if not status.exists:
        print(f"Resume {resume_id} has no embeddings yet.")
        return
    print(f"Resume {resume_id}: {status.chunk_count} chunks embedded")
    if not query:
        return

    result = await backend.search_embedding(resume_id, query)
    if not result.chunks:
        print("  No matching chunks.")
    for i, chunk in enumerate(result.chunks, start=1):
        print(f"  {i}. ({chunk.score:.3f}) {chunk.content}")


async def cmd_prompts(args: argparse.Namespace, settings: Settings) -> None:
    async with BenchmarkApiClient(settings.api) as client:
        await prompt_action(client, args)


async def cmd_rag(args: argparse.Namespace, settings: Settings) -> None:
    async with BenchmarkApiClient(settings.api) as client:
        await rag_lookup(client, args.resume_id, args.query)


_COMMANDS = {
    "run": cmd_run,
    "watch": cmd_watch,
    "history": cmd_history,
    "compare": cmd_compare,
    "prompts": cmd_prompts,
    "rag": cmd_rag,
}


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config) if args.config else Settings()
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(_COMMANDS[args.command](args, settings))
    except (WorkbenchError, httpx.HTTPError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
