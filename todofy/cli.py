import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from .catalog import ModelCatalog
from .config import load_config
from .connections import ConnectionPool, ConnectionPoolError, ServiceConfig
from .health import ReadinessError, ReadinessGate
from .llm_client import LLMError
from .logging_config import setup_logging
from .models import HealthOutcome, Model, ModelFamily, SummaryResult, TaskRecommendation
from .prompts import (
    DEFAULT_PROMPT_RECOMMEND_TOP_TASKS,
    DEFAULT_PROMPT_SUMMARY_EMAIL,
    DEFAULT_PROMPT_SUMMARY_RANGE,
    join_summaries,
    parse_recommendations,
)
from .summarizer import SummaryOrchestrator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _render_models_table(catalog: ModelCatalog) -> None:
    console = Console()
    table = Table(title="Models")

    table.add_column("Model")
    table.add_column("Provider name")
    table.add_column("Family")
    table.add_column("Max input tokens")
    table.add_column("Fallback rank")

    rank = {m: i for i, m in enumerate(catalog.preference_order(), start=1)}
    for d in catalog.descriptors():
        table.add_row(
            d.id.value,
            d.provider_name,
            d.family.value,
            str(d.max_input_tokens),
            str(rank[d.id]) if d.id in rank else "explicit only",
        )

    console.print(table)


def _render_health_table(outcomes: List[HealthOutcome]) -> None:
    console = Console()
    table = Table(title="Service health")

    table.add_column("Service")
    table.add_column("Healthy")
    table.add_column("Probes")
    table.add_column("Error")

    for o in sorted(outcomes, key=lambda o: o.service):
        table.add_row(o.service, "yes" if o.healthy else "no", str(o.attempts), o.error or "")

    console.print(table)


def _render_recommendations_table(recommendations: List[TaskRecommendation], model: Model) -> None:
    console = Console()
    table = Table(title=f"Top tasks ({model.value})")

    table.add_column("Rank", justify="right")
    table.add_column("Task")
    table.add_column("Why")

    for r in recommendations:
        table.add_row(str(r.rank), r.title, r.reason)

    console.print(table)


def _read_input(path: Optional[str]) -> str:
    if not path or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _parse_model(value: Optional[str]) -> Model:
    if not value:
        return Model.UNSPECIFIED
    return Model(value)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_models() -> None:
    _render_models_table(ModelCatalog())


def _run_summary(config, prompt: str, text: str, args: argparse.Namespace) -> Optional[SummaryResult]:
    orchestrator = SummaryOrchestrator(config)
    try:
        result = orchestrator.summarize(
            ModelFamily.GEMINI,
            prompt,
            text,
            model=_parse_model(args.model),
            max_tokens=args.max_tokens,
        )
    except LLMError as e:
        print(f"Failed to summarize: {e}", file=sys.stderr)
        return None
    finally:
        orchestrator.close()

    logging.info("Summary generated by %s", result.model.value)
    return result


def _summarize(config, prompt: str, text: str, args: argparse.Namespace) -> int:
    result = _run_summary(config, prompt, text, args)
    if result is None:
        return 1

    Console().print(f"[dim]Model: {result.model.value}[/dim]")
    print(result.summary)
    return 0


def cmd_summarize(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level, config.log_to_file)
    text = _read_input(args.file)
    prompt = args.prompt or DEFAULT_PROMPT_SUMMARY_EMAIL
    return _summarize(config, prompt, text, args)


def cmd_digest(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level, config.log_to_file)
    summaries = [Path(p).read_text(encoding="utf-8").strip() for p in args.files]
    if not summaries:
        print("No summaries given; nothing to digest.")
        return 0
    return _summarize(config, DEFAULT_PROMPT_SUMMARY_RANGE, join_summaries(summaries), args)


def cmd_recommend(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level, config.log_to_file)
    summaries = [Path(p).read_text(encoding="utf-8").strip() for p in args.files]
    if not summaries:
        print("No task summaries given; nothing to recommend.")
        return 0

    result = _run_summary(config, DEFAULT_PROMPT_RECOMMEND_TOP_TASKS, join_summaries(summaries), args)
    if result is None:
        return 1

    try:
        recommendations = parse_recommendations(result.summary)
    except LLMError as e:
        print(f"Could not read recommendations from {result.model.value}: {e}", file=sys.stderr)
        return 1

    _render_recommendations_table(recommendations, result.model)
    return 0


def cmd_wait_ready(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level, config.log_to_file)

    timeout = args.timeout if args.timeout is not None else config.health_check_timeout
    configs = [
        ServiceConfig(name=name, address=addr)
        for name, addr in config.service_addresses().items()
    ]

    try:
        pool = ConnectionPool.build(configs)
    except ConnectionPoolError as e:
        print(f"Failed to open service connections: {e}", file=sys.stderr)
        return 1

    gate = ReadinessGate(interval=config.health_poll_interval)
    with pool:
        logging.info("Waiting up to %.1fs for %s", timeout, ", ".join(pool.names()))
        try:
            outcomes = gate.await_healthy(pool, timeout)
        except ReadinessError as e:
            _render_health_table(e.failures)
            print(str(e), file=sys.stderr)
            return 1

    _render_health_table(outcomes)
    return 0


# ---------------------------------------------------------------------------
# Main CLI entrypoint
# ---------------------------------------------------------------------------


def _add_model_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--model",
        type=str,
        choices=[m.value for m in Model if m != Model.UNSPECIFIED],
        default=None,
        help="Use only this model instead of the fallback order.",
    )
    p.add_argument(
        "--max-tokens",
        type=int,
        default=0,
        help="Input token ceiling; 0 uses TOKEN_LIMIT from config.",
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="todofy",
        description="Summarize emails with model fallback and check service readiness.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # models
    subparsers.add_parser("models", help="List known models and the fallback order.")

    # summarize
    p_sum = subparsers.add_parser("summarize", help="Summarize one email body.")
    p_sum.add_argument(
        "file",
        nargs="?",
        default="-",
        help="File holding the email body; '-' or omitted reads stdin.",
    )
    p_sum.add_argument(
        "--prompt",
        type=str,
        default=None,
        help="Prompt placed before the body. Default: the built-in email prompt.",
    )
    _add_model_args(p_sum)

    # digest
    p_digest = subparsers.add_parser(
        "digest",
        help="Rank and condense several email summaries into one overview.",
    )
    p_digest.add_argument("files", nargs="*", help="Files, one summary each.")
    _add_model_args(p_digest)

    # recommend
    p_rec = subparsers.add_parser(
        "recommend",
        help="Pick the three most important tasks from several task summaries.",
    )
    p_rec.add_argument("files", nargs="*", help="Files, one task summary each.")
    _add_model_args(p_rec)

    # wait-ready
    p_wait = subparsers.add_parser(
        "wait-ready",
        help="Block until the llm, todo and database services report SERVING.",
    )
    p_wait.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait (default: HEALTH_CHECK_TIMEOUT from config).",
    )

    args = parser.parse_args(argv)

    if args.command == "models":
        cmd_models()
        return 0
    elif args.command == "summarize":
        return cmd_summarize(args)
    elif args.command == "digest":
        return cmd_digest(args)
    elif args.command == "recommend":
        return cmd_recommend(args)
    elif args.command == "wait-ready":
        return cmd_wait_ready(args)
    else:
        parser.error(f"Unknown command: {args.command!r}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
