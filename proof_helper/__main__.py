"""Entry point for the proof helper.

Usage:
    python -m proof_helper problems/imo_2025_p1/
    python -m proof_helper --problem "Prove that 1+1=2."
    python -m proof_helper problem.txt --model openai:gpt-5-mini --max-runs 3
    python -m proof_helper problem.txt --other-prompt "Try induction on n." --quiet
    python -m proof_helper --problem "..." --dry-run
"""

from __future__ import annotations

import argparse
import logging
import signal
from typing import Optional

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from proof_helper import config
from proof_helper.agents import OpenAIBackend, WireShape, describe_backend, resolve_backend
from proof_helper.controller import ProofController
from proof_helper.errors import ConfigurationError
from proof_helper.models import ProofHelperParams, ProofResult, ProofStatus

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solve-verify-refine proof helper")
    parser.add_argument(
        "problem_path", nargs="?", default=None,
        help="Problem file, or a folder containing problem.txt / problem.md / statement.txt ...",
    )
    parser.add_argument("--problem", help="Inline problem statement (instead of PROBLEM_PATH)")
    parser.add_argument(
        "--model",
        help="Model override: a Gemini model name, or openai:<model> / anthropic:<model>",
    )
    parser.add_argument(
        "--other-prompt", dest="other_prompts", action="append", default=[],
        metavar="TEXT", help="Extra instruction added to every fresh conversation (repeatable)",
    )
    parser.add_argument(
        "--max-runs", type=int, default=config.DEFAULT_MAX_RUNS,
        help=f"Maximum outer runs (default: {config.DEFAULT_MAX_RUNS})",
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Do not stream the transcript (it is still written to log.txt)",
    )
    parser.add_argument("--project-root", default=None, help="Root for .econ/proof-runs (default: cwd)")
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Only resolve and print the backend; no run directory, no model calls",
    )
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Python logging level")
    return parser


def print_summary(console: Console, result: ProofResult) -> None:
    table = Table(title="Proof helper")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Status", result.status.value)
    table.add_row("Runs attempted", str(result.runs_attempted))
    table.add_row("Artifacts", result.artifact_path or "-")
    if result.error:
        table.add_row("Last error", result.error)
    runtime = result.metadata.get("runtime_s")
    if runtime is not None:
        table.add_row("Runtime (s)", f"{runtime:.1f}")
    console.print(table)


def dry_run(console: Console, model: Optional[str]) -> int:
    try:
        backend = resolve_backend(model)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return EXIT_INVALID
    console.print(describe_backend(backend))
    if isinstance(backend, OpenAIBackend):
        console.print(f"Wire shape: {backend.shape.value}")
        if backend.shape is WireShape.RESPONSES:
            console.print(f"Reasoning effort: {backend.reasoning_effort}")
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    console = Console()

    if args.dry_run:
        return dry_run(console, args.model)

    try:
        params = ProofHelperParams(
            problem=args.problem,
            problem_path=args.problem_path,
            model=args.model,
            other_prompts=args.other_prompts,
            max_runs=args.max_runs,
            verbose=not args.quiet,
        )
    except ValidationError as e:
        for err in e.errors():
            console.print(f"[red]Invalid input:[/red] {err['msg']}")
        return EXIT_INVALID

    controller = ProofController(
        params,
        project_root=args.project_root,
        on_output=lambda line: console.print(line, markup=False, highlight=False),
    )

    def _request_stop(signum, frame) -> None:
        console.print("[yellow]Cancellation requested; finishing the current call...[/yellow]")
        controller.cancel.cancel()

    previous = signal.signal(signal.SIGINT, _request_stop)
    try:
        result = controller.run()
    finally:
        signal.signal(signal.SIGINT, previous)

    console.print()
    console.print(result.message, markup=False)
    print_summary(console, result)

    if result.ok:
        return EXIT_OK
    if result.status is ProofStatus.INVALID_INPUT:
        return EXIT_INVALID
    return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
