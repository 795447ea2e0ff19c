"""Run artifacts: one timestamped directory per engine invocation.

Layout:
    <run-root>/<timestamp>/
        problem.txt
        other_prompts.json   (only with supplementary prompts)
        other_prompts.md     (only with supplementary prompts)
        log.txt              (append-only transcript)
        solution.md          (only on success)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from proof_helper import config
from proof_helper.utils import ensure_dir, now_timestamp

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str], None]


@dataclass
class RunHandle:
    run_dir: Path
    project_root: Path
    verbose: bool = True
    on_output: Optional[OutputCallback] = None

    @property
    def log_path(self) -> Path:
        return self.run_dir / config.LOG_FILE

    @property
    def solution_path(self) -> Path:
        return self.run_dir / config.SOLUTION_FILE

    def relative(self, path: Path) -> str:
        """Path relative to the project root when possible."""
        try:
            return str(path.resolve().relative_to(self.project_root.resolve()))
        except ValueError:
            return str(path)

    def log(self, line: str) -> None:
        append_log(self, line)


def runs_root(project_root: Path, runs_dir: Optional[str | Path] = None) -> Path:
    chosen = runs_dir or config.RUNS_DIR
    if chosen:
        p = Path(chosen)
        return p if p.is_absolute() else project_root / p
    return project_root / config.RUNS_SUBDIR


def _create_unique_dir(base: Path) -> Path:
    ensure_dir(base)
    stamp = now_timestamp()
    candidate = base / stamp
    suffix = 1
    while True:
        try:
            candidate.mkdir()
            return candidate
        except FileExistsError:
            candidate = base / f"{stamp}-{suffix}"
            suffix += 1


def format_other_prompts_md(other_prompts: Iterable[str]) -> str:
    lines = ["# Additional prompts", ""]
    lines.extend(f"- {p}" for p in other_prompts)
    lines.append("")
    return "\n".join(lines)


def begin_run(
    problem: str,
    other_prompts: Iterable[str] = (),
    *,
    project_root: Optional[str | Path] = None,
    runs_dir: Optional[str | Path] = None,
    verbose: bool = True,
    on_output: Optional[OutputCallback] = None,
) -> RunHandle:
    """Create the run directory and persist the inputs before any model call."""
    root = Path(project_root) if project_root else Path.cwd()
    run_dir = _create_unique_dir(runs_root(root, runs_dir))

    (run_dir / config.PROBLEM_FILE).write_text(problem, encoding="utf-8")

    prompts = list(other_prompts)
    if prompts:
        (run_dir / config.OTHER_PROMPTS_JSON).write_text(json.dumps(prompts, indent=2), encoding="utf-8")
        (run_dir / config.OTHER_PROMPTS_MD).write_text(format_other_prompts_md(prompts), encoding="utf-8")

    logger.info("Run directory: %s", run_dir)
    return RunHandle(run_dir=run_dir, project_root=root, verbose=verbose, on_output=on_output)


def append_log(handle: RunHandle, line: str) -> None:
    """Append one transcript line and stream it; failures are reported, never raised."""
    if handle.verbose and handle.on_output is not None:
        try:
            handle.on_output(line)
        except Exception as e:
            logger.warning("Live output callback failed: %s", e)
    try:
        with handle.log_path.open("a", encoding="utf-8", errors="replace") as f:
            f.write(f"{line}\n")
    except OSError as e:
        logger.warning("Could not append to %s: %s", handle.log_path, e)


def finalize_run(handle: RunHandle, solution: str) -> Path:
    """Write the accepted solution; only called on overall success."""
    handle.solution_path.write_text(solution, encoding="utf-8", errors="replace")
    return handle.solution_path
