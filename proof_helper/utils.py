"""Utilities for the proof helper.

Generic helpers: directories and timestamps, usage accounting, timing,
cooperative cancellation, and problem loading.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from proof_helper import config
from proof_helper.errors import InputError, ProofCancelled


def ensure_dir(path: str | Path) -> Path:
    """Create directory and parents, return Path."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def now_timestamp() -> str:
    """ISO-8601 UTC timestamp with ':' and '.' made filesystem-friendly."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z").replace(":", "-").replace(".", "-")


def merge_usage(total: dict[str, int], add: dict[str, int]) -> dict[str, int]:
    """Accumulate API usage dicts (handles string values like model_used)."""
    for k, v in add.items():
        if isinstance(v, str):
            total[k] = v
        else:
            total[k] = total.get(k, 0) + int(v)
    return total


@dataclass
class Stopwatch:
    """Lightweight wall-clock timer."""
    start: float = 0.0

    def __post_init__(self) -> None:
        if self.start == 0.0:
            self.start = time.time()

    def elapsed_s(self) -> float:
        return time.time() - self.start


class CancellationToken:
    """Cooperative cancellation flag shared between the engine and its caller.

    Cancelling never interrupts a call already in flight; it only stops the
    engine from issuing the next one.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ProofCancelled("Cancellation requested")


# ============================================================================
# Problem loading
# ============================================================================


def read_problem_from_path(problem_path: str | Path) -> str:
    """Read a problem statement from a file, or from a conventional file inside a folder."""
    path = Path(problem_path)
    if not path.exists():
        raise InputError(f"Problem path not found: {path}")
    if path.is_file():
        return path.read_text(encoding="utf-8")
    if path.is_dir():
        for name in config.PROBLEM_FILENAMES:
            candidate = path / name
            if candidate.is_file():
                return candidate.read_text(encoding="utf-8")
        raise InputError(
            "No problem file found in folder. Expected one of: "
            + ", ".join(config.PROBLEM_FILENAMES)
        )
    raise InputError(f"Problem path is neither a file nor a directory: {path}")


def load_problem(problem: Optional[str], problem_path: Optional[str]) -> str:
    """Resolve the problem text from inline text or a path (path wins)."""
    text = (problem or "").strip()
    if problem_path and problem_path.strip():
        text = read_problem_from_path(problem_path.strip())
    if not text.strip():
        raise InputError("Missing problem statement. Provide `problem_path` or `problem`.")
    return text
