from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from proof_helper import config


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


class RunStatus(str, Enum):
    CONVERGED = "converged"
    FAILED = "failed-this-attempt"
    ABORTED = "aborted"


class ProofStatus(str, Enum):
    SOLVED = "solved"
    FAILED = "failed"
    ABORTED = "aborted"
    INVALID_INPUT = "invalid_input"


class ProofHelperParams(BaseModel):
    """Invocation parameters for one engine run."""

    problem: Optional[str] = None
    problem_path: Optional[str] = None
    model: Optional[str] = None
    other_prompts: list[str] = Field(default_factory=list)
    max_runs: int = Field(default=config.DEFAULT_MAX_RUNS, ge=0)
    verbose: bool = True

    @field_validator("problem_path")
    @classmethod
    def _path_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("`problem_path` cannot be empty when provided.")
        return v

    @field_validator("model")
    @classmethod
    def _model_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("If provided, `model` cannot be an empty string.")
        return v

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "ProofHelperParams":
        has_text = bool(self.problem and self.problem.strip())
        has_path = self.problem_path is not None
        if has_text == has_path:
            raise ValueError("Provide exactly one of `problem_path` or `problem`.")
        return self


# ============================================================================
# Conversations
# ============================================================================


class Turn(BaseModel):
    """One conversation turn: a role and one or more text segments."""

    model_config = ConfigDict(frozen=True)

    role: Role
    parts: tuple[str, ...]

    @property
    def text(self) -> str:
        return "\n\n".join(p for p in self.parts if p)


class Conversation:
    """Ordered, read-only sequence of turns."""

    def __init__(self, turns: Iterable[Turn] = ()) -> None:
        self._turns: list[Turn] = list(turns)

    @classmethod
    def single(cls, text: str) -> "Conversation":
        """A one-shot conversation holding a single user turn."""
        return cls([Turn(role=Role.USER, parts=(text,))])

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(turns={len(self._turns)})"


def _seed_turns(problem: str, other_prompts: Iterable[str]) -> list[Turn]:
    turns = [Turn(role=Role.USER, parts=(problem,))]
    turns.extend(Turn(role=Role.USER, parts=(p,)) for p in other_prompts)
    return turns


class DraftConversation(Conversation):
    """Append-only conversation grown during the drafting stage."""

    @classmethod
    def seed(cls, problem: str, other_prompts: Iterable[str] = ()) -> "DraftConversation":
        return cls(_seed_turns(problem, other_prompts))

    def add_user(self, *parts: str) -> None:
        self._turns.append(Turn(role=Role.USER, parts=tuple(parts)))

    def add_model(self, text: str) -> None:
        self._turns.append(Turn(role=Role.MODEL, parts=(text,)))


class CorrectionConversation(Conversation):
    """Conversation rebuilt from scratch for each correction round.

    Holds the problem, the supplementary prompts, the previous candidate as a
    model turn and the correction instruction plus bug report as the last user
    turn. Earlier drafting or correction history is never carried over.
    """

    @classmethod
    def build(
        cls,
        problem: str,
        other_prompts: Iterable[str],
        previous_candidate: str,
        instruction: str,
        bug_report: str,
    ) -> "CorrectionConversation":
        turns = _seed_turns(problem, other_prompts)
        turns.append(Turn(role=Role.MODEL, parts=(previous_candidate,)))
        turns.append(Turn(role=Role.USER, parts=(instruction, bug_report or "")))
        return cls(turns)


# ============================================================================
# Stage and run results
# ============================================================================


class VerificationResult(BaseModel):
    """Critique of a candidate plus the verdict derived from it."""

    critique: str
    verdict: bool
    verdict_text: str = ""
    bug_report: str = ""


@dataclass
class ConvergenceCounters:
    """Consecutive accept/reject counters; recording one resets the other."""

    successes: int = 0
    failures: int = 0

    def record(self, accepted: bool) -> None:
        if accepted:
            self.successes += 1
            self.failures = 0
        else:
            self.successes = 0
            self.failures += 1

    @property
    def converged(self) -> bool:
        return self.successes >= config.SUCCESS_THRESHOLD

    @property
    def exhausted(self) -> bool:
        return self.failures >= config.FAILURE_THRESHOLD


class RunOutcome(BaseModel):
    """How one outer attempt ended."""

    run_index: int
    status: RunStatus
    solution: Optional[str] = None
    error: Optional[str] = None
    iterations: int = 0
    successes: int = 0
    failures: int = 0


class ProofResult(BaseModel):
    """What the caller receives from the engine."""

    status: ProofStatus
    message: str
    solution: Optional[str] = None
    error: Optional[str] = None
    artifact_path: Optional[str] = None
    runs_attempted: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == ProofStatus.SOLVED
