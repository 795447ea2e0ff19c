"""Shared fixtures for the proof helper test suite."""

from __future__ import annotations

from typing import Optional

import pytest

from proof_helper import config
from proof_helper.agents import GeminiBackend
from proof_helper.thinking_cores import GRADER_CORE, PROVER_CORE

ENV_VARS = (
    "PROOF_HELPER_MODEL",
    "GPT5_REASONING_EFFORT",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "PROOF_HELPER_OPENAI_BASE_URL",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "ANTHROPIC_API_KEY",
    "PROOF_HELPER_RUNS_DIR",
)

ACCEPTING_CRITIQUE = (
    "**Final Verdict:** The solution is correct.\n\n"
    "**List of Findings:**\n* None.\n\n"
    "<<<BEGIN LOG>>>\nStep 1 is correct.\n<<<END LOG>>>"
)

REJECTING_CRITIQUE = (
    "**Final Verdict:** The solution contains a Critical Error.\n\n"
    "**List of Findings:**\n* Location: step 1\n\n"
    "<<<BEGIN LOG>>>\nStep 1 assumes the conclusion.\n<<<END LOG>>>"
)


def make_solution(n: int) -> str:
    return (
        "**1. Summary**\n\n"
        f"I have successfully solved the problem (version {n}).\n\n"
        "**2. Detailed Solution**\n\n"
        "<<<BEGIN DETAILED SOLUTION>>>\n"
        f"By the Peano axioms, 1+1 = S(0)+S(0) = S(S(0)) = 2. (v{n})\n"
        "<<<END DETAILED SOLUTION>>>"
    )


class ScriptedGenerator:
    """Fake generator that answers according to the kind of call it receives.

    Kinds: "prover" (draft / self-improve / correction), "critique",
    "complete" (completeness oracle) and "verdict" (correctness oracle).
    `accept` may be a bool or a list of bools consumed per verdict call
    (the last value repeats). `cancel_after` cancels the token after that
    many calls. `fail_calls` maps call numbers (1-based) to exceptions.
    """

    def __init__(
        self,
        *,
        complete: bool = True,
        accept: bool | list[bool] = True,
        cancel_after: Optional[int] = None,
        fail_calls: Optional[dict[int, Exception]] = None,
    ):
        self.complete = complete
        self.accept = list(accept) if isinstance(accept, list) else [accept]
        self.cancel_after = cancel_after
        self.fail_calls = dict(fail_calls or {})
        self.calls: list[tuple[str, str, tuple]] = []
        self.solutions: list[str] = []
        self.environ: dict[str, str] = {}
        self.usage: dict[str, int] = {}

    def resolve(self):
        return GeminiBackend(model="fake-model")

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.calls]

    @staticmethod
    def _classify(system_instruction: str, turns: tuple) -> str:
        if system_instruction == PROVER_CORE:
            return "prover"
        if system_instruction == GRADER_CORE:
            return "critique"
        text = turns[-1].text.lstrip()
        if text.startswith("Is the following text claiming"):
            return "complete"
        return "verdict"

    def _next_verdict(self) -> bool:
        if len(self.accept) > 1:
            return self.accept.pop(0)
        return self.accept[0]

    def generate(self, system_instruction, conversation, cancel) -> str:
        cancel.raise_if_cancelled()
        turns = conversation.turns
        kind = self._classify(system_instruction, turns)
        self.calls.append((kind, system_instruction, turns))
        number = len(self.calls)

        if self.cancel_after is not None and number >= self.cancel_after:
            cancel.cancel()
        if number in self.fail_calls:
            raise self.fail_calls[number]

        if kind == "prover":
            solution = make_solution(len(self.solutions) + 1)
            self.solutions.append(solution)
            return solution
        if kind == "critique":
            return ACCEPTING_CRITIQUE if self.accept[0] else REJECTING_CRITIQUE
        if kind == "complete":
            return "yes" if self.complete else "no"
        return "yes" if self._next_verdict() else "no"


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the proof helper consults."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "RUNS_DIR", None)
    return monkeypatch


@pytest.fixture
def project_root(tmp_path, clean_env):
    return tmp_path


@pytest.fixture
def scripted():
    return ScriptedGenerator
