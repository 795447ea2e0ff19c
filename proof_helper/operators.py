"""Proof operators: the stages of the solve-verify-refine loop.

Each operator issues one or two generation calls through a `Generator` and
reports progress through a transcript callback:
- draft: initial solution plus one self-improvement pass
- is_claimed_complete: yes/no oracle on the candidate's own verdict
- verify: adversarial grading, then a yes/no oracle on the critique
- correct: rebuild the context from scratch and revise against the bug report
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, Protocol

from proof_helper.extraction import extract_detailed_solution, extract_verification_log
from proof_helper.models import Conversation, CorrectionConversation, DraftConversation, VerificationResult
from proof_helper.thinking_cores import (
    CORRECTION_PROMPT,
    GRADER_CORE,
    PROVER_CORE,
    SELF_IMPROVEMENT_PROMPT,
    format_completeness_prompt,
    format_correctness_prompt,
    format_verification_prompt,
)
from proof_helper.utils import CancellationToken

LogFn = Callable[[str], None]

_YES = re.compile(r"^(yes|y)$")


class Generator(Protocol):
    def generate(
        self,
        system_instruction: str,
        conversation: Conversation,
        cancel: CancellationToken,
    ) -> str:
        ...


def _discard(_line: str) -> None:
    return None


def is_yes(response: str) -> bool:
    """True only for a bare yes/y (case-insensitive, surrounding whitespace ignored)."""
    return bool(_YES.match((response or "").strip().lower()))


def draft(
    generator: Generator,
    problem: str,
    other_prompts: Iterable[str],
    cancel: CancellationToken,
    *,
    log: LogFn = _discard,
) -> tuple[DraftConversation, str]:
    """Initial draft plus one self-improvement pass; returns the conversation and the improved draft."""
    conversation = DraftConversation.seed(problem, other_prompts)

    log(">>>>>> Initial prompt.")
    first = generator.generate(PROVER_CORE, conversation, cancel)
    log(">>>>>>> First solution:")
    log(first)

    log(">>>>>>> Self improvement start:")
    conversation.add_model(first)
    conversation.add_user(SELF_IMPROVEMENT_PROMPT)

    solution = generator.generate(PROVER_CORE, conversation, cancel)
    log(">>>>>>> Corrected solution:")
    log(solution)
    conversation.add_model(solution)

    return conversation, solution


def is_claimed_complete(
    generator: Generator,
    candidate: str,
    cancel: CancellationToken,
    *,
    log: LogFn = _discard,
) -> bool:
    """Ask whether the candidate claims to be complete; anything but yes counts as no."""
    log(">>>>>>> Check if solution is complete:")
    answer = generator.generate("", Conversation.single(format_completeness_prompt(candidate)), cancel)
    log(answer)
    return is_yes(answer)


def verify(
    generator: Generator,
    problem: str,
    candidate: str,
    cancel: CancellationToken,
    *,
    log: LogFn = _discard,
) -> VerificationResult:
    """Grade the detailed solution, then derive the verdict from the critique."""
    detailed = extract_detailed_solution(candidate)

    log(">>>>>>> Start verification.")
    critique = generator.generate(
        GRADER_CORE,
        Conversation.single(format_verification_prompt(problem, detailed)),
        cancel,
    )
    log(">>>>>>> Verification results:")
    log(critique)

    verdict_text = generator.generate("", Conversation.single(format_correctness_prompt(critique)), cancel)
    log(">>>>>>> Is verification good?")
    log(verdict_text)

    verdict = is_yes(verdict_text)
    bug_report = "" if verdict else (extract_verification_log(critique) or critique.strip())

    log(">>>>>>> Bug report:")
    log(bug_report or "(empty)")

    return VerificationResult(
        critique=critique,
        verdict=verdict,
        verdict_text=verdict_text,
        bug_report=bug_report,
    )


def build_correction_conversation(
    problem: str,
    other_prompts: Iterable[str],
    previous_candidate: str,
    bug_report: str,
) -> CorrectionConversation:
    return CorrectionConversation.build(
        problem,
        other_prompts,
        previous_candidate,
        CORRECTION_PROMPT,
        bug_report,
    )


def correct(
    generator: Generator,
    problem: str,
    other_prompts: Iterable[str],
    previous_candidate: str,
    bug_report: str,
    cancel: CancellationToken,
    *,
    log: LogFn = _discard,
) -> str:
    """Revise the previous candidate against the bug report in a fresh context."""
    conversation = build_correction_conversation(problem, other_prompts, previous_candidate, bug_report)
    log(">>>>>>> New prompt:")
    solution = generator.generate(PROVER_CORE, conversation, cancel)
    log(">>>>>>> Corrected solution:")
    log(solution)
    return solution
