"""Tests for the drafting, completeness, verification and correction stages."""

import pytest

from conftest import ACCEPTING_CRITIQUE, REJECTING_CRITIQUE
from proof_helper.errors import ProofCancelled
from proof_helper.models import Role
from proof_helper.operators import (
    build_correction_conversation,
    correct,
    draft,
    is_claimed_complete,
    is_yes,
    verify,
)
from proof_helper.thinking_cores import (
    CORRECTION_PROMPT,
    GRADER_CORE,
    PROVER_CORE,
    SELF_IMPROVEMENT_PROMPT,
)
from proof_helper.utils import CancellationToken

PROBLEM = "Prove 1+1=2."


class TestIsYes:
    @pytest.mark.parametrize("answer", ["yes", "Yes", "Y", "  yes\n", "y"])
    def test_accepts_bare_yes(self, answer):
        assert is_yes(answer)

    @pytest.mark.parametrize("answer", ["", "no", "maybe", "yes.", "Yes, but...", "yes yes", "yeah"])
    def test_rejects_everything_else(self, answer):
        assert not is_yes(answer)


class TestDraft:
    def test_two_calls_with_growing_conversation(self, scripted):
        gen = scripted()
        lines = []

        conversation, solution = draft(gen, PROBLEM, ["Use induction."], CancellationToken(), log=lines.append)

        assert gen.kinds() == ["prover", "prover"]
        _, system, first_turns = gen.calls[0]
        assert system == PROVER_CORE
        assert [t.text for t in first_turns] == [PROBLEM, "Use induction."]

        _, _, second_turns = gen.calls[1]
        assert [t.role for t in second_turns] == [Role.USER, Role.USER, Role.MODEL, Role.USER]
        assert second_turns[2].text == gen.solutions[0]
        assert second_turns[3].text == SELF_IMPROVEMENT_PROMPT

        assert solution == gen.solutions[1]
        assert conversation.turns[-1].role is Role.MODEL
        assert conversation.turns[-1].text == solution
        assert ">>>>>>> First solution:" in lines

    def test_cancelled_before_first_call(self, scripted):
        gen = scripted()
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ProofCancelled):
            draft(gen, PROBLEM, [], token)
        assert gen.calls == []


class TestCompleteness:
    def test_complete(self, scripted):
        gen = scripted(complete=True)
        assert is_claimed_complete(gen, "candidate", CancellationToken())
        kind, system, turns = gen.calls[0]
        assert kind == "complete"
        assert system == ""
        assert len(turns) == 1
        assert "candidate" in turns[0].text

    def test_incomplete(self, scripted):
        assert not is_claimed_complete(scripted(complete=False), "candidate", CancellationToken())


class TestVerify:
    def test_accepted_has_empty_bug_report(self, scripted):
        gen = scripted(accept=True)
        candidate = "Preamble xyzzy\n<<<BEGIN DETAILED SOLUTION>>>\nthe body\n<<<END DETAILED SOLUTION>>>"

        result = verify(gen, PROBLEM, candidate, CancellationToken())

        assert gen.kinds() == ["critique", "verdict"]
        _, system, turns = gen.calls[0]
        assert system == GRADER_CORE
        prompt = turns[0].text
        assert PROBLEM in prompt
        assert "the body" in prompt
        assert "xyzzy" not in prompt
        assert result.verdict is True
        assert result.critique == ACCEPTING_CRITIQUE
        assert result.bug_report == ""

    def test_rejected_carries_the_verification_log(self, scripted):
        gen = scripted(accept=False)

        result = verify(gen, PROBLEM, "just a proof", CancellationToken())

        assert result.verdict is False
        assert result.verdict_text == "no"
        assert result.critique == REJECTING_CRITIQUE
        assert result.bug_report == "Step 1 assumes the conclusion."

    def test_verdict_prompt_embeds_the_critique(self, scripted):
        gen = scripted(accept=False)
        verify(gen, PROBLEM, "just a proof", CancellationToken())
        _, system, turns = gen.calls[1]
        assert system == ""
        assert REJECTING_CRITIQUE in turns[0].text


class TestCorrect:
    def test_context_is_rebuilt_from_scratch(self, scripted):
        gen = scripted()

        solution = correct(gen, PROBLEM, ["Hint."], "old candidate", "Step 3 is wrong.", CancellationToken())

        assert solution == gen.solutions[0]
        _, system, turns = gen.calls[0]
        assert system == PROVER_CORE
        assert [t.role for t in turns] == [Role.USER, Role.USER, Role.MODEL, Role.USER]
        assert turns[2].text == "old candidate"
        assert turns[3].parts == (CORRECTION_PROMPT, "Step 3 is wrong.")

    def test_build_correction_conversation_keeps_no_history(self):
        first = build_correction_conversation(PROBLEM, [], "candidate 1", "bug 1")
        second = build_correction_conversation(PROBLEM, [], "candidate 2", "bug 2")
        assert len(first) == len(second) == 3
        assert "candidate 1" not in [t.text for t in second]
