"""Tests for proof_helper.extraction: marker, header, keyword and whole-text strategies."""

import pytest

from proof_helper.extraction import (
    by_header,
    by_keyword,
    by_markers,
    extract_between_markers,
    extract_detailed_solution,
    extract_section,
    extract_verification_log,
    section_strategies,
)

BEGIN = "<<<BEGIN DETAILED SOLUTION>>>"
END = "<<<END DETAILED SOLUTION>>>"


class TestBetweenMarkers:
    def test_returns_trimmed_inner_text_despite_noise(self):
        text = f"noise before\n{BEGIN}\n\n  the proof \n\n{END}\ntrailing noise {BEGIN}"
        assert extract_between_markers(text, BEGIN, END) == "the proof"

    def test_missing_end_marker(self):
        assert extract_between_markers(f"{BEGIN} proof without end", BEGIN, END) == ""

    def test_missing_begin_marker(self):
        assert extract_between_markers(f"proof {END}", BEGIN, END) == ""

    def test_end_before_begin_is_ignored(self):
        text = f"{END} junk {BEGIN} real {END}"
        assert extract_between_markers(text, BEGIN, END) == "real"

    def test_uses_first_begin_and_next_end(self):
        text = f"{BEGIN} one {END} {BEGIN} two {END}"
        assert extract_between_markers(text, BEGIN, END) == "one"

    def test_empty_content_is_not_a_match_for_the_strategy(self):
        assert by_markers(f"{BEGIN}   {END}", BEGIN, END) is None


class TestHeaderStrategy:
    @pytest.mark.parametrize(
        "header",
        [
            "Detailed Solution",
            "## Detailed Solution",
            "**2. Detailed Solution**",
            "> detailed solution:",
            "- (2) DETAILED SOLUTION",
        ],
    )
    def test_tolerates_heading_punctuation_and_case(self, header):
        text = f"Summary\nSome sketch.\n{header}\n\nStep 1.\nStep 2."
        assert by_header(text, "Detailed Solution") == "Step 1.\nStep 2."

    def test_lettered_list_item(self):
        text = "*   **b. Detailed Verification Log**\nStep 1 is wrong."
        assert by_header(text, "Detailed Verification Log") == "Step 1 is wrong."

    def test_name_inside_prose_is_not_a_header(self):
        text = "The detailed solution is below\nStep 1."
        assert by_header(text, "Detailed Solution") is None

    def test_duplicated_headers_take_the_first(self):
        text = "## Detailed Solution\nfirst\n## Detailed Solution\nsecond"
        assert by_header(text, "Detailed Solution") == "first\n## Detailed Solution\nsecond"


class TestKeywordStrategy:
    def test_returns_text_after_the_line_with_the_keyword(self):
        text = "Here is my DETAILED solution, as promised\nStep 1.\nStep 2."
        assert by_keyword(text, "Detailed Solution") == "Step 1.\nStep 2."

    def test_absent_keyword(self):
        assert by_keyword("nothing to see", "Detailed Solution") is None


class TestExtractSection:
    def test_strategy_order_for_marked_section(self):
        assert len(section_strategies("Detailed Solution")) == 3
        assert len(section_strategies("Unmarked Section")) == 2

    def test_markers_win_over_header(self):
        text = f"## Detailed Solution\nheader body\n{BEGIN}\nmarked body\n{END}"
        assert extract_detailed_solution(text) == "marked body"

    def test_header_used_when_markers_missing(self):
        text = "**1. Summary**\nsketch\n**2. Detailed Solution**\n\nthe body"
        assert extract_detailed_solution(text) == "the body"

    def test_keyword_used_when_no_header(self):
        text = "Sketch first. Now the detailed solution follows\nthe body"
        assert extract_detailed_solution(text) == "the body"

    def test_whole_text_fallback(self):
        assert extract_section("   just a proof \n", "Detailed Solution") == "just a proof"

    def test_unbalanced_markers_fall_through_to_header(self):
        text = f"{BEGIN}\nunterminated\n### Detailed Solution\nbody"
        assert extract_detailed_solution(text) == "body"

    def test_verification_log_markers(self):
        text = "Summary...\n<<<BEGIN LOG>>>\nStep 1 is wrong.\n<<<END LOG>>>\n"
        assert extract_verification_log(text) == "Step 1 is wrong."

    def test_verification_log_header(self):
        text = "**Final Verdict:** invalid\n\n**b. Detailed Verification Log**\n\nStep 1 is wrong."
        assert extract_verification_log(text) == "Step 1 is wrong."

    def test_never_raises_on_empty_input(self):
        assert extract_detailed_solution("") == ""
        assert extract_verification_log("") == ""
