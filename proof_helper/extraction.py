"""Section extraction from free-form model output.

Model output format is not guaranteed, so every lookup degrades through an
ordered list of strategies and never raises:

1. explicit begin/end markers
2. a header line naming the section (list/heading punctuation tolerated)
3. case-insensitive keyword search
4. the whole text
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from proof_helper.thinking_cores import (
    DETAILED_SOLUTION,
    DETAILED_VERIFICATION_LOG,
    LOG_BEGIN,
    LOG_END,
    SOLUTION_BEGIN,
    SOLUTION_END,
)

Strategy = Callable[[str], Optional[str]]

SECTION_MARKERS: dict[str, tuple[str, str]] = {
    DETAILED_SOLUTION.lower(): (SOLUTION_BEGIN, SOLUTION_END),
    DETAILED_VERIFICATION_LOG.lower(): (LOG_BEGIN, LOG_END),
}


def _non_empty(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


def extract_between_markers(text: str, begin: str, end: str) -> str:
    """Return the trimmed text strictly between the first `begin` and the next `end`, or ""."""
    start = text.find(begin)
    if start == -1:
        return ""
    stop = text.find(end, start + len(begin))
    if stop == -1:
        return ""
    return text[start + len(begin) : stop].strip()


def by_markers(text: str, begin: str, end: str) -> Optional[str]:
    return _non_empty(extract_between_markers(text, begin, end))


def by_header(text: str, section_name: str) -> Optional[str]:
    """Everything after the first line that is just the section name (e.g. '**2. Detailed Solution**')."""
    pattern = re.compile(
        r"^[#>*\d.()\[\]\- \t]*(?:[a-z][.)][ \t]*)?"
        + re.escape(section_name)
        + r"[ \t*:#]*\n+([\s\S]*)$",
        re.IGNORECASE | re.MULTILINE,
    )
    m = pattern.search(text)
    return _non_empty(m.group(1)) if m else None


def by_keyword(text: str, section_name: str) -> Optional[str]:
    """Everything after the line containing the first case-insensitive mention of the name."""
    idx = text.lower().find(section_name.lower())
    if idx == -1:
        return None
    newline = text.find("\n", idx)
    if newline == -1:
        return _non_empty(text[idx + len(section_name) :])
    return _non_empty(text[newline + 1 :])


def section_strategies(section_name: str) -> list[Strategy]:
    """Ordered strategies for one section; markers only when the section has them."""
    strategies: list[Strategy] = []
    markers = SECTION_MARKERS.get(section_name.lower())
    if markers:
        begin, end = markers
        strategies.append(lambda t: by_markers(t, begin, end))
    strategies.append(lambda t: by_header(t, section_name))
    strategies.append(lambda t: by_keyword(t, section_name))
    return strategies


def extract_section(text: str, section_name: str) -> str:
    """Extract a named section, falling back to the whole (trimmed) text."""
    for strategy in section_strategies(section_name):
        found = strategy(text)
        if found is not None:
            return found
    return text.strip()


def extract_detailed_solution(text: str) -> str:
    return extract_section(text, DETAILED_SOLUTION)


def extract_verification_log(text: str) -> str:
    return extract_section(text, DETAILED_VERIFICATION_LOG)
