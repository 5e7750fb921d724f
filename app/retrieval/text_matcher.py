"""Literal OR-term matching used for highlighting, filtering and counting.

A pattern is one or more literal terms separated by ``|``. Terms are escaped
before compilation so user input never acts as regex syntax. Two modes share
the same compilation:

* substring mode (search box): a term matches anywhere, case-insensitively;
* whole-word mode (double-click highlight): a term may not touch a word character
  on either side.

Every function accepts any string input and never raises.
"""
from __future__ import annotations

import html
import re
from typing import List, NamedTuple, Optional

TERM_SEPARATOR = "|"
_TRAILING_PUNCTUATION_RE = re.compile(r"[.,?]$")


class Span(NamedTuple):
    start: int
    end: int


class Segment(NamedTuple):
    text: str
    marked: bool


def split_terms(pattern: str) -> List[str]:
    """Split a pattern into its non-empty, stripped terms (duplicates removed, order kept)."""

    if not pattern:
        return []
    terms = [term.strip() for term in pattern.split(TERM_SEPARATOR)]
    return list(dict.fromkeys(term for term in terms if term))


def compile_pattern(pattern: str, *, whole_word: bool = False) -> Optional[re.Pattern[str]]:
    """Compile a pattern, or return None when it holds no terms."""

    terms = split_terms(pattern)
    if not terms:
        return None
    # Longest first so "shipping" wins over "ship" at the same position.
    escaped = [re.escape(term) for term in sorted(terms, key=len, reverse=True)]
    body = "|".join(escaped)
    if whole_word:
        body = rf"(?<!\w)(?:{body})(?!\w)"
    return re.compile(body, re.IGNORECASE)


def highlight(text: str, pattern: str, *, whole_word: bool = False) -> List[Span]:
    """Sorted, non-overlapping spans of every match of the pattern in text."""

    compiled = compile_pattern(pattern, whole_word=whole_word)
    if compiled is None or not text:
        return []
    return [Span(m.start(), m.end()) for m in compiled.finditer(text) if m.end() > m.start()]


def count_matches(text: str, pattern: str, *, whole_word: bool = False) -> int:
    return len(highlight(text, pattern, whole_word=whole_word))


def matches(text: str, pattern: str, *, whole_word: bool = False) -> bool:
    compiled = compile_pattern(pattern, whole_word=whole_word)
    if compiled is None or not text:
        return False
    return compiled.search(text) is not None


def segments(text: str, pattern: str, *, whole_word: bool = False) -> List[Segment]:
    """Split text into marked and unmarked pieces; joining them gives back text."""

    pieces: List[Segment] = []
    cursor = 0
    for span in highlight(text, pattern, whole_word=whole_word):
        if span.start > cursor:
            pieces.append(Segment(text[cursor : span.start], False))
        pieces.append(Segment(text[span.start : span.end], True))
        cursor = span.end
    if cursor < len(text):
        pieces.append(Segment(text[cursor:], False))
    return pieces


def mark(text: str, pattern: str, *, whole_word: bool = False) -> str:
    """HTML-escaped text with <mark> around every match."""

    out: List[str] = []
    for piece in segments(text, pattern, whole_word=whole_word):
        escaped = html.escape(piece.text)
        out.append(f"<mark>{escaped}</mark>" if piece.marked else escaped)
    return "".join(out)


def clean_selected_word(word: str) -> str:
    """Normalise a double-clicked selection: trim and drop one trailing . , or ?"""

    return _TRAILING_PUNCTUATION_RE.sub("", (word or "").strip())


__all__ = [
    "Span",
    "Segment",
    "split_terms",
    "compile_pattern",
    "highlight",
    "count_matches",
    "matches",
    "segments",
    "mark",
    "clean_selected_word",
]
