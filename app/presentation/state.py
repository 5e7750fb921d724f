"""UI selection state for the assistant page and the references page."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Set

from app.retrieval import text_matcher
from app.shared.models import FAQEntry, RankedMatch


def highlight_counts(
    sub_questions: Sequence[str],
    cache: Mapping[str, Sequence[RankedMatch]],
    term: str,
) -> Dict[str, int]:
    """Whole-word occurrences of term across each sub-question's cached matches."""

    if not term:
        return {}
    counts: Dict[str, int] = {}
    for sub_question in sub_questions:
        total = 0
        for match in cache.get(sub_question, ()):
            total += text_matcher.count_matches(match.entry.question, term, whole_word=True)
            total += text_matcher.count_matches(match.entry.answer, term, whole_word=True)
        counts[sub_question] = total
    return counts


def _check_panel(index: int, count: int) -> None:
    if not 0 <= index < count:
        raise IndexError(f"panel index {index} out of range")


@dataclass(slots=True)
class AssistantView:
    """Selected sub-question, open answer panels and the highlighted word."""

    selected_index: int = 0
    open_panels: Set[int] = field(default_factory=set)
    highlighted_term: str = ""

    def reset(self) -> None:
        self.selected_index = 0
        self.open_panels = set()
        self.highlighted_term = ""

    def select(self, index: int, count: int) -> None:
        if not 0 <= index < count:
            raise IndexError(f"sub-question index {index} out of range")
        self.selected_index = index
        self.highlighted_term = ""
        self.open_panels = {0}

    def toggle_panel(self, index: int, count: int) -> None:
        _check_panel(index, count)
        if index in self.open_panels:
            self.open_panels.discard(index)
        else:
            self.open_panels.add(index)

    def only_panel(self, index: int, count: int) -> None:
        _check_panel(index, count)
        self.open_panels = {index}

    def open_all(self, count: int) -> None:
        self.open_panels = set(range(count))

    def close_all(self) -> None:
        self.open_panels = set()

    def toggle_highlight(self, word: str) -> str:
        """Set the highlight to word, or clear it when word is already highlighted."""

        cleaned = text_matcher.clean_selected_word(word)
        if self.highlighted_term.lower() == cleaned.lower():
            self.highlighted_term = ""
        else:
            self.highlighted_term = cleaned
        return self.highlighted_term


@dataclass(frozen=True, slots=True)
class ReferenceItem:
    index: int
    entry: FAQEntry
    is_match: bool
    open: bool


@dataclass(slots=True)
class ReferencesView:
    """Full-text search over the knowledge base with per-entry panels."""

    entries: Sequence[FAQEntry]
    search_term: str = ""
    open_panels: Set[int] = field(default_factory=set)

    @property
    def pattern(self) -> str:
        """The search term reduced to its OR terms; empty when blank."""
        return "|".join(text_matcher.split_terms(self.search_term))

    def match_flags(self) -> List[bool]:
        pattern = self.pattern
        return [
            text_matcher.matches(e.question, pattern) or text_matcher.matches(e.answer, pattern)
            for e in self.entries
        ]

    def search(self, term: str) -> List[ReferenceItem]:
        """Apply a new search term; matching entries open, everything else closes."""

        self.search_term = term or ""
        if self.search_term.strip():
            self.open_panels = {i for i, hit in enumerate(self.match_flags()) if hit}
        else:
            self.open_panels = set()
        return self.items()

    def toggle_panel(self, index: int) -> None:
        _check_panel(index, len(self.entries))
        if index in self.open_panels:
            self.open_panels.discard(index)
        else:
            self.open_panels.add(index)

    def only_panel(self, index: int) -> None:
        _check_panel(index, len(self.entries))
        self.open_panels = {index}

    def items(self) -> List[ReferenceItem]:
        flags = self.match_flags()
        return [
            ReferenceItem(index=i, entry=entry, is_match=flags[i], open=i in self.open_panels)
            for i, entry in enumerate(self.entries)
        ]
