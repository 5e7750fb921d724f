"""Shared domain models used by the retrieval pipeline and the API."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

# Lower bounds of the confidence bands, checked top to bottom.
CONFIDENCE_BANDS = (
    (0.6, "high"),
    (0.5, "medium"),
    (0.3, "low"),
)
LOWEST_CONFIDENCE_BAND = "very-low"


def confidence_band(score: float) -> str:
    """Map a confidence score onto the colour band used by the answer panels."""

    for lower, band in CONFIDENCE_BANDS:
        if score >= lower:
            return band
    return LOWEST_CONFIDENCE_BAND


@dataclass(frozen=True, slots=True)
class FAQEntry:
    """One question/answer pair of the knowledge base."""

    question: str
    answer: str

    def as_payload(self) -> Dict[str, str]:
        return {"question": self.question, "answer": self.answer}


@dataclass(frozen=True, slots=True)
class RankedMatch:
    """A knowledge base entry selected for a sub-question, with model confidence."""

    entry: FAQEntry
    confidence_score: float

    @property
    def confidence_percent(self) -> int:
        return int(round(self.confidence_score * 100))

    @property
    def confidence_band(self) -> str:
        return confidence_band(self.confidence_score)


class FAQEntryPayload(BaseModel):
    """FAQ entry as stored in a knowledge base JSON file."""

    model_config = ConfigDict(strict=True, frozen=True)

    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)

    def to_entry(self) -> FAQEntry:
        return FAQEntry(question=self.question, answer=self.answer)


class DecompositionPayload(BaseModel):
    """Structured response of the decomposition call."""

    model_config = ConfigDict(strict=True, populate_by_name=True)

    sub_questions: List[str] = Field(..., alias="subQuestions")


class RelevantFAQPayload(BaseModel):
    """One item of the retrieval call response."""

    model_config = ConfigDict(strict=True, populate_by_name=True, allow_inf_nan=False)

    question: str
    answer: str
    confidence_score: float = Field(..., alias="confidenceScore")

    def to_match(self) -> RankedMatch:
        return RankedMatch(
            entry=FAQEntry(question=self.question, answer=self.answer),
            confidence_score=self.confidence_score,
        )


class RetrievalPayload(BaseModel):
    """Structured response of the retrieval call."""

    model_config = ConfigDict(strict=True, populate_by_name=True)

    relevant_faqs: List[RelevantFAQPayload] = Field(..., alias="relevantFAQs")


__all__ = [
    "FAQEntry",
    "RankedMatch",
    "FAQEntryPayload",
    "DecompositionPayload",
    "RelevantFAQPayload",
    "RetrievalPayload",
    "confidence_band",
    "CONFIDENCE_BANDS",
]
