"""Endpoints for browsing and searching the static knowledge base."""
from __future__ import annotations

from typing import List, Sequence

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.core.providers import get_knowledge_base
from app.presentation.state import ReferencesView
from app.retrieval import text_matcher
from app.shared.models import FAQEntry

router = APIRouter(tags=["references"])


class FAQItem(BaseModel):
    question: str
    answer: str


class ReferenceItemDTO(BaseModel):
    index: int
    question: str
    answer: str
    question_marked: str
    answer_marked: str
    is_match: bool
    open: bool
    match_count: int


class ReferencesResponse(BaseModel):
    search_term: str
    pattern: str
    matched: int
    items: List[ReferenceItemDTO]


def get_entries() -> Sequence[FAQEntry]:
    return get_knowledge_base()


@router.get("/faqs", response_model=List[FAQItem])
async def list_faqs(entries: Sequence[FAQEntry] = Depends(get_entries)) -> List[FAQItem]:
    return [FAQItem(question=e.question, answer=e.answer) for e in entries]


@router.get("/references", response_model=ReferencesResponse)
async def search_references(
    q: str = Query("", description="Words or phrases; separate alternatives with '|'"),
    entries: Sequence[FAQEntry] = Depends(get_entries),
) -> ReferencesResponse:
    view = ReferencesView(entries=entries)
    items = view.search(q)
    pattern = view.pattern
    return ReferencesResponse(
        search_term=q,
        pattern=pattern,
        matched=sum(1 for it in items if it.is_match),
        items=[
            ReferenceItemDTO(
                index=it.index,
                question=it.entry.question,
                answer=it.entry.answer,
                question_marked=text_matcher.mark(it.entry.question, pattern),
                answer_marked=text_matcher.mark(it.entry.answer, pattern),
                is_match=it.is_match,
                open=it.open,
                match_count=text_matcher.count_matches(it.entry.question, pattern)
                + text_matcher.count_matches(it.entry.answer, pattern),
            )
            for it in items
        ],
    )
