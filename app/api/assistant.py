"""Endpoints for the assistant page: submit questions and drive the answer panels."""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from app.core.providers import MissingCredentialError, get_session_registry
from app.presentation.sessions import AssistantSession, SessionRegistry
from app.retrieval import text_matcher
from app.shared.errors import EmptyInputError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assistant", tags=["assistant"])


class QuestionRequest(BaseModel):
    question: str = Field(..., description="Free-text, possibly compound question")


class TranscriptRequest(BaseModel):
    transcript: str = Field(..., description="Final transcript of one speech capture")


class SelectRequest(BaseModel):
    index: int = Field(..., ge=0)


class HighlightRequest(BaseModel):
    word: str = Field("", description="Double-clicked word; repeating it clears the highlight")


class SessionCreatedResponse(BaseModel):
    session_id: str


class SubQuestionDTO(BaseModel):
    index: int
    text: str
    selected: bool
    highlight_count: int = 0


class MatchDTO(BaseModel):
    question: str
    answer: str
    question_marked: str
    answer_marked: str
    confidence_score: float
    confidence_percent: int
    confidence_band: str
    open: bool


class SessionResponse(BaseModel):
    session_id: str
    epoch: int
    state: str
    processing: bool
    error: Optional[str] = None
    question: str
    sub_questions: List[SubQuestionDTO]
    selected_index: int
    highlighted_term: str
    open_panels: List[int]
    matches: List[MatchDTO]


def get_registry() -> SessionRegistry:
    return get_session_registry()


async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> AssistantSession:
    try:
        return registry.get(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"session {session_id} not found") from exc


def _render(session: AssistantSession) -> SessionResponse:
    snap = session.snapshot()
    view = session.view
    term = view.highlighted_term
    counts = session.highlight_counts()

    matches: List[MatchDTO] = []
    for idx, match in enumerate(session.current_matches()):
        matches.append(
            MatchDTO(
                question=match.entry.question,
                answer=match.entry.answer,
                question_marked=text_matcher.mark(match.entry.question, term, whole_word=True),
                answer_marked=text_matcher.mark(match.entry.answer, term, whole_word=True),
                confidence_score=match.confidence_score,
                confidence_percent=match.confidence_percent,
                confidence_band=match.confidence_band,
                open=idx in view.open_panels,
            )
        )

    return SessionResponse(
        session_id=session.session_id,
        epoch=snap.epoch,
        state=snap.state.value,
        processing=snap.processing,
        error=snap.error,
        question=snap.question,
        sub_questions=[
            SubQuestionDTO(
                index=i,
                text=q,
                selected=i == view.selected_index,
                highlight_count=counts.get(q, 0),
            )
            for i, q in enumerate(snap.sub_questions)
        ],
        selected_index=view.selected_index,
        highlighted_term=term,
        open_panels=sorted(view.open_panels),
        matches=matches,
    )


async def _submit(session: AssistantSession, text: str, field_name: str) -> SessionResponse:
    try:
        await session.submit(text)
    except EmptyInputError as exc:
        raise HTTPException(status_code=400, detail=f"{field_name} is required") from exc
    return _render(session)


@router.post(
    "/sessions",
    response_model=SessionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(registry: SessionRegistry = Depends(get_registry)) -> SessionCreatedResponse:
    try:
        session = registry.create()
    except MissingCredentialError as exc:
        logger.error("Cannot create session: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return SessionCreatedResponse(session_id=session.session_id)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def read_session(session: AssistantSession = Depends(get_session)) -> SessionResponse:
    return _render(session)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> None:
    if not registry.discard(session_id):
        raise HTTPException(status_code=404, detail=f"session {session_id} not found")


@router.post("/sessions/{session_id}/questions", response_model=SessionResponse)
async def submit_question(
    request: QuestionRequest,
    session: AssistantSession = Depends(get_session),
) -> SessionResponse:
    return await _submit(session, request.question, "question")


@router.post("/sessions/{session_id}/transcript", response_model=SessionResponse)
async def submit_transcript(
    request: TranscriptRequest,
    session: AssistantSession = Depends(get_session),
) -> SessionResponse:
    return await _submit(session, request.transcript, "transcript")


@router.post("/sessions/{session_id}/rerun", response_model=SessionResponse)
async def rerun(session: AssistantSession = Depends(get_session)) -> SessionResponse:
    try:
        await session.rerun()
    except EmptyInputError as exc:
        raise HTTPException(status_code=400, detail="no question to rerun") from exc
    return _render(session)


@router.post("/sessions/{session_id}/select", response_model=SessionResponse)
async def select_sub_question(
    request: SelectRequest,
    session: AssistantSession = Depends(get_session),
) -> SessionResponse:
    try:
        session.select(request.index)
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _render(session)


@router.post("/sessions/{session_id}/panels/open-all", response_model=SessionResponse)
async def open_all_panels(session: AssistantSession = Depends(get_session)) -> SessionResponse:
    session.open_all()
    return _render(session)


@router.post("/sessions/{session_id}/panels/close-all", response_model=SessionResponse)
async def close_all_panels(session: AssistantSession = Depends(get_session)) -> SessionResponse:
    session.close_all()
    return _render(session)


@router.post("/sessions/{session_id}/panels/{index}/toggle", response_model=SessionResponse)
async def toggle_panel(index: int, session: AssistantSession = Depends(get_session)) -> SessionResponse:
    try:
        session.toggle_panel(index)
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _render(session)


@router.post("/sessions/{session_id}/panels/{index}/only", response_model=SessionResponse)
async def only_panel(index: int, session: AssistantSession = Depends(get_session)) -> SessionResponse:
    try:
        session.only_panel(index)
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _render(session)


@router.post("/sessions/{session_id}/highlight", response_model=SessionResponse)
async def toggle_highlight(
    request: HighlightRequest,
    session: AssistantSession = Depends(get_session),
) -> SessionResponse:
    session.toggle_highlight(request.word)
    return _render(session)
