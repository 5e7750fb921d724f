"""Per-user assistant sessions held in memory."""
from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from typing import Callable, Dict, Optional, Tuple

from app.presentation.speech import SpeechCapture
from app.presentation.state import AssistantView, highlight_counts
from app.retrieval.orchestrator import PipelineSnapshot, PipelineState, QuestionOrchestrator
from app.shared.models import RankedMatch

logger = logging.getLogger(__name__)


class AssistantSession:
    """One orchestrator plus the selection state rendered from it."""

    def __init__(
        self,
        session_id: str,
        orchestrator: QuestionOrchestrator,
        *,
        speech: Optional[SpeechCapture] = None,
    ) -> None:
        self.session_id = session_id
        self.orchestrator = orchestrator
        self.speech = speech or SpeechCapture(None)
        self.view = AssistantView()
        orchestrator.add_listener(self._on_pipeline_change)

    def _on_pipeline_change(self, snap: PipelineSnapshot) -> None:
        if snap.state is PipelineState.DECOMPOSING:
            self.view.reset()
        elif snap.state is PipelineState.READY and snap.sub_questions:
            self.view.open_panels = {0}

    def snapshot(self) -> PipelineSnapshot:
        return self.orchestrator.snapshot()

    async def submit(self, question: str) -> PipelineSnapshot:
        return await self.orchestrator.process(question)

    async def rerun(self) -> PipelineSnapshot:
        return await self.orchestrator.rerun()

    async def listen_and_submit(self) -> Optional[PipelineSnapshot]:
        """Capture one spoken question and process it; None when a capture is already running."""

        transcript = await self.speech.listen()
        if not transcript:
            return None
        return await self.submit(transcript)

    def current_sub_question(self) -> Optional[str]:
        snap = self.snapshot()
        if not snap.sub_questions:
            return None
        return snap.sub_questions[self.view.selected_index]

    def current_matches(self) -> Tuple[RankedMatch, ...]:
        sub_question = self.current_sub_question()
        if sub_question is None:
            return ()
        return self.snapshot().matches_for(sub_question)

    def select(self, index: int) -> None:
        self.view.select(index, len(self.snapshot().sub_questions))

    def toggle_panel(self, index: int) -> None:
        self.view.toggle_panel(index, len(self.current_matches()))

    def only_panel(self, index: int) -> None:
        self.view.only_panel(index, len(self.current_matches()))

    def open_all(self) -> None:
        self.view.open_all(len(self.current_matches()))

    def close_all(self) -> None:
        self.view.close_all()

    def toggle_highlight(self, word: str) -> str:
        return self.view.toggle_highlight(word)

    def highlight_counts(self) -> Dict[str, int]:
        snap = self.snapshot()
        return highlight_counts(snap.sub_questions, snap.cache, self.view.highlighted_term)


OrchestratorFactory = Callable[[], QuestionOrchestrator]


DEFAULT_MAX_SESSIONS = 1000


class SessionRegistry:
    """In-memory mapping of session id to AssistantSession.

    At most ``max_sessions`` sessions are kept; creating one more evicts the
    least recently used session.
    """

    def __init__(
        self,
        orchestrator_factory: OrchestratorFactory,
        *,
        speech_factory: Optional[Callable[[], SpeechCapture]] = None,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.orchestrator_factory = orchestrator_factory
        self.speech_factory = speech_factory
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, AssistantSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(self) -> AssistantSession:
        session_id = uuid.uuid4().hex
        speech = self.speech_factory() if self.speech_factory else None
        session = AssistantSession(session_id, self.orchestrator_factory(), speech=speech)
        self._sessions[session_id] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted least recently used session %s", evicted)
        logger.info("Created assistant session %s", session_id)
        return session

    def get(self, session_id: str) -> AssistantSession:
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise KeyError(f"unknown session {session_id}") from None
        self._sessions.move_to_end(session_id)
        return session

    def discard(self, session_id: str) -> bool:
        """Forget a session; False when it was not registered."""

        removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info("Discarded assistant session %s", session_id)
        return removed
