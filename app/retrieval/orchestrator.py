"""Question pipeline: decompose once, retrieve per sub-question concurrently, cache the results.

Each call to ``process`` opens a new epoch. Results are applied only while
their epoch is still the active one; a newer submission silently supersedes
older in-flight work (remote calls are not cancelled, their results are
dropped on arrival).
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from app.retrieval.decomposition import QuestionDecomposer
from app.retrieval.faq_retrieval import FaqRetriever, unmatched_entries
from app.retrieval.telemetry import PipelineTelemetry, pipeline_telemetry
from app.shared.errors import DecompositionError, EmptyInputError
from app.shared.models import FAQEntry, RankedMatch

logger = logging.getLogger(__name__)

DECOMPOSITION_FAILED_MESSAGE = "Failed to break down the question."
FETCH_FAILED_MESSAGE = "Failed to fetch some relevant answers."


class PipelineState(str, Enum):
    IDLE = "idle"
    DECOMPOSING = "decomposing"
    RETRIEVING = "retrieving"
    READY = "ready"
    ERRORED = "errored"


@dataclass(frozen=True, slots=True)
class PipelineSnapshot:
    """Read-only view of the orchestrator at one point in time."""

    epoch: int
    state: PipelineState
    processing: bool
    question: str
    sub_questions: Tuple[str, ...]
    cache: Mapping[str, Tuple[RankedMatch, ...]]
    error: Optional[str] = None
    fetch_failed: bool = False

    def matches_for(self, sub_question: str) -> Tuple[RankedMatch, ...]:
        return self.cache.get(sub_question, ())


Listener = Callable[[PipelineSnapshot], None]


@dataclass(slots=True)
class _EpochState:
    question: str = ""
    sub_questions: List[str] = field(default_factory=list)
    cache: Dict[str, List[RankedMatch]] = field(default_factory=dict)
    error: Optional[str] = None
    fetch_failed: bool = False


class QuestionOrchestrator:
    """Coordinates the decomposition and retrieval clients for one user session."""

    def __init__(
        self,
        decomposer: QuestionDecomposer,
        retriever: FaqRetriever,
        knowledge_base: Sequence[FAQEntry],
        *,
        telemetry: PipelineTelemetry | None = None,
    ) -> None:
        self.decomposer = decomposer
        self.retriever = retriever
        self.knowledge_base = tuple(knowledge_base)
        self.telemetry = telemetry or pipeline_telemetry
        self._epoch = 0
        self._state = PipelineState.IDLE
        self._current = _EpochState()
        self._listeners: List[Listener] = []

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def processing(self) -> bool:
        return self._state in (PipelineState.DECOMPOSING, PipelineState.RETRIEVING)

    @property
    def last_question(self) -> str:
        return self._current.question

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def snapshot(self) -> PipelineSnapshot:
        current = self._current
        return PipelineSnapshot(
            epoch=self._epoch,
            state=self._state,
            processing=self.processing,
            question=current.question,
            sub_questions=tuple(current.sub_questions),
            cache=MappingProxyType({k: tuple(v) for k, v in current.cache.items()}),
            error=current.error,
            fetch_failed=current.fetch_failed,
        )

    def _transition(self, state: PipelineState) -> None:
        self._state = state
        snap = self.snapshot()
        for listener in self._listeners:
            listener(snap)

    def _is_stale(self, epoch: int) -> bool:
        return epoch != self._epoch

    async def process(self, question: str) -> PipelineSnapshot:
        """Run one epoch for the question and return the snapshot once it settles.

        When a newer submission supersedes this one while it is in flight, the
        returned snapshot reflects the newer epoch and this epoch's results are
        discarded.
        """

        cleaned = (question or "").strip()
        if not cleaned:
            raise EmptyInputError("question is required")

        self._epoch += 1
        epoch = self._epoch
        started = time.perf_counter()
        self._current = _EpochState(question=cleaned)
        self._transition(PipelineState.DECOMPOSING)

        try:
            sub_questions = await self.decomposer.decompose(cleaned)
        except DecompositionError as exc:
            if self._is_stale(epoch):
                logger.debug("Dropping decomposition failure of superseded epoch %s", epoch)
                return self.snapshot()
            logger.error("Decomposition failed for epoch %s: %s", epoch, exc)
            self._current.error = DECOMPOSITION_FAILED_MESSAGE
            self._transition(PipelineState.ERRORED)
            await self._record(epoch, started, failed=0)
            return self.snapshot()

        if self._is_stale(epoch):
            logger.debug("Dropping decomposition result of superseded epoch %s", epoch)
            return self.snapshot()

        self._current.sub_questions = list(sub_questions)
        if not sub_questions:
            logger.info("No sub-questions produced for epoch %s", epoch)
            self._transition(PipelineState.READY)
            await self._record(epoch, started, failed=0)
            return self.snapshot()

        self._transition(PipelineState.RETRIEVING)
        tasks = [asyncio.create_task(self.retriever.retrieve(q, self.knowledge_base)) for q in sub_questions]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        if self._is_stale(epoch):
            logger.debug("Dropping %s retrieval results of superseded epoch %s", len(results), epoch)
            return self.snapshot()

        failed = 0
        try:
            cache: Dict[str, List[RankedMatch]] = {}
            for sub_question, result in zip(sub_questions, results):
                if isinstance(result, BaseException):
                    failed += 1
                    logger.error(
                        "Retrieval failed for sub-question %r", sub_question, exc_info=result
                    )
                    cache[sub_question] = []
                    continue
                for entry in unmatched_entries(result, self.knowledge_base):
                    logger.warning(
                        "Model returned an entry not found verbatim in the knowledge base: %r",
                        entry.question,
                    )
                cache[sub_question] = list(result)
            self._current.cache = cache
        except Exception:
            logger.exception("Failed to aggregate retrieval results for epoch %s", epoch)
            self._current.fetch_failed = True
            self._current.error = FETCH_FAILED_MESSAGE

        self._transition(PipelineState.READY)
        await self._record(epoch, started, failed=failed)
        return self.snapshot()

    async def rerun(self) -> PipelineSnapshot:
        """Process the most recently submitted question again."""

        return await self.process(self._current.question)

    async def _record(self, epoch: int, started: float, *, failed: int) -> None:
        await self.telemetry.record_epoch(
            epoch=epoch,
            state=self._state.value,
            sub_questions=len(self._current.sub_questions),
            failed_retrievals=failed,
            duration_seconds=time.perf_counter() - started,
        )
