"""Tests for the decomposition -> fan-out retrieval pipeline."""
from __future__ import annotations

import asyncio
import random

import pytest

from app.retrieval import orchestrator as orchestrator_module
from app.retrieval.orchestrator import (
    DECOMPOSITION_FAILED_MESSAGE,
    FETCH_FAILED_MESSAGE,
    PipelineState,
    QuestionOrchestrator,
)
from app.shared.errors import DecompositionError, EmptyInputError, RetrievalError
from app.shared.faq_data import FAQ_ENTRIES
from app.shared.models import RankedMatch

RETURN_Q = "What is the return policy?"
TRACK_Q = "How do I track an order?"
COMPOUND = "What's your return policy and how do I track an order?"


class FakeTelemetry:
    def __init__(self) -> None:
        self.events = []

    async def record_epoch(self, **kwargs):
        self.events.append(kwargs)


class FakeDecomposer:
    def __init__(self, responses, gates=None):
        self.responses = responses
        self.gates = gates or {}
        self.calls = []

    async def decompose(self, question):
        self.calls.append(question)
        gate = self.gates.get(question)
        if gate is not None:
            await gate.wait()
        response = self.responses[question]
        if isinstance(response, Exception):
            raise response
        return list(response)


class FakeRetriever:
    def __init__(self, responses, gates=None, jitter=False):
        self.responses = responses
        self.gates = gates or {}
        self.jitter = jitter
        self.calls = []

    async def retrieve(self, sub_question, knowledge_base):
        self.calls.append(sub_question)
        gate = self.gates.get(sub_question)
        if gate is not None:
            await gate.wait()
        if self.jitter:
            await asyncio.sleep(random.uniform(0, 0.01))
        response = self.responses[sub_question]
        if isinstance(response, Exception):
            raise response
        return list(response)


def _match(index: int, score: float) -> RankedMatch:
    return RankedMatch(entry=FAQ_ENTRIES[index], confidence_score=score)


DEFAULT_RETRIEVALS = {
    RETURN_Q: [_match(3, 0.97), _match(14, 0.45)],
    TRACK_Q: [_match(2, 0.92), _match(4, 0.31), _match(8, 0.2)],
}


def _build(decomposer, retriever, telemetry=None):
    return QuestionOrchestrator(decomposer, retriever, FAQ_ENTRIES, telemetry=telemetry or FakeTelemetry())


@pytest.mark.asyncio
async def test_return_policy_and_tracking_scenario():
    decomposer = FakeDecomposer({COMPOUND: [RETURN_Q, TRACK_Q]})
    retriever = FakeRetriever(DEFAULT_RETRIEVALS)
    orchestrator = _build(decomposer, retriever)

    snap = await orchestrator.process(COMPOUND)

    assert snap.state is PipelineState.READY
    assert not snap.processing
    assert snap.error is None
    assert snap.sub_questions == (RETURN_Q, TRACK_Q)
    assert sorted(retriever.calls) == sorted([RETURN_Q, TRACK_Q])
    assert set(snap.cache) == {RETURN_Q, TRACK_Q}
    for matches in snap.cache.values():
        assert len(matches) <= 3
        for match in matches:
            assert match.entry in FAQ_ENTRIES
            assert 0.0 <= match.confidence_score <= 1.0


@pytest.mark.asyncio
@pytest.mark.parametrize("k", [1, 2, 5])
async def test_one_retrieval_per_sub_question(k):
    subs = [f"Sub question {i}?" for i in range(k)]
    retriever = FakeRetriever({q: [_match(i % 16, 0.5)] for i, q in enumerate(subs)})
    orchestrator = _build(FakeDecomposer({"q": subs}), retriever)

    snap = await orchestrator.process("q")

    assert len(retriever.calls) == k
    assert len(snap.cache) == k


@pytest.mark.asyncio
async def test_zero_sub_questions_ends_ready_with_empty_cache():
    retriever = FakeRetriever({})
    orchestrator = _build(FakeDecomposer({"hmm": []}), retriever)

    snap = await orchestrator.process("hmm")

    assert snap.state is PipelineState.READY
    assert snap.cache == {}
    assert snap.sub_questions == ()
    assert retriever.calls == []


@pytest.mark.asyncio
async def test_rerun_produces_identical_cache_regardless_of_settling_order():
    decomposer = FakeDecomposer({COMPOUND: [RETURN_Q, TRACK_Q]})
    orchestrator = _build(decomposer, FakeRetriever(DEFAULT_RETRIEVALS, jitter=True))

    first = await orchestrator.process(COMPOUND)
    caches = [dict(first.cache)]
    for _ in range(5):
        snap = await orchestrator.rerun()
        caches.append(dict(snap.cache))

    assert all(cache == caches[0] for cache in caches)
    assert decomposer.calls == [COMPOUND] * 6


@pytest.mark.asyncio
async def test_failed_retrieval_is_isolated():
    retriever = FakeRetriever(
        {RETURN_Q: RetrievalError("simulated transport error"), TRACK_Q: DEFAULT_RETRIEVALS[TRACK_Q]}
    )
    orchestrator = _build(FakeDecomposer({COMPOUND: [RETURN_Q, TRACK_Q]}), retriever)

    snap = await orchestrator.process(COMPOUND)

    assert snap.state is PipelineState.READY
    assert snap.error is None
    assert not snap.fetch_failed
    assert snap.cache[RETURN_Q] == ()
    assert snap.cache[TRACK_Q] == tuple(DEFAULT_RETRIEVALS[TRACK_Q])


@pytest.mark.asyncio
async def test_decomposition_failure_sets_errored_state():
    retriever = FakeRetriever(DEFAULT_RETRIEVALS)
    orchestrator = _build(FakeDecomposer({COMPOUND: DecompositionError("bad json")}), retriever)

    snap = await orchestrator.process(COMPOUND)

    assert snap.state is PipelineState.ERRORED
    assert snap.error == DECOMPOSITION_FAILED_MESSAGE
    assert not snap.processing
    assert snap.sub_questions == ()
    assert retriever.calls == []


@pytest.mark.asyncio
async def test_blank_question_is_rejected_before_any_call():
    decomposer = FakeDecomposer({})
    orchestrator = _build(decomposer, FakeRetriever({}))

    with pytest.raises(EmptyInputError):
        await orchestrator.process("   ")

    assert decomposer.calls == []
    assert orchestrator.epoch == 0
    assert orchestrator.state is PipelineState.IDLE


@pytest.mark.asyncio
async def test_rerun_without_question_is_rejected():
    orchestrator = _build(FakeDecomposer({}), FakeRetriever({}))
    with pytest.raises(EmptyInputError):
        await orchestrator.rerun()


@pytest.mark.asyncio
async def test_listeners_see_each_transition_with_processing_flag():
    orchestrator = _build(FakeDecomposer({COMPOUND: [RETURN_Q, TRACK_Q]}), FakeRetriever(DEFAULT_RETRIEVALS))
    seen = []
    orchestrator.add_listener(lambda snap: seen.append((snap.state, snap.processing)))

    await orchestrator.process(COMPOUND)

    assert seen == [
        (PipelineState.DECOMPOSING, True),
        (PipelineState.RETRIEVING, True),
        (PipelineState.READY, False),
    ]


@pytest.mark.asyncio
async def test_late_retrieval_from_superseded_epoch_is_discarded():
    late_gate = asyncio.Event()
    decomposer = FakeDecomposer({"first": ["Q1"], "second": ["Q2"]})
    retriever = FakeRetriever(
        {"Q1": [_match(0, 0.9)], "Q2": [_match(1, 0.8)]},
        gates={"Q1": late_gate},
    )
    orchestrator = _build(decomposer, retriever)

    first = asyncio.create_task(orchestrator.process("first"))
    while "Q1" not in retriever.calls:
        await asyncio.sleep(0)

    second = await orchestrator.process("second")
    assert second.epoch == 2
    assert set(second.cache) == {"Q2"}

    late_gate.set()
    await first

    final = orchestrator.snapshot()
    assert final.epoch == 2
    assert final.question == "second"
    assert "Q1" not in final.cache
    assert set(final.cache) == {"Q2"}


@pytest.mark.asyncio
async def test_stale_decomposition_failure_does_not_touch_newer_epoch():
    gate = asyncio.Event()
    decomposer = FakeDecomposer(
        {"first": DecompositionError("late failure"), "second": ["Q2"]},
        gates={"first": gate},
    )
    orchestrator = _build(decomposer, FakeRetriever({"Q2": [_match(1, 0.8)]}))

    first = asyncio.create_task(orchestrator.process("first"))
    while "first" not in decomposer.calls:
        await asyncio.sleep(0)
    await orchestrator.process("second")
    gate.set()
    await first

    snap = orchestrator.snapshot()
    assert snap.state is PipelineState.READY
    assert snap.error is None
    assert set(snap.cache) == {"Q2"}


@pytest.mark.asyncio
async def test_aggregation_failure_sets_fetch_failed(monkeypatch):
    def explode(matches, knowledge_base):
        raise RuntimeError("cannot build cache")

    monkeypatch.setattr(orchestrator_module, "unmatched_entries", explode)
    orchestrator = _build(FakeDecomposer({COMPOUND: [RETURN_Q]}), FakeRetriever(DEFAULT_RETRIEVALS))

    snap = await orchestrator.process(COMPOUND)

    assert snap.state is PipelineState.READY
    assert snap.fetch_failed
    assert snap.error == FETCH_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_new_submission_clears_previous_results():
    decomposer = FakeDecomposer({COMPOUND: [RETURN_Q, TRACK_Q], "bad": DecompositionError("x")})
    orchestrator = _build(decomposer, FakeRetriever(DEFAULT_RETRIEVALS))

    await orchestrator.process(COMPOUND)
    snap = await orchestrator.process("bad")

    assert snap.cache == {}
    assert snap.sub_questions == ()
    assert snap.question == "bad"


@pytest.mark.asyncio
async def test_telemetry_records_settled_epochs():
    telemetry = FakeTelemetry()
    retriever = FakeRetriever({RETURN_Q: RetrievalError("down"), TRACK_Q: DEFAULT_RETRIEVALS[TRACK_Q]})
    orchestrator = _build(FakeDecomposer({COMPOUND: [RETURN_Q, TRACK_Q]}), retriever, telemetry)

    await orchestrator.process(COMPOUND)

    assert len(telemetry.events) == 1
    event = telemetry.events[0]
    assert event["state"] == "ready"
    assert event["sub_questions"] == 2
    assert event["failed_retrievals"] == 1
